from collections.abc import Iterator
import sys

import pytest

from test.console import Console


@pytest.fixture
def console() -> 'Iterator[Console]':
    """The test modules' Console, failing the test on any failed assertion."""
    console = Console(sys.stdout, verbose=True)
    yield console
    assert console.failed_assertions == 0, (
        f'{console.failed_assertions} assertion(s) failed')
