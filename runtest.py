#!/usr/bin/env python3

"""
Run elmesm's test suite. Each test module runs in its own interpreter, via
`runtest.py run-test-module <module>`, before the command line tools are
checked against the library.
"""

from dataclasses import dataclass, field
from importlib import import_module
import inspect
from pathlib import Path
import subprocess
import shutil
import sys

from test.console import Console


TEST_MODULES = (
    'test.rewriter_steps',
    'test.rewriter_pipeline',
    'test.driver',
    'test.node_runtime',
    'test.cli',
)


@dataclass
class SuiteOptions:
    console: Console
    runner: str = field(default_factory=lambda: sys.argv[0])
    test_module: None | str = None
    verbose: bool = False

    def rerun(self, *args: str) -> list[str]:
        """The command line for running this script again with the given arguments."""
        return [sys.executable, self.runner, *(['-v'] if self.verbose else []), *args]


def parse_arguments(args: list[str]) -> SuiteOptions:
    options = SuiteOptions(Console(sys.stdout))
    wants_module = False
    for arg in args:
        if arg == '-v':
            options.verbose = options.console.verbose = True
        elif arg == 'run-test-module' and not wants_module:
            wants_module = True
        elif wants_module and options.test_module is None:
            options.test_module = arg
        else:
            raise SystemExit(f'unexpected argument "{arg}"')

    if wants_module and options.test_module is None:
        raise SystemExit('run-test-module needs the name of a test module, e.g., test.driver')
    return options


# ======================================================================================


def run_suite(options: SuiteOptions) -> int:
    console = options.console
    console.info("Getting started with elmesm's test suite...")
    console.detail(f'Running "{sys.executable}"')
    console.detail(f' - Python {sys.version}')

    try:
        import elmesm
    except ImportError:
        console.error('Unable to import elmesm; is it installed?')
        return 1

    console.detail(f'Testing elmesm {elmesm.__version__}')
    node = shutil.which('node')
    console.detail(f' - Node.js at {node}' if node else ' - without Node.js')

    console.info('Running unit tests...')
    for module in TEST_MODULES:
        console.detail(f'╭──── {module}')
        subprocess.run(options.rerun('run-test-module', module), check=True)
        console.detail('╰─╼')

    scratch = Path('.').absolute() / 'tmp'
    shutil.rmtree(scratch, ignore_errors=True)
    scratch.mkdir()
    try:
        failures = check_tools(console, scratch)
    finally:
        shutil.rmtree(scratch, ignore_errors=True)

    if failures:
        console.error(f'{failures} command line check(s) failed!')
        return 1
    console.success('W00t! All tests passed!')
    return 0


def check_tools(console: Console, scratch: Path) -> int:
    """Run `python -m elmesm` and `python -m elmesm.debug` on a fixture bundle."""
    from elmesm.rewriter import rewrite
    from test.fixtures import BUNDLE

    failures = 0
    bundle = scratch / 'binding.js'
    bundle.write_text(BUNDLE, encoding='utf8')
    module = scratch / 'binding2.js'

    console.info('Rewriting bundle with library and command line tool...')
    subprocess.run(
        [sys.executable, '-m', 'elmesm', '-o', str(module), str(bundle)], check=True)
    if module.read_text(encoding='utf8') == rewrite(BUNDLE):
        console.detail('tmp/binding2.js matches the library\'s module')
    else:
        console.error('Library and command line tool produced different modules!')
        failures += 1

    console.info('Surveying bundle and module anchors...')
    subprocess.run([sys.executable, '-m', 'elmesm.debug', str(bundle)], check=True)
    completion = subprocess.run(
        [sys.executable, '-m', 'elmesm.debug', str(module)], capture_output=True)
    if completion.returncode == 0:
        console.error('Rewritten module still surveys as a bundle!')
        failures += 1
    else:
        console.detail('tmp/binding2.js cannot be rewritten again')

    return failures


# ======================================================================================


def run_test_module(options: SuiteOptions) -> int:
    console = options.console
    module = import_module(options.test_module)

    crashed = 0
    for name, test in inspect.getmembers(module, inspect.isfunction):
        if not name.startswith('test_') or test.__module__ != module.__name__:
            continue

        console.detail(f'├─ {name}')
        with console.new_prefix('│   '):
            try:
                test(console)
            except Exception as x:
                console.exception(x)
                crashed += 1

    return 1 if crashed or console.failed_assertions else 0


if __name__ == '__main__':
    console = Console(sys.stdout)
    try:
        options = parse_arguments(sys.argv[1:])
        console = options.console
        sys.exit(run_test_module(options) if options.test_module else run_suite(options))

    except SystemExit as x:
        if isinstance(x.code, str):
            console.error(x.code)
            sys.exit(1)
        raise

    except subprocess.CalledProcessError as x:
        console.error(
            f'"{" ".join(str(part) for part in x.cmd)}" exited with status {x.returncode}')
        sys.exit(1)

    except Exception as x:
        console.exception(x)
        sys.exit(1)
