"""
Turn a compiled Elm bundle into an ES module and run it once.

Elm compiles to a self-invoking script that installs its exports into the
global scope. `elmesm.rewriter` comments out that machinery and appends an
`export const Elm = ...;` binding instead. `elmesm.driver` and `elmesm.node`
then instantiate the resulting module and wait for the first value on one of
its ports.
"""

from .error import (
    DiskIOError,
    ElmEsmError,
    InvalidAccessorError,
    MalformedBundleError,
    NodeRuntimeError,
)
from .rewriter import rewrite

__version__ = '0.3.0'

__all__ = (
    'DiskIOError',
    'ElmEsmError',
    'InvalidAccessorError',
    'MalformedBundleError',
    'NodeRuntimeError',
    'rewrite',
)
