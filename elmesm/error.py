from pathlib import Path


__all__ = (
    'ElmEsmError',
    'MalformedBundleError',
    'DiskIOError',
    'InvalidAccessorError',
    'NodeRuntimeError',
)


class ElmEsmError(Exception):
    """The base class for all errors raised by elmesm."""


class MalformedBundleError(ElmEsmError, ValueError):
    """
    A bundle does not have the expected shape. The `step` attribute names the
    pipeline step whose anchor did not match exactly once.
    """

    def __init__(self, step: str, reason: str) -> None:
        super().__init__(f'malformed bundle in step "{step}": {reason}')
        self.step = step
        self.reason = reason


class DiskIOError(ElmEsmError):
    """Reading or writing a bundle or module failed."""

    def __init__(self, path: 'str | Path', source: 'OSError | UnicodeDecodeError') -> None:
        super().__init__(f'disk I/O error at "{path}": {source}')
        self.path = Path(path)
        self.source = source


class InvalidAccessorError(ElmEsmError, LookupError):
    """A module or instance lacks the member the driver needs."""

    def __init__(self, accessor: str, reason: str) -> None:
        super().__init__(
            f'invalid accessor "{accessor}": {reason}; '
            'expected format is Elm.Module.Submodule')
        self.accessor = accessor


class NodeRuntimeError(ElmEsmError):
    """Node.js is missing, too old, or failed to run a module."""
