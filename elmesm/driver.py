"""
Run an instantiated Elm module once.

An Elm application exposes `Elm.<Module>.init(config)`, which returns an
instance whose `ports` carry one object per outgoing port. Each such object
supports `subscribe(listener)` and `unsubscribe(listener)`. The driver treats
these as duck-typed Python objects, with each step of an accessor resolved as a
key for mappings and as an attribute otherwise. That way, the same code handles
proxies of JavaScript objects and plain dictionaries.
"""

import asyncio
from collections.abc import Mapping
import logging
from typing import Any, TYPE_CHECKING

from .error import InvalidAccessorError

if TYPE_CHECKING:
    from collections.abc import Sequence


__all__ = ('DEFAULT_ACCESSOR', 'DEFAULT_PORT', 'OneShotListener', 'resolve', 'run')

logger = logging.getLogger('elmesm.driver')


DEFAULT_ACCESSOR = 'Elm.Binding'
DEFAULT_PORT = 'out'

_MISSING = object()


def _member(value: object, key: str) -> object:
    # Mapping keys win, so that a port named "items" isn't dict.items().
    if isinstance(value, Mapping):
        return value.get(key, _MISSING)
    return getattr(value, key, _MISSING)


def resolve(root: object, accessor: 'str | Sequence[str]') -> Any:
    """Look up a dotted accessor such as `Elm.Main.init` starting from `root`."""
    path = accessor.split('.') if isinstance(accessor, str) else list(accessor)
    if not path or any(not segment for segment in path):
        raise InvalidAccessorError('.'.join(path), 'empty segment')

    value = root
    for index, segment in enumerate(path):
        value = _member(value, segment)
        if value is _MISSING:
            raise InvalidAccessorError(
                '.'.join(path), f'"{".".join(path[:index + 1])}" does not exist')
    return value


class OneShotListener:
    """
    A port listener that resolves a future with the first value it receives and
    then unsubscribes itself. It also unsubscribes when the future is cancelled
    before any value arrives.
    """

    def __init__(self, port: object, future: 'asyncio.Future[Any]') -> None:
        self._port = port
        self._future = future
        self._subscribed = False
        self._released = False
        future.add_done_callback(lambda _: self.release())

    @property
    def released(self) -> bool:
        return self._released

    def __call__(self, value: object) -> None:
        if self._future.done():
            return
        self._future.set_result(value)
        self.release()

    def attach(self) -> None:
        subscribe = _member(self._port, 'subscribe')
        if not callable(subscribe):
            raise InvalidAccessorError('ports', 'port has no subscribe()')

        subscribe(self)
        self._subscribed = True
        # A port may emit synchronously, before subscribe() returns.
        if self._future.done():
            self.release()

    def release(self) -> None:
        if not self._subscribed or self._released:
            return
        self._released = True

        unsubscribe = _member(self._port, 'unsubscribe')
        if callable(unsubscribe):
            unsubscribe(self)
            logger.debug('released port listener')


def run(
    module: object,
    initial_value: object,
    *,
    accessor: 'str | Sequence[str]' = DEFAULT_ACCESSOR,
    port: str = DEFAULT_PORT,
    loop: 'None | asyncio.AbstractEventLoop' = None,
) -> 'asyncio.Future[Any]':
    """
    Instantiate the module with `{"flags": initial_value}` and return a future
    for the first value sent through the given port.

    If the port never sends a value, the future never completes. Wrap it with
    `asyncio.wait_for()` to bound the wait; the resulting cancellation also
    unsubscribes the listener.
    """
    if loop is None:
        loop = asyncio.get_running_loop()

    path = accessor.split('.') if isinstance(accessor, str) else list(accessor)
    init = resolve(module, [*path, 'init'])
    if not callable(init):
        raise InvalidAccessorError('.'.join(path), 'init is not callable')

    logger.debug('initializing "%s" with flags %r', '.'.join(path), initial_value)
    instance = init({'flags': initial_value})
    channel = resolve(instance, ['ports', port])

    future: 'asyncio.Future[Any]' = loop.create_future()
    OneShotListener(channel, future).attach()
    return future
