"""HandoffCell: single-write, multi-read completion cell.

The driver writes the pipeline's final Result exactly once; blocking awaits,
async awaits and subscription callbacks read it. Waiting is a separate
primitive from the step chain so that a pipeline never has to block on
itself.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Generic, TypeVar

import aiologic

from asyncval._logging import get_logger
from asyncval.errors import AlreadyCompleted, NotCompleted
from asyncval.result import Err, Ok, Result

__all__ = ['HandoffCell']

T = TypeVar('T')

logger = get_logger(__name__)


class HandoffCell(Generic[T]):
    """A cell that can be written to exactly once and read many times.

    Thread-safe: the value is published under a lock before the completion
    event is set, and callbacks registered before completion run once on the
    writer's thread after the lock is released. The same event serves
    blocking waits from plain threads and ``await`` from any event loop.

    Examples:
        >>> cell: HandoffCell[int] = HandoffCell()
        >>> cell.is_set()
        False
        >>> cell.put(42)
        >>> cell.wait(timeout=0)
        True
        >>> cell.get()
        42
    """

    __slots__ = ('_callbacks', '_event', '_lock', '_value')

    def __init__(self) -> None:
        self._lock: aiologic.Lock = aiologic.Lock()
        self._event: aiologic.Event = aiologic.Event()
        self._value: T | None = None
        self._callbacks: list[Callable[[T], object]] = []

    def put(self, value: T) -> None:
        """Store the value and wake every waiter.

        Raises:
            AlreadyCompletedError: If a value was already stored.
        """
        if self.try_put(value).is_err():
            raise AlreadyCompleted().to_exception()

    def try_put(self, value: T) -> Result[None]:
        """Store the value without raising.

        Every registered callback is called, even if an earlier one raises.

        Returns:
            Ok(None) if stored, Err(AlreadyCompletedError) if the cell was already set.
        """
        with self._lock:
            if self._event.is_set():
                return Err(AlreadyCompleted().to_exception())
            self._value = value
            callbacks, self._callbacks = self._callbacks, []
            self._event.set()

        for callback in callbacks:
            self._notify(callback, value)
        return Ok(None)

    def is_set(self) -> bool:
        """Check whether a value has been stored."""
        return self._event.is_set()

    def get(self) -> T:
        """Return the stored value without blocking.

        Raises:
            NotCompletedError: If no value has been stored yet.
        """
        if not self._event.is_set():
            raise NotCompleted().to_exception()
        return self._value  # type: ignore[return-value]

    def wait(self, timeout: float | None = None) -> bool:
        """Block the calling thread until the value is stored.

        Returns:
            True once the value is available, False if the timeout elapsed first.
        """
        return self._event.wait(timeout)

    async def wait_async(self) -> T:
        """Wait for the value without blocking the event loop."""
        await self._event
        return self._value  # type: ignore[return-value]

    def add_done_callback(self, callback: Callable[[T], object]) -> None:
        """Call ``callback`` with the value once it is stored.

        Runs immediately on the calling thread if the cell is already set.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        self._notify(callback, self._value)  # type: ignore[arg-type]

    @staticmethod
    def _notify(callback: Callable[[T], object], value: T) -> None:
        try:
            callback(value)
        except Exception:
            logger.exception('cell.callback_failed')
