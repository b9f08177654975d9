"""Execution contexts: where a pipeline's computation and steps run.

Implementations:
    - ImmediateContext: runs tasks inline on the submitting thread
    - PortalContext: anyio worker threads reached through a BlockingPortal
    - WorkerPoolContext: a PortalContext on a portal of its own, started on first use

Shared instances mirror scheduler singletons: ``single()`` runs one task at
a time, ``shared_pool()`` up to ``RuntimeConfig.workers``. Both live for the
rest of the process once created.
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future
from contextlib import AbstractContextManager
from types import TracebackType
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import aiologic
import anyio
import anyio.from_thread
import anyio.to_thread

from asyncval._config import ContextKind, get_config
from asyncval._logging import get_logger
from asyncval.errors import ContextClosed

if TYPE_CHECKING:
    from anyio.from_thread import BlockingPortal

__all__ = [
    'ExecutionContext',
    'ImmediateContext',
    'PortalContext',
    'WorkerPoolContext',
    'default_context',
    'immediate',
    'shared_pool',
    'single',
]

logger = get_logger(__name__)

Task = Callable[[], None]


@runtime_checkable
class ExecutionContext(Protocol):
    """Protocol for execution contexts.

    A context accepts zero-argument tasks and returns control to the caller
    without waiting for them. Tasks submitted by one pipeline are never run
    in parallel with each other: a pipeline submits exactly one task.
    """

    def submit(self, task: Task) -> None:
        """Schedule ``task`` to run on this context.

        Args:
            task: Zero-argument callable. Its return value is ignored.
        """
        ...


class ImmediateContext:
    """Runs each task inline, on the thread that submits it."""

    __slots__ = ()

    def submit(self, task: Task) -> None:
        task()

    def __repr__(self) -> str:
        return 'ImmediateContext()'


class PortalContext:
    """Runs tasks in anyio worker threads through a BlockingPortal.

    The caller owns the portal; tasks must be submitted from threads other
    than the portal's event loop thread. Tasks waiting for capacity start
    in submission order.

    Example:
        ```python
        with anyio.from_thread.start_blocking_portal() as portal:
            ctx = PortalContext(portal, max_workers=1)
            AsyncValue.from_computation(work).run_on(ctx).block()
        ```
    """

    __slots__ = ('_limiter', '_max_workers', '_name', '_portal')

    def __init__(self, portal: BlockingPortal, max_workers: int | None = None, *, name: str = 'portal') -> None:
        """Create a portal-backed context.

        Args:
            portal: A running anyio BlockingPortal.
            max_workers: Capacity limit for concurrently running tasks; anyio's
                default thread limiter is used if None.
            name: Context name used in log events.
        """
        self._portal = portal
        self._max_workers = max_workers
        self._name = name
        self._limiter = anyio.CapacityLimiter(max_workers) if max_workers else None

    def submit(self, task: Task) -> None:
        future = self._portal.start_task_soon(self._run, task)
        future.add_done_callback(self._report)

    async def _run(self, task: Task) -> None:
        await anyio.to_thread.run_sync(task, limiter=self._limiter)

    def _report(self, future: Future[None]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error('context.task_failed', context=self._name, error=str(exc), error_type=type(exc).__name__)

    def __repr__(self) -> str:
        return f'PortalContext(max_workers={self._max_workers}, name={self._name!r})'


class WorkerPoolContext:
    """Worker pool that owns its BlockingPortal.

    The portal's event loop thread is started on the first submission;
    tasks run in anyio worker threads, at most ``max_workers`` at a time.
    With a single worker, tasks run one at a time in submission order.

    Example:
        ```python
        with WorkerPoolContext(max_workers=2, name='io') as ctx:
            value = AsyncValue.from_computation(load).run_on(ctx)
            print(value.await_optional())
        ```

    Attributes:
        _portal_cm: Context manager of the running portal, until it is exited.
        _context: PortalContext on that portal, once started.
        _closed: Whether close() has been called.
    """

    __slots__ = ('_closed', '_context', '_lock', '_max_workers', '_name', '_portal', '_portal_cm')

    def __init__(self, max_workers: int = 1, *, name: str = 'asyncval-worker') -> None:
        """Create a worker pool.

        Args:
            max_workers: Maximum number of tasks running at once (at least 1).
            name: Name of the portal thread, also used in log events.

        Raises:
            ValueError: If max_workers is less than 1.
        """
        if max_workers < 1:
            msg = f'max_workers must be at least 1, got {max_workers}'
            raise ValueError(msg)
        self._max_workers = max_workers
        self._name = name
        self._lock = aiologic.Lock()
        self._portal_cm: AbstractContextManager[BlockingPortal] | None = None
        self._portal: BlockingPortal | None = None
        self._context: PortalContext | None = None
        self._closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, task: Task) -> None:
        """Hand a task to the pool's portal.

        Raises:
            ContextClosedError: If the pool has been closed.
        """
        with self._lock:
            if self._closed:
                raise ContextClosed(self._name).to_exception()
            if self._context is None:
                self._start()
            self._context.submit(task)  # type: ignore[union-attr]

    def _start(self) -> None:
        self._portal_cm = anyio.from_thread.start_blocking_portal(name=self._name)
        self._portal = self._portal_cm.__enter__()
        self._context = PortalContext(self._portal, self._max_workers, name=self._name)

    def close(self, *, wait: bool = True) -> None:
        """Stop accepting tasks and stop the portal once running tasks finish.

        Tasks submitted before the call still run. With ``wait=True`` this
        must not be called from a task running on this pool.

        Args:
            wait: If True, block until the tasks and the portal thread have finished.
        """
        with self._lock:
            stopping = not self._closed
            self._closed = True
            portal, portal_cm = self._portal, self._portal_cm
            if wait:
                self._portal_cm = None

        if portal is None:
            return
        if wait:
            if portal_cm is not None:
                portal_cm.__exit__(None, None, None)
        elif stopping:
            portal.start_task_soon(portal.stop)

    def __enter__(self) -> WorkerPoolContext:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close(wait=True)

    def __repr__(self) -> str:
        return f'WorkerPoolContext(max_workers={self._max_workers}, name={self._name!r})'


# --- Shared contexts ---

_IMMEDIATE = ImmediateContext()
_shared_lock = aiologic.Lock()
_shared: dict[str, WorkerPoolContext] = {}


def _get_shared(key: str, factory: Callable[[], WorkerPoolContext]) -> WorkerPoolContext:
    context = _shared.get(key)
    if context is not None:
        return context
    with _shared_lock:
        context = _shared.get(key)
        if context is None:
            context = factory()
            _shared[key] = context
        return context


def immediate() -> ImmediateContext:
    """Return the inline context."""
    return _IMMEDIATE


def single() -> WorkerPoolContext:
    """Return the process-wide single-worker context."""
    return _get_shared('single', lambda: WorkerPoolContext(1, name='asyncval-single'))


def shared_pool() -> WorkerPoolContext:
    """Return the process-wide pool sized by ``RuntimeConfig.workers``.

    The size is read once, when the pool is first requested.
    """
    return _get_shared('pool', lambda: WorkerPoolContext(get_config().workers, name='asyncval-pool'))


def default_context() -> ExecutionContext:
    """Return the context named by ``RuntimeConfig.default_context``."""
    kind = get_config().default_context
    if kind is ContextKind.SINGLE:
        return single()
    if kind is ContextKind.POOL:
        return shared_pool()
    return immediate()
