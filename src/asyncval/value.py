"""AsyncValue: a cold, single-value asynchronous computation.

An AsyncValue describes a computation and the steps applied to its result.
Nothing runs while the pipeline is being assembled; every operator returns
a new descriptor. Work is dispatched on ``start()``, ``subscribe()`` or any
await, exactly once per instance, and the Result is cached on the instance.

Example:
    ```python
    from fractions import Fraction

    from asyncval import AsyncValue, single

    value = (
        AsyncValue.from_computation(lambda: Fraction(1, 2) / Fraction(0))
        .run_on(single())
        .on_error_resume(lambda e: AsyncValue.just(Fraction(0)), ZeroDivisionError)
        .map(str)
    )
    print(value.await_optional())  # Some(value='0')
    ```
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import aiologic

from asyncval._cell import HandoffCell
from asyncval._config import get_config
from asyncval._driver import PipelineRun
from asyncval._logging import get_logger
from asyncval._steps import (
    Computation,
    Constant,
    DiscardStep,
    ErrorPeekStep,
    FlatMapStep,
    Join,
    MapStep,
    PeekStep,
    ResumeStep,
)
from asyncval.context import default_context
from asyncval.errors import Timeout
from asyncval.result import Err, Ok, Option, Result

if TYPE_CHECKING:
    from asyncval._steps import Source, Step
    from asyncval.context import ExecutionContext

__all__ = ['AsyncValue', 'ValueState']

T = TypeVar('T')
U = TypeVar('U')

logger = get_logger(__name__)

_CONFIGURED: Any = object()
"""Default timeout: use ``RuntimeConfig.await_timeout``."""


class ValueState(Enum):
    """Lifecycle of a single AsyncValue instance."""

    UNSTARTED = 'unstarted'
    RUNNING = 'running'
    COMPLETED = 'completed'
    FAILED = 'failed'


class AsyncValue(Generic[T]):
    """Lazily started, single-result asynchronous computation.

    Operators (``run_on``, ``map``, ``flat_map``, ``on_success``, ``on_error``,
    ``on_error_resume``, ``on_error_return``, ``then_void``) never run
    anything; they return a new AsyncValue sharing this one's source with
    one more step attached. Steps run in declaration order on the declared
    execution context. A failure skips success-path steps until a matching
    recovery step intercepts it.

    Terminal operations (``start``, ``subscribe``, ``await_result``,
    ``await_optional``, ``block`` and ``await``) dispatch the pipeline at
    most once per instance; later calls observe the cached Result.

    Attributes:
        _source: Produces the initial Result when the pipeline runs.
        _steps: Steps applied after the source, in order.
        _context: Declared execution context, or None for ``default_context()``.
        _cell: Completion cell, created on first dispatch.
    """

    __slots__ = ('_cell', '_context', '_source', '_start_lock', '_steps')

    def __init__(
        self,
        source: Source,
        steps: tuple[Step, ...] = (),
        context: ExecutionContext | None = None,
    ) -> None:
        self._source = source
        self._steps = steps
        self._context = context
        self._cell: HandoffCell[Result[T]] | None = None
        self._start_lock = aiologic.Lock()

    # --- Constructors ---

    @classmethod
    def from_computation(cls, fn: Callable[[], T]) -> AsyncValue[T]:
        """Create a value from a blocking computation.

        ``fn`` is not called until the value is started. If it raises, the
        value fails with ComputationFailureError.

        Args:
            fn: Zero-argument callable producing the value.
        """
        return cls(Computation(fn))

    @classmethod
    def just(cls, value: T) -> AsyncValue[T]:
        """Create a value that succeeds with ``value``."""
        return cls(Constant(Ok(value)))

    @classmethod
    def error(cls, error: Exception) -> AsyncValue[T]:
        """Create a value that fails with ``error``."""
        return cls(Constant(Err(error)))

    @classmethod
    def when_all(cls, *values: AsyncValue[Any]) -> AsyncValue[None]:
        """Create a barrier that completes once every value has completed.

        Starting the barrier starts every member without blocking. It
        succeeds with None, or fails with the first member failure in
        argument order.

        Example:
            ```python
            AsyncValue.when_all(
                reduce_fraction_async(6, 8),
                multiply_fractions_async(a, b),
            ).block()
            ```
        """
        return cls(Join(values))

    # --- Operators ---

    def _derive(self, step: Step) -> AsyncValue[Any]:
        return AsyncValue(self._source, (*self._steps, step), self._context)

    def run_on(self, context: ExecutionContext) -> AsyncValue[T]:
        """Declare the execution context for the computation and every step.

        If declared more than once, the declaration closest to the source wins.
        """
        return AsyncValue(self._source, self._steps, self._context or context)

    def map(self, fn: Callable[[T], U]) -> AsyncValue[U]:
        """Transform the success value with ``fn``.

        ``fn`` is never called for a failure; the failure propagates
        unchanged. If ``fn`` raises, the value fails with TransformFailureError.
        """
        return self._derive(MapStep(fn))

    def flat_map(self, fn: Callable[[T], AsyncValue[U]]) -> AsyncValue[U]:
        """Continue with the AsyncValue returned by ``fn`` for the success value."""
        return self._derive(FlatMapStep(fn))

    def on_success(self, observer: Callable[[T], Any]) -> AsyncValue[T]:
        """Call ``observer`` with the success value for its side effect.

        The value and its type are unchanged. Skipped on failure.
        """
        return self._derive(PeekStep(observer))

    def on_error(self, observer: Callable[[Exception], Any]) -> AsyncValue[T]:
        """Call ``observer`` with the failure for its side effect.

        The failure continues downstream. Skipped on success.
        """
        return self._derive(ErrorPeekStep(observer))

    def on_error_resume(
        self,
        handler: Callable[[Exception], AsyncValue[T]],
        *error_types: type[BaseException],
    ) -> AsyncValue[T]:
        """Recover from a failure by switching to the value ``handler`` returns.

        Args:
            handler: Receives the failure and returns a fallback AsyncValue.
                If it raises, or returns anything else, the value fails with
                RecoveryFailureError.
            *error_types: Only failures of these types (or whose original
                cause is of these types) are recovered. Any Exception if empty.

        Returns:
            A value that never calls ``handler`` on success.
        """
        return self._derive(ResumeStep(handler, error_types or (Exception,)))

    def on_error_return(self, fallback: T, *error_types: type[BaseException]) -> AsyncValue[T]:
        """Recover from a failure by substituting ``fallback``."""
        return self.on_error_resume(lambda _error: AsyncValue.just(fallback), *error_types)

    def then_void(self) -> AsyncValue[None]:
        """Discard the success value, keeping only completion or failure."""
        return self._derive(DiscardStep())

    # --- Terminal operations ---

    def _dispatch(self) -> HandoffCell[Result[T]]:
        cell = self._cell
        if cell is not None:
            return cell

        with self._start_lock:
            if self._cell is not None:
                return self._cell
            cell = self._cell = HandoffCell()

        context = self._context or default_context()
        try:
            context.submit(PipelineRun(self._source, self._steps, cell))
        except Exception as exc:
            # Submission refused (e.g. a closed pool): fail the value instead of raising.
            if cell.try_put(Err(exc)).is_err():
                raise
        return cell

    def _on_result(self, callback: Callable[[Result[T]], object]) -> None:
        self._dispatch().add_done_callback(callback)

    def start(self) -> None:
        """Dispatch the pipeline if it has not been dispatched yet.

        Returns without waiting for the pipeline to finish unless the
        context runs tasks inline.
        """
        self._dispatch()

    def subscribe(
        self,
        on_success: Callable[[T], Any] | None = None,
        on_error: Callable[[Exception], Any] | None = None,
    ) -> None:
        """Start the value and report its outcome to callbacks.

        A failure with no ``on_error`` callback is logged as
        ``pipeline.unhandled_failure``. Exceptions raised by the callbacks
        are logged and do not affect the value.
        """

        def deliver(result: Result[T]) -> None:
            try:
                if isinstance(result, Ok):
                    if on_success is not None:
                        on_success(result.value)
                elif on_error is not None:
                    on_error(result.error)
                else:
                    logger.error(
                        'pipeline.unhandled_failure',
                        error=str(result.error),
                        error_type=type(result.error).__name__,
                    )
            except Exception:
                logger.exception('pipeline.subscriber_failed')

        self._on_result(deliver)

    def await_result(self, timeout: float | None = _CONFIGURED) -> Result[T]:
        """Block until the pipeline completes and return its Result.

        Args:
            timeout: Seconds to wait, or None to wait forever. Defaults to
                ``RuntimeConfig.await_timeout``. The pipeline keeps running
                after a timeout.

        Returns:
            Ok(value), Err(failure), or Err(TimeoutError) if the wait timed out.
        """
        if timeout is _CONFIGURED:
            timeout = get_config().await_timeout
        cell = self._dispatch()
        if not cell.wait(timeout):
            return Err(Timeout(timeout, 'await_result').to_exception())  # type: ignore[arg-type]
        return cell.get()

    def await_optional(self, timeout: float | None = _CONFIGURED) -> Option[T]:
        """Block until the pipeline completes; Some(value) on success, Nothing otherwise.

        Never raises for pipeline failures.
        """
        return self.await_result(timeout).ok()

    def block(self, timeout: float | None = _CONFIGURED) -> T:
        """Block until the pipeline completes and return the value.

        Raises:
            PipelineError: The failure that reached the end of the pipeline.
            TimeoutError: If the wait timed out.
        """
        result = self.await_result(timeout)
        if isinstance(result, Err):
            raise result.error
        return result.value

    def __await__(self) -> Generator[Any, Any, Result[T]]:
        """Support await syntax: returns the Result without blocking the event loop.

        Example:
            ```python
            async def main():
                result = await AsyncValue.from_computation(load).run_on(single())
            ```
        """
        return self._dispatch().wait_async().__await__()

    @property
    def state(self) -> ValueState:
        """Current lifecycle state of this instance."""
        cell = self._cell
        if cell is None:
            return ValueState.UNSTARTED
        if not cell.is_set():
            return ValueState.RUNNING
        if isinstance(cell.get(), Ok):
            return ValueState.COMPLETED
        return ValueState.FAILED

    def __repr__(self) -> str:
        steps = ', '.join(step.name for step in self._steps)
        return f'AsyncValue(steps=[{steps}], state={self.state.value})'
