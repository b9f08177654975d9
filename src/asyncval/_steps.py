"""Sources and step descriptors that make up an AsyncValue pipeline.

A pipeline is a source followed by a tuple of steps. Each step receives the
current Result and returns either the next Result or a *deferred* outcome
(anything with an ``_on_result(callback)`` method, such as another
AsyncValue) that the driver subscribes to before continuing.

User functions never raise out of a step: exceptions are captured into
``Err`` and classified with the error taxonomy in ``asyncval.errors``.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, Union

import aiologic

from asyncval._logging import get_logger
from asyncval.errors import (
    ComputationFailureError,
    PipelineError,
    RecoveryFailureError,
    TransformFailureError,
)
from asyncval.result import Err, Ok, Result, collect

__all__ = [
    'Computation',
    'Constant',
    'Deferred',
    'DiscardStep',
    'ErrorPeekStep',
    'FlatMapStep',
    'Join',
    'MapStep',
    'Outcome',
    'PeekStep',
    'ResumeStep',
    'Source',
    'Step',
]

logger = get_logger(__name__)


class Deferred(Protocol):
    """An outcome that completes later and reports its Result to a callback."""

    def _on_result(self, callback: Callable[[Result[Any]], object]) -> None: ...


Outcome = Union[Ok[Any], Err[Exception], Deferred]


def _transform_failure(exc: Exception, step: str) -> PipelineError:
    if isinstance(exc, PipelineError):
        return exc
    return TransformFailureError(exc, step=step)


def _matches(error: Exception, error_types: tuple[type[BaseException], ...]) -> bool:
    if isinstance(error, PipelineError):
        return error.matches(error_types)
    return isinstance(error, error_types)


def _is_async_value(obj: object) -> bool:
    from asyncval.value import AsyncValue

    return isinstance(obj, AsyncValue)


# --- Sources ---


class Source(Protocol):
    """Start of a pipeline: evaluated once per dispatch."""

    def evaluate(self) -> Outcome: ...


@dataclass(slots=True, frozen=True)
class Computation:
    """A blocking zero-argument computation."""

    fn: Callable[[], Any]

    def evaluate(self) -> Outcome:
        try:
            return Ok(self.fn())
        except PipelineError as exc:
            return Err(exc)
        except Exception as exc:
            return Err(ComputationFailureError(exc))


@dataclass(slots=True, frozen=True)
class Constant:
    """An already-known Result."""

    result: Result[Any]

    def evaluate(self) -> Outcome:
        return self.result


@dataclass(slots=True, frozen=True)
class Join:
    """Barrier over several values: completes once every member has completed.

    Members are started without blocking; the outcome is Ok(None) or the
    first failure in argument order.
    """

    values: Sequence[Any]

    def evaluate(self) -> Outcome:
        if not self.values:
            return Ok(None)
        return _JoinState(self.values)


class _JoinState:
    __slots__ = ('_lock', '_remaining', '_results', '_values')

    def __init__(self, values: Sequence[Any]) -> None:
        self._values = values
        self._results: list[Result[Any] | None] = [None] * len(values)
        self._remaining = len(values)
        self._lock = aiologic.Lock()

    def _on_result(self, callback: Callable[[Result[Any]], object]) -> None:
        def arrive(index: int, result: Result[Any]) -> None:
            with self._lock:
                self._results[index] = result
                self._remaining -= 1
                done = self._remaining == 0
            if done:
                callback(self._combine())

        for index, value in enumerate(self._values):
            value._on_result(lambda result, index=index: arrive(index, result))

    def _combine(self) -> Result[None]:
        return collect(self._results).map(lambda _: None)  # type: ignore[arg-type]


# --- Steps ---


class Step(Protocol):
    """One stage of a pipeline after the source."""

    name: str

    def apply(self, result: Result[Any]) -> Outcome: ...


@dataclass(slots=True, frozen=True)
class MapStep:
    """Transform a success value; failures pass through untouched."""

    fn: Callable[[Any], Any]
    name: str = field(default='map', init=False)

    def apply(self, result: Result[Any]) -> Outcome:
        if isinstance(result, Err):
            return result
        try:
            return Ok(self.fn(result.value))
        except Exception as exc:
            return Err(_transform_failure(exc, self.name))


@dataclass(slots=True, frozen=True)
class FlatMapStep:
    """Switch to the AsyncValue produced from a success value."""

    fn: Callable[[Any], Any]
    name: str = field(default='flat_map', init=False)

    def apply(self, result: Result[Any]) -> Outcome:
        if isinstance(result, Err):
            return result
        try:
            inner = self.fn(result.value)
        except Exception as exc:
            return Err(_transform_failure(exc, self.name))
        if not _is_async_value(inner):
            msg = f'flat_map function must return an AsyncValue, got {type(inner).__name__}'
            return Err(TransformFailureError(TypeError(msg), step=self.name))
        return inner


@dataclass(slots=True, frozen=True)
class PeekStep:
    """Observe a success value for side effects."""

    fn: Callable[[Any], Any]
    name: str = field(default='on_success', init=False)

    def apply(self, result: Result[Any]) -> Outcome:
        if isinstance(result, Err):
            return result
        try:
            self.fn(result.value)
        except Exception as exc:
            return Err(_transform_failure(exc, self.name))
        return result


@dataclass(slots=True, frozen=True)
class ErrorPeekStep:
    """Observe a failure for side effects; the failure continues downstream."""

    fn: Callable[[Exception], Any]
    name: str = field(default='on_error', init=False)

    def apply(self, result: Result[Any]) -> Outcome:
        if isinstance(result, Ok):
            return result
        try:
            self.fn(result.error)
        except Exception as exc:
            return Err(_transform_failure(exc, self.name))
        return result


@dataclass(slots=True, frozen=True)
class ResumeStep:
    """Replace a matching failure with the AsyncValue returned by a handler."""

    handler: Callable[[Exception], Any]
    error_types: tuple[type[BaseException], ...] = (Exception,)
    name: str = field(default='on_error_resume', init=False)

    def apply(self, result: Result[Any]) -> Outcome:
        if isinstance(result, Ok) or not _matches(result.error, self.error_types):
            return result

        error = result.error
        logger.warning(
            'pipeline.recovering',
            error=str(error),
            error_type=getattr(error, 'error_type', None) or type(error).__name__,
        )
        try:
            fallback = self.handler(error)
        except Exception as exc:
            return Err(RecoveryFailureError(exc, original=error))
        if not _is_async_value(fallback):
            msg = f'recovery handler must return an AsyncValue, got {type(fallback).__name__}'
            return Err(RecoveryFailureError(TypeError(msg), original=error))
        return fallback


@dataclass(slots=True, frozen=True)
class DiscardStep:
    """Drop a success value, keeping only the completion signal."""

    name: str = field(default='then_void', init=False)

    def apply(self, result: Result[Any]) -> Outcome:
        if isinstance(result, Err):
            return result
        return Ok(None)
