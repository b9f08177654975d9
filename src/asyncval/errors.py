"""Error types: dual struct+exception for Result and raise-based code.

Each failure kind has a frozen struct variant (a serializable error
description) and an exception variant. The pipeline always carries the
exception variant in ``Err`` so the original cause and traceback survive;
``to_struct()`` produces the description when one is needed.
"""

from __future__ import annotations

import msgspec

__all__ = [
    'AlreadyCompleted',
    'AlreadyCompletedError',
    'ComputationFailure',
    'ComputationFailureError',
    'ContextClosed',
    'ContextClosedError',
    'NotCompleted',
    'NotCompletedError',
    'PipelineError',
    'RecoveryFailure',
    'RecoveryFailureError',
    'Timeout',
    'TimeoutError',
    'TransformFailure',
    'TransformFailureError',
]


def _describe(cause: BaseException | None) -> tuple[str, str]:
    if cause is None:
        return '', ''
    return type(cause).__name__, str(cause)


# --- Pipeline Failures ---


class PipelineError(Exception):
    """Base class for failures raised inside an AsyncValue pipeline.

    The message is the original error's message so that handlers can report
    it verbatim. The original exception is available as ``cause`` and is
    chained through ``__cause__``.

    Attributes:
        cause: The exception raised by user code, or None when rebuilt from
            a struct.
        error_type: Name of the original exception type.
    """

    def __init__(
        self,
        cause: BaseException | None = None,
        *,
        message: str | None = None,
        error_type: str | None = None,
    ) -> None:
        self.cause = cause
        described_type, described_message = _describe(cause)
        self.error_type = error_type or described_type
        if message is None:
            message = described_message or self.error_type or type(self).__name__
        super().__init__(message)
        self.__cause__ = cause

    @property
    def message(self) -> str:
        """The failure message (the original error's message)."""
        return str(self)

    def matches(self, error_types: tuple[type[BaseException], ...]) -> bool:
        """Check whether this failure or its cause is one of ``error_types``."""
        return isinstance(self, error_types) or isinstance(self.cause, error_types)


class ComputationFailure(msgspec.Struct, frozen=True, gc=False):
    """The source computation raised - struct variant."""

    error_type: str
    message: str

    def to_exception(self) -> ComputationFailureError:
        """Convert to exception for raise-based code."""
        return ComputationFailureError(message=self.message, error_type=self.error_type)


class ComputationFailureError(PipelineError):
    """The source computation raised - exception variant."""

    def to_struct(self) -> ComputationFailure:
        """Convert to struct for Result-based code."""
        return ComputationFailure(self.error_type, self.message)


class TransformFailure(msgspec.Struct, frozen=True, gc=False):
    """A transformation or observation step raised - struct variant."""

    step: str
    error_type: str
    message: str

    def to_exception(self) -> TransformFailureError:
        """Convert to exception for raise-based code."""
        return TransformFailureError(step=self.step, message=self.message, error_type=self.error_type)


class TransformFailureError(PipelineError):
    """A transformation or observation step raised - exception variant.

    Attributes:
        step: Name of the operator whose function raised (``map``, ``on_success``...).
    """

    def __init__(
        self,
        cause: BaseException | None = None,
        *,
        step: str = 'map',
        message: str | None = None,
        error_type: str | None = None,
    ) -> None:
        self.step = step
        super().__init__(cause, message=message, error_type=error_type)

    def to_struct(self) -> TransformFailure:
        """Convert to struct for Result-based code."""
        return TransformFailure(self.step, self.error_type, self.message)


class RecoveryFailure(msgspec.Struct, frozen=True, gc=False):
    """An error-recovery handler itself failed - struct variant."""

    error_type: str
    message: str

    def to_exception(self) -> RecoveryFailureError:
        """Convert to exception for raise-based code."""
        return RecoveryFailureError(message=self.message, error_type=self.error_type)


class RecoveryFailureError(PipelineError):
    """An error-recovery handler itself failed - exception variant.

    Raised when the handler raises or returns something other than an
    AsyncValue. The failure that triggered recovery is kept as ``original``.
    """

    def __init__(
        self,
        cause: BaseException | None = None,
        *,
        original: BaseException | None = None,
        message: str | None = None,
        error_type: str | None = None,
    ) -> None:
        self.original = original
        super().__init__(cause, message=message, error_type=error_type)

    def to_struct(self) -> RecoveryFailure:
        """Convert to struct for Result-based code."""
        return RecoveryFailure(self.error_type, self.message)


# --- Await Errors ---


class Timeout(msgspec.Struct, frozen=True, gc=False):
    """Operation timed out - struct variant for Result[T, Timeout]."""

    seconds: float
    operation: str | None = None

    def to_exception(self) -> TimeoutError:
        """Convert to exception for raise-based code."""
        return TimeoutError(self.seconds, self.operation)


class TimeoutError(Exception):  # noqa: A001 - intentionally shadows builtin
    """Operation timed out - exception variant."""

    def __init__(self, seconds: float, operation: str | None = None) -> None:
        self.seconds = seconds
        self.operation = operation
        msg = f'Timeout after {seconds}s'
        if operation:
            msg = f'{operation}: {msg}'
        super().__init__(msg)

    def to_struct(self) -> Timeout:
        """Convert to struct for Result-based code."""
        return Timeout(self.seconds, self.operation)


# --- Context Errors ---


class ContextClosed(msgspec.Struct, frozen=True, gc=False):
    """Execution context no longer accepts tasks - struct variant."""

    name: str | None = None

    def to_exception(self) -> ContextClosedError:
        """Convert to exception for raise-based code."""
        return ContextClosedError(self.name)


class ContextClosedError(Exception):
    """Execution context no longer accepts tasks - exception variant."""

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        msg = 'Execution context closed'
        if name:
            msg = f"Execution context '{name}' closed"
        super().__init__(msg)

    def to_struct(self) -> ContextClosed:
        """Convert to struct for Result-based code."""
        return ContextClosed(self.name)


# --- Cell Errors ---


class AlreadyCompleted(msgspec.Struct, frozen=True, gc=False):
    """Handoff cell already holds a value - struct variant."""

    def to_exception(self) -> AlreadyCompletedError:
        """Convert to exception for raise-based code."""
        return AlreadyCompletedError()


class AlreadyCompletedError(Exception):
    """Handoff cell already holds a value - exception variant."""

    def __init__(self) -> None:
        super().__init__('Value already completed')

    def to_struct(self) -> AlreadyCompleted:
        """Convert to struct for Result-based code."""
        return AlreadyCompleted()


class NotCompleted(msgspec.Struct, frozen=True, gc=False):
    """Handoff cell has no value yet - struct variant."""

    def to_exception(self) -> NotCompletedError:
        """Convert to exception for raise-based code."""
        return NotCompletedError()


class NotCompletedError(Exception):
    """Handoff cell has no value yet - exception variant."""

    def __init__(self) -> None:
        super().__init__('Value not yet completed')

    def to_struct(self) -> NotCompleted:
        """Convert to struct for Result-based code."""
        return NotCompleted()
