"""Result and Option types returned by the terminal AsyncValue operations.

``Result[T]`` is ``Ok[T] | Err[Exception]`` and ``Option[T]`` is
``Some[T] | Nothing``. Both are frozen msgspec structs, so they compare by
value, hash, and can be pattern matched:

    ```python
    match value.await_result():
        case Ok(v):
            print('got', v)
        case Err(e):
            print('failed', e)
    ```
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Generic, NoReturn, TypeVar, Union

import msgspec

__all__ = ['Err', 'Nothing', 'NothingType', 'Ok', 'Option', 'Result', 'Some', 'collect']

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Ok(msgspec.Struct, Generic[T], frozen=True, gc=False):
    """Success variant of Result containing a value of type T.

    Examples:
        >>> Ok(42).unwrap()
        42
        >>> Ok(21).map(lambda x: x * 2)
        Ok(value=42)
    """

    value: T

    def is_ok(self) -> bool:
        """Return True since this is Ok."""
        return True

    def is_err(self) -> bool:
        """Return False since this is Ok."""
        return False

    def unwrap(self) -> T:
        """Return the contained Ok value."""
        return self.value

    def unwrap_or(self, default: T) -> T:  # noqa: ARG002
        """Return the contained Ok value, ignoring the default."""
        return self.value

    def unwrap_err(self) -> NoReturn:
        """Raise since this is Ok.

        Raises:
            RuntimeError: Always, since Ok carries no error.
        """
        raise RuntimeError(f'Called unwrap_err on Ok: {self.value!r}')

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        """Apply a function to the contained value.

        Args:
            f: Function to apply to the Ok value.

        Returns:
            Ok containing the result of applying f to the value.
        """
        return Ok(f(self.value))

    def ok(self) -> Some[T]:
        """Convert to Option, returning Some(value)."""
        return Some(self.value)


class Err(msgspec.Struct, Generic[E], frozen=True):
    """Error variant of Result containing an error of type E.

    Unlike the other variants, Err stays tracked by the garbage collector:
    exceptions hold tracebacks whose frames can refer back to the Err.

    Examples:
        >>> err = Err(ValueError('boom'))
        >>> err.is_err()
        True
        >>> err.unwrap_or(0)
        0
    """

    error: E

    def is_ok(self) -> bool:
        """Return False since this is Err."""
        return False

    def is_err(self) -> bool:
        """Return True since this is Err."""
        return True

    def unwrap(self) -> NoReturn:
        """Raise since this is Err.

        Raises:
            RuntimeError: Always, chained from the error when it is an exception.
        """
        cause = self.error if isinstance(self.error, BaseException) else None
        raise RuntimeError(f'Called unwrap on Err: {self.error!r}') from cause

    def unwrap_or(self, default: T) -> T:
        """Return the default value since this is Err."""
        return default

    def unwrap_err(self) -> E:
        """Return the contained error."""
        return self.error

    def map(self, _f: Callable[[Any], Any]) -> Err[E]:
        """Return self unchanged since this is Err."""
        return self

    def ok(self) -> NothingType:
        """Convert to Option, returning Nothing since this is Err."""
        return Nothing


class Some(msgspec.Struct, Generic[T], frozen=True, gc=False):
    """Some variant of Option containing a value of type T.

    Examples:
        >>> Some(42).unwrap()
        42
        >>> Some(42).map(lambda x: x * 2)
        Some(value=84)
    """

    value: T

    def is_some(self) -> bool:
        """Return True since this is Some."""
        return True

    def is_none(self) -> bool:
        """Return False since this is Some."""
        return False

    def unwrap(self) -> T:
        """Return the contained Some value."""
        return self.value

    def unwrap_or(self, default: T) -> T:  # noqa: ARG002
        """Return the contained Some value, ignoring the default."""
        return self.value

    def map(self, f: Callable[[T], U]) -> Some[U]:
        """Apply a function to the contained value."""
        return Some(f(self.value))


class NothingType(msgspec.Struct, frozen=True, gc=False):
    """Nothing variant of Option representing absence of a value.

    This is a singleton - use the `Nothing` constant instead of
    instantiating directly.

    Examples:
        >>> Nothing.is_none()
        True
        >>> Nothing.unwrap_or(0)
        0
    """

    def is_some(self) -> bool:
        """Return False since this is Nothing."""
        return False

    def is_none(self) -> bool:
        """Return True since this is Nothing."""
        return True

    def unwrap(self) -> NoReturn:
        """Raise an exception since this is Nothing.

        Raises:
            RuntimeError: Always, since Nothing has no value to unwrap.
        """
        raise RuntimeError('Called unwrap on Nothing')

    def unwrap_or(self, default: T) -> T:
        """Return the default value since this is Nothing."""
        return default

    def map(self, _f: Callable[[Any], Any]) -> NothingType:
        """Return Nothing since there's no value to map."""
        return self


Nothing: NothingType = NothingType()
"""Singleton instance representing the absence of a value."""

Result = Union[Ok[T], Err[Exception]]
Option = Union[Some[T], NothingType]


def collect(results: Iterable[Result[T]]) -> Result[list[T]]:
    """Collect an iterable of Results into a Result of list.

    Short-circuits on the first Err encountered.

    Examples:
        >>> collect([Ok(1), Ok(2), Ok(3)])
        Ok(value=[1, 2, 3])
    """
    values: list[T] = []
    for result in results:
        if isinstance(result, Err):
            return result
        values.append(result.value)
    return Ok(values)
