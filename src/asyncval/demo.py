"""Fraction pipelines demonstrating AsyncValue.

Each demo reduces, multiplies or divides large fractions on a background
context and reports one formatted block of text per run to a sink. The
payload is ``fractions.Fraction``; the pipelines treat it opaquely apart
from formatting.

Run all of them with ``python -m asyncval.demo``.
"""

from __future__ import annotations

from collections.abc import Callable
from fractions import Fraction
from typing import TYPE_CHECKING

from asyncval._logging import configure_logging
from asyncval.context import single
from asyncval.value import AsyncValue

if TYPE_CHECKING:
    from asyncval.context import ExecutionContext

__all__ = [
    'display_mixed_fraction',
    'divide_with_recovery',
    'log_fraction',
    'main',
    'multiply_fractions',
    'multiply_fractions_async',
    'multiply_fractions_blocking',
    'reduce_fraction_async',
    'run_all',
    'to_mixed_string',
]

Sink = Callable[[str], None]

UNREDUCED_NUMERATOR = 846122553600669882
UNREDUCED_DENOMINATOR = 188027234133482196
FRACTION_1 = '62675744/15668936'
FRACTION_2 = '609136/913704'


def to_mixed_string(fraction: Fraction) -> str:
    """Format a fraction as a mixed number.

    Examples:
        >>> to_mixed_string(Fraction(7, 4))
        '1 3/4'
        >>> to_mixed_string(Fraction(6, 8))
        '3/4'
        >>> to_mixed_string(Fraction(0))
        '0'
    """
    if fraction.denominator == 1:
        return str(fraction.numerator)
    sign = '-' if fraction < 0 else ''
    whole, remainder = divmod(abs(fraction.numerator), fraction.denominator)
    if whole == 0:
        return f'{sign}{remainder}/{fraction.denominator}'
    return f'{sign}{whole} {remainder}/{fraction.denominator}'


def log_fraction(unreduced: str, reduced: Fraction, buffer: list[str]) -> None:
    buffer.append(f'     unreduced = {unreduced}\n     reduced = {reduced}\n')


def display_mixed_fraction(value: Fraction | str, buffer: list[str]) -> None:
    mixed = value if isinstance(value, str) else to_mixed_string(value)
    buffer.append(f'     mixed fraction result = {mixed}\n')


def _flush(buffer: list[str], sink: Sink) -> None:
    sink(''.join(buffer))


def reduce_fraction_async(
    numerator: int = UNREDUCED_NUMERATOR,
    denominator: int = UNREDUCED_DENOMINATOR,
    sink: Sink = print,
    context: ExecutionContext | None = None,
) -> AsyncValue[None]:
    """Reduce a fraction in the background and report it as a mixed number."""
    buffer = ['>> Calling reduce_fraction_async()\n']
    unreduced = f'{numerator}/{denominator}'

    return (
        AsyncValue.from_computation(lambda: Fraction(numerator, denominator))
        .run_on(context or single())
        .on_success(lambda reduced: log_fraction(unreduced, reduced, buffer))
        .map(to_mixed_string)
        .on_success(lambda mixed: display_mixed_fraction(mixed, buffer))
        .on_success(lambda _: _flush(buffer, sink))
        .then_void()
    )


def multiply_fractions(
    first: str | Fraction = FRACTION_1,
    second: str | Fraction = FRACTION_2,
    context: ExecutionContext | None = None,
) -> AsyncValue[Fraction]:
    """Multiply two fractions in the background."""
    return AsyncValue.from_computation(lambda: Fraction(first) * Fraction(second)).run_on(context or single())


def multiply_fractions_blocking(
    first: str | Fraction = FRACTION_1,
    second: str | Fraction = FRACTION_2,
    sink: Sink = print,
    context: ExecutionContext | None = None,
) -> AsyncValue[None]:
    """Multiply in the background, then wait for the product on the calling thread.

    The report is written before this function returns; the returned value
    is already complete.
    """
    buffer = ['>> Calling multiply_fractions_blocking()\n']

    product = (
        multiply_fractions(first, second, context)
        .on_success(lambda value: display_mixed_fraction(value, buffer))
        .await_optional()
    )

    buffer.append(f'     computation result = {product.map(to_mixed_string).unwrap_or("error")}\n')
    _flush(buffer, sink)
    return AsyncValue.just(None)


def multiply_fractions_async(
    first: str | Fraction = FRACTION_1,
    second: str | Fraction = FRACTION_2,
    sink: Sink = print,
    context: ExecutionContext | None = None,
) -> AsyncValue[None]:
    """Multiply and report the product entirely in the background."""
    buffer = ['>> Calling multiply_fractions_async()\n']

    return (
        multiply_fractions(first, second, context)
        .on_success(lambda value: display_mixed_fraction(value, buffer))
        .on_success(lambda _: _flush(buffer, sink))
        .then_void()
    )


def divide_with_recovery(
    numerator: str | Fraction = FRACTION_1,
    divisor: str | Fraction = '0',
    sink: Sink = print,
    context: ExecutionContext | None = None,
) -> AsyncValue[None]:
    """Divide in the background, converting a zero-division failure to 0."""
    buffer = ['>> Calling divide_with_recovery()\n']

    def substitute_zero(error: Exception) -> AsyncValue[Fraction]:
        buffer.append(f'     exception = {error}\n')
        return AsyncValue.just(Fraction(0))

    return (
        AsyncValue.from_computation(lambda: Fraction(numerator) / Fraction(divisor))
        .run_on(context or single())
        .on_error_resume(substitute_zero, ZeroDivisionError)
        .on_success(lambda value: display_mixed_fraction(value, buffer))
        .on_success(lambda _: _flush(buffer, sink))
        .then_void()
    )


def run_all(sink: Sink = print, context: ExecutionContext | None = None) -> None:
    """Run every demo and wait for all of them to finish."""
    AsyncValue.when_all(
        reduce_fraction_async(sink=sink, context=context),
        multiply_fractions_blocking(sink=sink, context=context),
        multiply_fractions_async(sink=sink, context=context),
        divide_with_recovery(sink=sink, context=context),
    ).block()


def main() -> None:
    configure_logging('WARNING', json_output=False)
    run_all()


if __name__ == '__main__':
    main()
