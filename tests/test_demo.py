"""Tests for the fraction demo pipelines."""

from __future__ import annotations

from fractions import Fraction
from typing import Any

import pytest
from asyncval import Nothing, Some, WorkerPoolContext, immediate
from asyncval.demo import (
    FRACTION_1,
    FRACTION_2,
    display_mixed_fraction,
    divide_with_recovery,
    log_fraction,
    main,
    multiply_fractions,
    multiply_fractions_async,
    multiply_fractions_blocking,
    reduce_fraction_async,
    run_all,
    to_mixed_string,
)


class TestFormatting:
    """Tests for fraction formatting helpers."""

    @pytest.mark.parametrize(
        ('fraction', 'expected'),
        [
            (Fraction(7, 4), '1 3/4'),
            (Fraction(6, 8), '3/4'),
            (Fraction(0), '0'),
            (Fraction(5), '5'),
            (Fraction(-7, 4), '-1 3/4'),
            (Fraction(-1, 2), '-1/2'),
        ],
    )
    def test_to_mixed_string(self, fraction: Fraction, expected: str) -> None:
        """Fractions render as mixed numbers."""
        assert to_mixed_string(fraction) == expected

    def test_log_fraction(self) -> None:
        """log_fraction() appends the unreduced and reduced forms."""
        buffer: list[str] = []
        log_fraction('6/8', Fraction(6, 8), buffer)
        assert buffer == ['     unreduced = 6/8\n     reduced = 3/4\n']

    def test_display_mixed_fraction(self) -> None:
        """display_mixed_fraction() accepts fractions or preformatted text."""
        buffer: list[str] = []
        display_mixed_fraction(Fraction(7, 4), buffer)
        display_mixed_fraction('2 1/2', buffer)
        assert buffer == [
            '     mixed fraction result = 1 3/4\n',
            '     mixed fraction result = 2 1/2\n',
        ]


class TestReduce:
    """Tests for reduce_fraction_async()."""

    def test_reports_reduced_fraction(self, pool: WorkerPoolContext) -> None:
        """The report contains the reduced mixed fraction."""
        out: list[str] = []
        reduce_fraction_async(6, 8, sink=out.append, context=pool).block(timeout=5)
        assert len(out) == 1
        assert out[0].startswith('>> Calling reduce_fraction_async()\n')
        assert 'unreduced = 6/8' in out[0]
        assert 'reduced = 3/4' in out[0]
        assert 'mixed fraction result = 3/4' in out[0]

    def test_nothing_runs_until_started(self) -> None:
        """Building the demo pipeline writes nothing."""
        out: list[str] = []
        value = reduce_fraction_async(6, 8, sink=out.append, context=immediate())
        assert out == []
        value.start()
        assert len(out) == 1

    def test_default_fraction(self) -> None:
        """The default fraction reduces to its lowest terms."""
        out: list[str] = []
        reduce_fraction_async(sink=out.append, context=immediate()).block()
        reduced = Fraction(846122553600669882, 188027234133482196)
        assert f'reduced = {reduced}' in out[0]
        assert f'mixed fraction result = {to_mixed_string(reduced)}' in out[0]


class TestMultiply:
    """Tests for the multiplication demos."""

    def test_product(self, pool: WorkerPoolContext) -> None:
        """multiply_fractions() yields the product."""
        assert multiply_fractions('1/2', '2/3', context=pool).await_optional(timeout=5) == Some(Fraction(1, 3))

    def test_invalid_operand(self) -> None:
        """An unparsable fraction fails the value."""
        assert multiply_fractions('one half', '2/3', context=immediate()).await_optional() is Nothing

    def test_blocking_reports_before_returning(self, pool: WorkerPoolContext) -> None:
        """The blocking variant has written its report when it returns."""
        out: list[str] = []
        value = multiply_fractions_blocking('1/2', '2/3', sink=out.append, context=pool)
        assert out == [
            '>> Calling multiply_fractions_blocking()\n'
            '     mixed fraction result = 1/3\n'
            '     computation result = 1/3\n'
        ]
        assert value.block() is None

    def test_blocking_reports_error(self) -> None:
        """A failed product is reported as an error."""
        out: list[str] = []
        multiply_fractions_blocking('1/0', '2/3', sink=out.append, context=immediate())
        assert 'computation result = error' in out[0]

    def test_async_report(self, pool: WorkerPoolContext) -> None:
        """The async variant reports from the background context."""
        out: list[str] = []
        multiply_fractions_async(FRACTION_1, FRACTION_2, sink=out.append, context=pool).block(timeout=5)
        product = Fraction(FRACTION_1) * Fraction(FRACTION_2)
        assert out == [f'>> Calling multiply_fractions_async()\n     mixed fraction result = {to_mixed_string(product)}\n']


class TestDivideWithRecovery:
    """Tests for divide_with_recovery()."""

    def test_zero_divisor_recovers(self, pool: WorkerPoolContext, log_events: list[dict[str, Any]]) -> None:
        """Division by zero is reported and replaced by 0."""
        try:
            Fraction('1/2') / Fraction('0')
        except ZeroDivisionError as exc:
            message = str(exc)

        out: list[str] = []
        divide_with_recovery('1/2', '0', sink=out.append, context=pool).block(timeout=5)

        assert f'     exception = {message}\n' in out[0]
        assert '     mixed fraction result = 0\n' in out[0]
        recovering = [e for e in log_events if e['event'] == 'pipeline.recovering']
        assert len(recovering) == 1

    def test_nonzero_divisor(self) -> None:
        """A valid division is reported without recovery."""
        out: list[str] = []
        divide_with_recovery('1/2', '1/4', sink=out.append, context=immediate()).block()
        assert 'exception' not in out[0]
        assert 'mixed fraction result = 2' in out[0]

    def test_other_errors_are_not_recovered(self) -> None:
        """Only zero division is converted to 0."""
        out: list[str] = []
        value = divide_with_recovery('not a fraction', '2', sink=out.append, context=immediate())
        assert value.await_optional() is Nothing
        assert out == []


class TestRunAll:
    """Tests for running every demo together."""

    def test_every_demo_reports(self, pool: WorkerPoolContext) -> None:
        """run_all() waits for all four demos."""
        out: list[str] = []
        run_all(sink=out.append, context=pool)
        assert len(out) == 4
        names = sorted(block.splitlines()[0] for block in out)
        assert names == [
            '>> Calling divide_with_recovery()',
            '>> Calling multiply_fractions_async()',
            '>> Calling multiply_fractions_blocking()',
            '>> Calling reduce_fraction_async()',
        ]

    def test_main_prints(self, capsys: pytest.CaptureFixture[str]) -> None:
        """main() prints every report to stdout."""
        main()
        stdout = capsys.readouterr().out
        assert stdout.count('>> Calling') == 4
        assert 'mixed fraction result = 0' in stdout
