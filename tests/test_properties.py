"""Property-based tests for pipeline laws."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from asyncval import AsyncValue, Nothing
from hypothesis import given
from hypothesis import strategies as st

FUNCTIONS: list[Callable[[int], int]] = [
    lambda x: x + 1,
    lambda x: x * 2,
    lambda x: -x,
    lambda x: x // 3,
    abs,
]

functions = st.sampled_from(FUNCTIONS)
operators = st.lists(st.sampled_from(['map', 'on_success', 'flat_map']), max_size=8)


def _raise(error: Exception) -> Any:
    raise error


@given(st.integers(), functions, functions)
def test_map_composes(x: int, g1: Callable[[int], int], g2: Callable[[int], int]) -> None:
    """map(g1).map(g2) observes the same value as map(g2 after g1)."""
    chained = AsyncValue.from_computation(lambda: x).map(g1).map(g2).await_optional()
    composed = AsyncValue.from_computation(lambda: g2(g1(x))).await_optional()
    assert chained == composed


@given(st.integers(), st.lists(functions, max_size=10))
def test_on_success_sees_each_intermediate(x: int, steps: list[Callable[[int], int]]) -> None:
    """Observers between maps see every intermediate value in order."""
    seen: list[int] = []
    value = AsyncValue.just(x)
    expected = []
    current = x
    for fn in steps:
        value = value.map(fn).on_success(seen.append)
        current = fn(current)
        expected.append(current)
    assert value.await_optional().unwrap_or(None) == current
    assert seen == expected


@given(operators)
def test_failure_skips_success_operators(ops: list[str]) -> None:
    """After a failure no success-path function runs, whatever the chain."""
    calls: list[str] = []
    value = AsyncValue.from_computation(lambda: _raise(ValueError('x')))
    for op in ops:
        if op == 'map':
            value = value.map(lambda v: calls.append('map'))
        elif op == 'on_success':
            value = value.on_success(lambda v: calls.append('on_success'))
        else:
            value = value.flat_map(lambda v: calls.append('flat_map') or AsyncValue.just(v))
    assert value.await_optional() is Nothing
    assert calls == []


@given(st.integers())
def test_recovery_matches_fallback(fallback: int) -> None:
    """Recovering from a failure yields what the fallback alone would."""
    recovered = AsyncValue.from_computation(lambda: 1 // 0).on_error_resume(lambda e: AsyncValue.just(fallback))
    assert recovered.await_optional() == AsyncValue.just(fallback).await_optional()


@given(st.integers())
def test_just_is_identity_for_flat_map(x: int) -> None:
    """flat_map(just) leaves the value unchanged."""
    assert AsyncValue.just(x).flat_map(AsyncValue.just).await_optional() == AsyncValue.just(x).await_optional()
