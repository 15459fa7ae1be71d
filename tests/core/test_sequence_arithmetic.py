from __future__ import annotations

import pytest

from strata.core.constants import INT64_MAX, INT64_MIN
from strata.core.errors import IdentityOverflowError
from strata.core.identity import IdentitySpec
from strata.core.sequence import (
    ceil_div,
    check_int64,
    generate,
    generation_extreme,
    is_beyond_start,
    is_on_sequence,
    nearest_term,
    next_value,
    reconcile_high_water_mark,
)


def _brute_nearest(start: int, step: int, target: int) -> int:
    terms = [start + k * step for k in range(-50, 50)]
    if step > 0:
        return min(t for t in terms if t >= target)
    return max(t for t in terms if t <= target)


@pytest.mark.parametrize(
    "a,b,expected",
    [(5, 2, 3), (4, 2, 2), (-5, 2, -2), (5, -2, -2), (-5, -2, 3), (0, 7, 0), (1, 7, 1), (-1, 7, 0)],
)
def test_ceil_div_all_signs(a: int, b: int, expected: int) -> None:
    assert ceil_div(a, b) == expected


def test_ceil_div_by_zero() -> None:
    with pytest.raises(ZeroDivisionError):
        ceil_div(1, 0)


@pytest.mark.parametrize(
    "start,step,target,expected",
    [
        (100, 2, 101, 102),
        (100, 2, 100, 100),
        (100, 2, 1, 2),
        (1, 10, 21, 21),
        (1, 10, 22, 31),
        (-10, -2, -9, -10),
        (-10, -2, -11, -12),
        (-10, -2, 1, 0),
        (7, 10, INT64_MAX, INT64_MAX),
    ],
)
def test_nearest_term_examples(start: int, step: int, target: int, expected: int) -> None:
    assert nearest_term(IdentitySpec(start=start, step=step), target) == expected


@pytest.mark.parametrize("start", [-1, 1])
@pytest.mark.parametrize("step", [-3, 3, 7, -7])
def test_nearest_term_matches_brute_force(start: int, step: int) -> None:
    spec = IdentitySpec(start=start, step=step)
    for target in range(-40, 41):
        term = nearest_term(spec, target)
        assert term == _brute_nearest(start, step, target)
        assert (term - start) % step == 0
        assert abs(term - target) < abs(step)


@pytest.mark.parametrize(
    "start,step,target",
    [
        (1, 10, INT64_MAX),  # rounding up passes INT64_MAX
        (-1, -10, INT64_MIN),  # rounding down passes INT64_MIN
        (-10, 1, INT64_MAX),  # target - start overflows
        (10, -1, INT64_MIN),
    ],
)
def test_nearest_term_overflow(start: int, step: int, target: int) -> None:
    with pytest.raises(IdentityOverflowError):
        nearest_term(IdentitySpec(start=start, step=step), target)


def test_overflow_error_is_builtin_overflow() -> None:
    assert issubclass(IdentityOverflowError, OverflowError)
    with pytest.raises(ArithmeticError):
        check_int64(INT64_MAX + 1)
    assert check_int64(INT64_MIN) == INT64_MIN


def test_is_on_sequence_and_beyond_start() -> None:
    up = IdentitySpec(start=100, step=2)
    down = IdentitySpec(start=-10, step=-2)
    assert is_on_sequence(up, 98) and is_on_sequence(up, 104)
    assert not is_on_sequence(up, 101)
    assert is_on_sequence(down, -8) and not is_on_sequence(down, -9)
    assert is_beyond_start(up, 100) and not is_beyond_start(up, 99)
    assert is_beyond_start(down, -10) and not is_beyond_start(down, -9)


def test_generation_extreme_ignores_nulls() -> None:
    assert generation_extreme(IdentitySpec(step=1), [3, None, 9, -2]) == 9
    assert generation_extreme(IdentitySpec(step=-1), [3, None, 9, -2]) == -2
    assert generation_extreme(IdentitySpec(step=1), [None, None]) is None
    assert generation_extreme(IdentitySpec(step=1), []) is None


@pytest.mark.parametrize(
    "start,step,extreme,expected",
    [
        (100, 2, None, 98),  # empty column
        (100, 2, 99, 98),  # everything precedes start
        (100, 2, 100, 100),  # extreme already on the sequence
        (100, 2, 101, 102),
        (-10, -2, None, -8),
        (-10, -2, -9, -8),
        (-10, -2, -10, -10),
        (-10, -2, -13, -14),
        (1, 10, 21, 21),
    ],
)
def test_reconcile_high_water_mark(start: int, step: int, extreme: int | None, expected: int) -> None:
    spec = IdentitySpec(start=start, step=step)
    hwm = reconcile_high_water_mark(spec, extreme)
    assert hwm == expected
    assert (hwm - start) % step == 0
    if extreme is not None:
        # the next generated value is strictly past the data
        nxt = next_value(spec, hwm)
        assert nxt > extreme if step > 0 else nxt < extreme


def test_reconcile_overflow_propagates() -> None:
    with pytest.raises(IdentityOverflowError):
        reconcile_high_water_mark(IdentitySpec(start=1, step=10), INT64_MAX)


def test_generate_advances_watermark() -> None:
    spec = IdentitySpec(start=1, step=10)
    values, hwm = generate(spec, -9, 3)
    assert values == [1, 11, 21]
    assert hwm == 21
    assert generate(spec, 21, 0) == ([], 21)

    down = IdentitySpec(start=-10, step=-2)
    assert generate(down, -8, 3) == ([-10, -12, -14], -14)


def test_generate_overflow_is_all_or_nothing() -> None:
    spec = IdentitySpec(start=1, step=1)
    assert generate(spec, INT64_MAX - 1, 1) == ([INT64_MAX], INT64_MAX)
    with pytest.raises(IdentityOverflowError):
        generate(spec, INT64_MAX - 1, 2)
    with pytest.raises(ValueError):
        generate(spec, 0, -1)
