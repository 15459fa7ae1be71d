"""
Identity sequence arithmetic with explicit signed 64-bit overflow checks.

An identity column generates the arithmetic sequence S(k) = start + k * step (k an integer). The
functions here are pure: no IO, no table access. They compute the sequence term nearest a target
value in the generation direction, the reconciled high-water-mark for a set of observed values,
and the values the insert path hands out.

Math mapping
| Symbol          | Meaning                                               | Code
|-----------------|-------------------------------------------------------|------------------------------
| S(k)            | k-th sequence term                                    | start + k * step
| ceil(a / b)     | integer ceiling quotient (never floating point)       | ceil_div(a, b)
| T(x)            | nearest term to x in the generation direction         | nearest_term(spec, x)
| hwm             | last value considered generated                       | high_water_mark
| hwm + step      | next generated value                                  | next_value(spec, hwm)

Overflow policy
- Python ints are unbounded, so every intermediate (x - start, k * step, start + k * step) is
  range-checked against [INT64_MIN, INT64_MAX]; leaving the range raises IdentityOverflowError
  and callers must not commit any partial result.

Examples:
    >>> from strata.core.identity import IdentitySpec
    >>> spec = IdentitySpec(start=100, step=2)
    >>> nearest_term(spec, 101)
    102
    >>> reconcile_high_water_mark(spec, 99)
    98
    >>> reconcile_high_water_mark(spec, 100)
    100
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from .constants import INT64_MAX, INT64_MIN
from .errors import IdentityOverflowError

if TYPE_CHECKING:
    from .identity import IdentitySpec

__all__ = [
    "check_int64",
    "checked_add",
    "checked_sub",
    "checked_mul",
    "ceil_div",
    "nearest_term",
    "is_on_sequence",
    "is_beyond_start",
    "generation_extreme",
    "reconcile_high_water_mark",
    "next_value",
    "generate",
]


def check_int64(value: int, what: str = "value") -> int:
    """
    Return value unchanged if it fits in a signed 64-bit integer.

    Raises:
        IdentityOverflowError: If value < INT64_MIN or value > INT64_MAX.
    """
    if value < INT64_MIN or value > INT64_MAX:
        raise IdentityOverflowError(f"{what} overflows int64: {value}")
    return value


def checked_add(a: int, b: int) -> int:
    return check_int64(a + b, f"{a} + {b}")


def checked_sub(a: int, b: int) -> int:
    return check_int64(a - b, f"{a} - {b}")


def checked_mul(a: int, b: int) -> int:
    return check_int64(a * b, f"{a} * {b}")


def ceil_div(a: int, b: int) -> int:
    """
    Integer ceiling of a / b for any signs (b != 0).

    Examples:
        >>> ceil_div(5, 2), ceil_div(-5, 2), ceil_div(5, -2), ceil_div(-5, -2)
        (3, -2, -2, 3)
    """
    if b == 0:
        raise ZeroDivisionError("ceil_div by zero")
    return -((-a) // b)


def nearest_term(spec: IdentitySpec, target: int) -> int:
    """
    Nearest sequence term to target, approached from the generation direction.

    For step > 0 this is the smallest S(k) >= target; for step < 0 the largest S(k) <= target.
    Both reduce to k = ceil((target - start) / step), since dividing by a negative step flips the
    inequality.

    Args:
        spec (IdentitySpec): Sequence definition (start, step != 0).
        target (int): Value to round onto the sequence.

    Returns:
        int: The sequence term.

    Raises:
        IdentityOverflowError: If any intermediate leaves the int64 range.

    Examples:
        >>> from strata.core.identity import IdentitySpec
        >>> nearest_term(IdentitySpec(start=1, step=10), 21)
        21
        >>> nearest_term(IdentitySpec(start=1, step=10), 22)
        31
        >>> nearest_term(IdentitySpec(start=-10, step=-2), -11)
        -12
    """
    diff = checked_sub(target, spec.start)
    k = ceil_div(diff, spec.step)
    return checked_add(spec.start, checked_mul(k, spec.step))


def is_on_sequence(spec: IdentitySpec, value: int) -> bool:
    """True if value == S(k) for some integer k."""
    return (value - spec.start) % spec.step == 0


def is_beyond_start(spec: IdentitySpec, value: int) -> bool:
    """True if value lies at or past start in the generation direction."""
    if spec.step > 0:
        return value >= spec.start
    return value <= spec.start


def generation_extreme(spec: IdentitySpec, values: Iterable[int | None]) -> int | None:
    """
    Extreme of the non-null values in the generation direction (max if step > 0, else min).

    Returns:
        int | None: None when no non-null value is present.
    """
    present = [int(v) for v in values if v is not None]
    if not present:
        return None
    return max(present) if spec.step > 0 else min(present)


def reconcile_high_water_mark(spec: IdentitySpec, extreme: int | None) -> int:
    """
    Compute the high-water-mark that keeps future generated values clear of existing data.

    Rules:
        - No data (extreme is None): reset to start - step, so generation restarts at start.
        - All data lies before start in the generation direction: the same reset, since every
          generated value moves away from the data.
        - Otherwise: the nearest sequence term at or beyond the extreme; the next generated value
          (hwm + step) is then strictly beyond every existing value.

    Args:
        spec (IdentitySpec): Sequence definition.
        extreme (int | None): Max (step > 0) or min (step < 0) of the column's values.

    Returns:
        int: New high-water-mark, always congruent to start modulo step.

    Raises:
        IdentityOverflowError: If rounding the extreme onto the sequence overflows int64.
    """
    if extreme is None or not is_beyond_start(spec, extreme):
        return spec.initial_high_water_mark()
    return nearest_term(spec, extreme)


def next_value(spec: IdentitySpec, high_water_mark: int) -> int:
    """Value the generator hands out after high_water_mark."""
    return checked_add(high_water_mark, spec.step)


def generate(spec: IdentitySpec, high_water_mark: int, n: int) -> tuple[list[int], int]:
    """
    Produce n consecutive generated values starting after high_water_mark.

    Returns:
        tuple[list[int], int]: (values, advanced high-water-mark). With n == 0 the watermark is
        returned unchanged.

    Raises:
        IdentityOverflowError: If the last value would leave the int64 range; no values are
            returned in that case.
    """
    if n < 0:
        raise ValueError("n must be >= 0")
    if n == 0:
        return [], high_water_mark
    last = checked_add(high_water_mark, checked_mul(n, spec.step))
    values = [high_water_mark + i * spec.step for i in range(1, n + 1)]
    return values, last
