"""Integer fixed-point helpers shared by the pool kernels.

All arithmetic is on plain Python ints. Widths (u64/u128/u256) are enforced
explicitly at the points where a value is stored, so overflow fails closed
instead of silently growing.

Rounding is always explicit: callers pass ``round_up`` and never rely on
floating point.
"""

from __future__ import annotations

from .errors import PoolMathError

# Q64.96 sqrt prices
RESOLUTION = 96
Q96 = 1 << RESOLUTION

# Scale of the fee/reward per-liquidity accumulators (and reward rates).
LIQUIDITY_SCALE = 128
ACC_SCALE = 1 << LIQUIDITY_SCALE

U64_MAX = (1 << 64) - 1
U128_MAX = (1 << 128) - 1
U256_MAX = (1 << 256) - 1

BASIS_POINT_MAX = 10_000


def _check_width(value: int, max_value: int, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise PoolMathError(f"{name} underflow: {value}")
    if value > max_value:
        raise PoolMathError(f"{name} overflow: {value}")
    return value


def to_u64(value: int, name: str = "value") -> int:
    return _check_width(value, U64_MAX, name)


def to_u128(value: int, name: str = "value") -> int:
    return _check_width(value, U128_MAX, name)


def to_u256(value: int, name: str = "value") -> int:
    return _check_width(value, U256_MAX, name)


def safe_sub(a: int, b: int, name: str = "value") -> int:
    """``a - b`` that refuses to go negative."""
    if b > a:
        raise PoolMathError(f"{name} underflow: {a} - {b}")
    return a - b


def div_round_up(numerator: int, denominator: int) -> int:
    if denominator == 0:
        raise PoolMathError("division by zero")
    if numerator < 0 or denominator < 0:
        raise PoolMathError("div_round_up expects non-negative operands")
    return (numerator + denominator - 1) // denominator


def mul_div(x: int, y: int, denominator: int, round_up: bool = False) -> int:
    """Compute ``x * y / denominator`` with full intermediate precision."""
    if denominator == 0:
        raise PoolMathError("division by zero")
    product = x * y
    if round_up:
        return div_round_up(product, denominator)
    return product // denominator


def shl_div(x: int, y: int, offset: int, round_up: bool = False) -> int:
    """Compute ``(x << offset) / y``."""
    return mul_div(x, 1 << offset, y, round_up)


def mul_shr(x: int, y: int, offset: int, round_up: bool = False) -> int:
    """Compute ``(x * y) >> offset``."""
    return mul_div(x, y, 1 << offset, round_up)
