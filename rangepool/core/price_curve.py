"""
Closed-form price curve for a single bounded liquidity range.

The pool holds one active range ``[sqrt_min_price, sqrt_max_price]``. Inside it
liquidity ``L`` is constant, so token amounts and price moves have closed
forms (all prices are Q64.96 square roots):

    amount_a = L * (sqrt_upper - sqrt_lower) / (sqrt_lower * sqrt_upper)
    amount_b = L * (sqrt_upper - sqrt_lower)

Algorithm Design:
- Type: Fixed-Point Integer Arithmetic / Deterministic Rounding
- Time Complexity: O(1) per call
- Invariant: amounts entering the pool round up, amounts leaving round down,
  so rounding error always favours the pool.

There is no tick crossing: a trade that would push the price past either
bound is rejected with ``PriceRangeViolation``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ..errors import PoolValidationError, PriceRangeViolation
from ..fixed_point import Q96, div_round_up, mul_div, to_u64, to_u128

# Bounds of a representable Q64.96 sqrt price.
MIN_SQRT_PRICE = 4295128739
MAX_SQRT_PRICE = 1461446703485210103287273052203988822378723970342


@dataclass(frozen=True)
class CurveSwapResult:
    output_amount: int
    next_sqrt_price: int


def _check_range(sqrt_lower: int, sqrt_upper: int) -> None:
    if sqrt_lower <= 0:
        raise PoolValidationError(f"sqrt_lower must be positive: {sqrt_lower}")
    if sqrt_lower > sqrt_upper:
        raise PoolValidationError(f"sqrt_lower ({sqrt_lower}) > sqrt_upper ({sqrt_upper})")


def get_amount_a_delta(sqrt_lower: int, sqrt_upper: int, liquidity: int, round_up: bool) -> int:
    """
    Token A needed (or released) to move ``liquidity`` across ``[sqrt_lower, sqrt_upper]``.

    Formula:
        amount_a = L * (upper - lower) * Q96 / (lower * upper)

    Args:
        sqrt_lower: Lower sqrt price (Q64.96)
        sqrt_upper: Upper sqrt price (Q64.96)
        liquidity: Liquidity being moved
        round_up: True when the amount flows into the pool

    Returns:
        Token A amount

    Raises:
        PoolValidationError: If the range is malformed
        PoolMathError: If the amount does not fit a token amount
    """
    _check_range(sqrt_lower, sqrt_upper)
    numerator = liquidity * (sqrt_upper - sqrt_lower)
    amount = mul_div(numerator, Q96, sqrt_lower * sqrt_upper, round_up)
    return to_u64(amount, "amount_a")


def get_amount_b_delta(sqrt_lower: int, sqrt_upper: int, liquidity: int, round_up: bool) -> int:
    """
    Token B needed (or released) to move ``liquidity`` across ``[sqrt_lower, sqrt_upper]``.

    Formula:
        amount_b = L * (upper - lower) / Q96
    """
    _check_range(sqrt_lower, sqrt_upper)
    amount = mul_div(liquidity, sqrt_upper - sqrt_lower, Q96, round_up)
    return to_u64(amount, "amount_b")


def get_next_sqrt_price_from_input(sqrt_price: int, liquidity: int, amount_in: int, a_for_b: bool) -> int:
    """
    Next sqrt price after ``amount_in`` enters the pool.

    Selling A moves the price down and rounds the result up; selling B moves
    the price up and rounds the result down. Both keep the pool from paying
    out more than the input justifies.

        A in:  next = L * P * Q96 / (L * Q96 + amount_in * P)
        B in:  next = P + amount_in * Q96 / L
    """
    if sqrt_price <= 0:
        raise PoolValidationError(f"sqrt_price must be positive: {sqrt_price}")
    if liquidity <= 0:
        raise PoolValidationError(f"liquidity must be positive: {liquidity}")
    if amount_in < 0:
        raise PoolValidationError(f"amount_in must be non-negative: {amount_in}")
    if amount_in == 0:
        return sqrt_price

    if a_for_b:
        liquidity_q96 = liquidity * Q96
        next_price = div_round_up(liquidity_q96 * sqrt_price, liquidity_q96 + amount_in * sqrt_price)
    else:
        next_price = sqrt_price + mul_div(amount_in, Q96, liquidity)
    return next_price


def swap_within_range(
    sqrt_price: int,
    sqrt_min_price: int,
    sqrt_max_price: int,
    liquidity: int,
    amount_in: int,
    a_for_b: bool,
) -> CurveSwapResult:
    """
    Run an exact-in trade against the single active range.

    Raises:
        PriceRangeViolation: If the next price falls outside ``[sqrt_min_price, sqrt_max_price]``
    """
    next_sqrt_price = get_next_sqrt_price_from_input(sqrt_price, liquidity, amount_in, a_for_b)
    if a_for_b:
        if next_sqrt_price < sqrt_min_price:
            raise PriceRangeViolation(next_sqrt_price, sqrt_min_price, sqrt_max_price)
        output_amount = get_amount_b_delta(next_sqrt_price, sqrt_price, liquidity, round_up=False)
    else:
        if next_sqrt_price > sqrt_max_price:
            raise PriceRangeViolation(next_sqrt_price, sqrt_min_price, sqrt_max_price)
        output_amount = get_amount_a_delta(sqrt_price, next_sqrt_price, liquidity, round_up=False)
    return CurveSwapResult(output_amount=output_amount, next_sqrt_price=next_sqrt_price)


def get_amounts_for_modify_liquidity(
    sqrt_price: int,
    sqrt_min_price: int,
    sqrt_max_price: int,
    liquidity_delta: int,
    round_up: bool,
) -> Tuple[int, int]:
    """
    Token amounts backing ``liquidity_delta`` at the current price.

    Token A covers the part of the range above the price, token B the part
    below. Deposits round up, withdrawals round down.
    """
    amount_a = get_amount_a_delta(sqrt_price, sqrt_max_price, liquidity_delta, round_up)
    amount_b = get_amount_b_delta(sqrt_min_price, sqrt_price, liquidity_delta, round_up)
    return amount_a, amount_b


def get_liquidity_from_amount_a(amount_a: int, sqrt_lower: int, sqrt_upper: int) -> int:
    """L = amount_a * lower * upper / ((upper - lower) * Q96), rounded down."""
    _check_range(sqrt_lower, sqrt_upper)
    if sqrt_lower == sqrt_upper:
        raise PoolValidationError("empty range has no token A liquidity")
    return mul_div(amount_a, sqrt_lower * sqrt_upper, (sqrt_upper - sqrt_lower) * Q96)


def get_liquidity_from_amount_b(amount_b: int, sqrt_lower: int, sqrt_upper: int) -> int:
    """L = amount_b * Q96 / (upper - lower), rounded down."""
    _check_range(sqrt_lower, sqrt_upper)
    if sqrt_lower == sqrt_upper:
        raise PoolValidationError("empty range has no token B liquidity")
    return mul_div(amount_b, Q96, sqrt_upper - sqrt_lower)


def get_initial_liquidity_from_amounts(
    sqrt_min_price: int,
    sqrt_max_price: int,
    sqrt_price: int,
    amount_a: int,
    amount_b: int,
) -> int:
    """
    Largest liquidity that ``amount_a`` and ``amount_b`` can both back at ``sqrt_price``.

    At either bound only one token is needed, so the other side is ignored.
    """
    if not (sqrt_min_price <= sqrt_price <= sqrt_max_price):
        raise PoolValidationError("sqrt_price must lie within [sqrt_min_price, sqrt_max_price]")
    if sqrt_price == sqrt_max_price:
        return to_u128(get_liquidity_from_amount_b(amount_b, sqrt_min_price, sqrt_price), "liquidity")
    if sqrt_price == sqrt_min_price:
        return to_u128(get_liquidity_from_amount_a(amount_a, sqrt_price, sqrt_max_price), "liquidity")
    liquidity_a = get_liquidity_from_amount_a(amount_a, sqrt_price, sqrt_max_price)
    liquidity_b = get_liquidity_from_amount_b(amount_b, sqrt_min_price, sqrt_price)
    return to_u128(min(liquidity_a, liquidity_b), "liquidity")
