"""Tests for the single-range price curve."""

from __future__ import annotations

import pytest

from rangepool.core.price_curve import (
    get_amount_a_delta,
    get_amount_b_delta,
    get_amounts_for_modify_liquidity,
    get_initial_liquidity_from_amounts,
    get_next_sqrt_price_from_input,
    swap_within_range,
)
from rangepool.errors import PoolMathError, PoolValidationError, PriceRangeViolation
from rangepool.fixed_point import Q96, U64_MAX

SQRT_MIN = Q96
SQRT_MAX = 4 * Q96
SQRT_PRICE = 2 * Q96
LIQUIDITY = 1_000_000


# ---------------------------------------------------------------------------
# Amount deltas
# ---------------------------------------------------------------------------

def test_amount_deltas_at_midpoint() -> None:
    # a = L * (4 - 2) / (2 * 4) = L / 4 ; b = L * (2 - 1) = L
    assert get_amount_a_delta(SQRT_PRICE, SQRT_MAX, LIQUIDITY, round_up=False) == 250_000
    assert get_amount_b_delta(SQRT_MIN, SQRT_PRICE, LIQUIDITY, round_up=False) == 1_000_000


def test_amount_delta_rounding_favours_pool() -> None:
    lower, upper = Q96, Q96 + Q96 // 3
    down = get_amount_a_delta(lower, upper, 1_000, round_up=False)
    up = get_amount_a_delta(lower, upper, 1_000, round_up=True)
    assert up == down + 1

    down_b = get_amount_b_delta(lower, upper, 1_000, round_up=False)
    up_b = get_amount_b_delta(lower, upper, 1_000, round_up=True)
    assert up_b == down_b + 1


def test_amount_delta_empty_range_is_zero() -> None:
    assert get_amount_a_delta(SQRT_PRICE, SQRT_PRICE, LIQUIDITY, round_up=True) == 0
    assert get_amount_b_delta(SQRT_PRICE, SQRT_PRICE, LIQUIDITY, round_up=True) == 0


def test_amount_delta_rejects_inverted_range() -> None:
    with pytest.raises(PoolValidationError):
        get_amount_a_delta(SQRT_MAX, SQRT_MIN, LIQUIDITY, round_up=False)


def test_amount_delta_overflows_token_width() -> None:
    with pytest.raises(PoolMathError):
        get_amount_b_delta(SQRT_MIN, SQRT_MAX, U64_MAX, round_up=True)


def test_amounts_for_modify_liquidity() -> None:
    assert get_amounts_for_modify_liquidity(SQRT_PRICE, SQRT_MIN, SQRT_MAX, LIQUIDITY, round_up=True) == (
        250_000,
        1_000_000,
    )
    # At the lower bound only token A backs the position.
    amount_a, amount_b = get_amounts_for_modify_liquidity(SQRT_MIN, SQRT_MIN, SQRT_MAX, LIQUIDITY, round_up=True)
    assert amount_a > 0
    assert amount_b == 0


# ---------------------------------------------------------------------------
# Next price
# ---------------------------------------------------------------------------

def test_next_price_token_a_in_moves_down_and_rounds_up() -> None:
    nxt = get_next_sqrt_price_from_input(SQRT_PRICE, LIQUIDITY, 1_000, a_for_b=True)
    # L*Q96*P / (L*Q96 + amount*P) = 2*Q96 * 1_000_000 / 1_002_000
    assert nxt == -(-(2_000_000 * Q96) // 1_002_000)
    assert nxt < SQRT_PRICE


def test_next_price_token_b_in_moves_up_and_rounds_down() -> None:
    nxt = get_next_sqrt_price_from_input(SQRT_PRICE, LIQUIDITY, 1_000, a_for_b=False)
    assert nxt == SQRT_PRICE + 1_000 * Q96 // LIQUIDITY
    assert nxt > SQRT_PRICE


def test_next_price_zero_input_is_identity() -> None:
    assert get_next_sqrt_price_from_input(SQRT_PRICE, LIQUIDITY, 0, a_for_b=True) == SQRT_PRICE


def test_next_price_rejects_zero_liquidity() -> None:
    with pytest.raises(PoolValidationError):
        get_next_sqrt_price_from_input(SQRT_PRICE, 0, 1_000, a_for_b=True)


def test_next_price_rejects_negative_input() -> None:
    with pytest.raises(PoolValidationError):
        get_next_sqrt_price_from_input(SQRT_PRICE, LIQUIDITY, -1, a_for_b=False)


# ---------------------------------------------------------------------------
# Swap within range
# ---------------------------------------------------------------------------

def test_scenario_a_closed_form_swap() -> None:
    """min=Q96, max=4*Q96, price=2*Q96, L=1_000_000, no fee, 1000 token A in."""
    result = swap_within_range(SQRT_PRICE, SQRT_MIN, SQRT_MAX, LIQUIDITY, 1_000, a_for_b=True)

    expected_next = -(-(LIQUIDITY * Q96 * SQRT_PRICE) // (LIQUIDITY * Q96 + 1_000 * SQRT_PRICE))
    expected_out = LIQUIDITY * (SQRT_PRICE - expected_next) // Q96
    assert result.next_sqrt_price == expected_next
    assert result.output_amount == expected_out
    # 1e6 * (2 - 2 * 1000/1002) = 3992.01...
    assert result.output_amount == 3_992


def test_swap_b_for_a_output() -> None:
    result = swap_within_range(SQRT_PRICE, SQRT_MIN, SQRT_MAX, LIQUIDITY, 4_000, a_for_b=False)
    assert result.next_sqrt_price > SQRT_PRICE
    # Selling ~4 B per A near price 4 yields a little under 1000 A.
    assert 990 <= result.output_amount < 1_000


def test_swap_past_lower_bound_raises() -> None:
    # Moving from 2*Q96 to Q96 needs L/2 = 500_000 token A.
    with pytest.raises(PriceRangeViolation) as excinfo:
        swap_within_range(SQRT_PRICE, SQRT_MIN, SQRT_MAX, LIQUIDITY, 600_000, a_for_b=True)
    assert excinfo.value.next_sqrt_price < SQRT_MIN


def test_swap_past_upper_bound_raises() -> None:
    # Moving from 2*Q96 to 4*Q96 needs 2*L token B.
    with pytest.raises(PriceRangeViolation):
        swap_within_range(SQRT_PRICE, SQRT_MIN, SQRT_MAX, LIQUIDITY, 2_000_001, a_for_b=False)


def test_swap_to_exact_bound_is_allowed() -> None:
    result = swap_within_range(SQRT_PRICE, SQRT_MIN, SQRT_MAX, LIQUIDITY, 2_000_000, a_for_b=False)
    assert result.next_sqrt_price == SQRT_MAX


# ---------------------------------------------------------------------------
# Liquidity from amounts
# ---------------------------------------------------------------------------

def test_initial_liquidity_from_amounts() -> None:
    assert get_initial_liquidity_from_amounts(SQRT_MIN, SQRT_MAX, SQRT_PRICE, 250_000, 1_000_000) == LIQUIDITY
    # The scarcer side binds.
    assert get_initial_liquidity_from_amounts(SQRT_MIN, SQRT_MAX, SQRT_PRICE, 250_000, 500_000) == 500_000


def test_initial_liquidity_at_bounds_uses_one_side() -> None:
    at_max = get_initial_liquidity_from_amounts(SQRT_MIN, SQRT_MAX, SQRT_MAX, 0, 3_000_000)
    assert at_max == 1_000_000
    at_min = get_initial_liquidity_from_amounts(SQRT_MIN, SQRT_MAX, SQRT_MIN, 750_000, 0)
    assert at_min == 1_000_000


def test_initial_liquidity_rejects_price_outside_range() -> None:
    with pytest.raises(PoolValidationError):
        get_initial_liquidity_from_amounts(SQRT_MIN, SQRT_MAX, 5 * Q96, 1, 1)
