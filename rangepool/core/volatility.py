"""Volatility tracker for the dynamic (variable) fee.

Two updates bracket every swap:
  - ``update_references`` before the trade: refreshes the reference price and
    decays the volatility reference, but only once per ``filter_period``.
  - ``update_volatility_accumulator`` after the trade: measures how many bins
    the new price sits from the reference and adds that on top of the
    decayed reference, clamped at ``max_volatility_accumulator``.

Swapping the order would let one trade set the reference it is measured
against, so callers go through ``SwapEngine`` rather than calling these ad hoc.

Both functions are pure: they take a ``DynamicFeeState`` and return a new one.
"""

from __future__ import annotations

from dataclasses import replace

from ..errors import PoolMathError
from ..fixed_point import BASIS_POINT_MAX, Q96
from ..state.fee_config import DynamicFeeState


def get_delta_bin_id(bin_step_q96: int, sqrt_price_a: int, sqrt_price_b: int) -> int:
    """
    Price distance between two sqrt prices, in (doubled) bins.

        delta = 2 * floor((upper / lower - 1) / bin_step)

    computed with the ratio in Q96.
    """
    if bin_step_q96 <= 0:
        raise PoolMathError("bin_step_q96 must be positive")
    upper, lower = (sqrt_price_a, sqrt_price_b) if sqrt_price_a > sqrt_price_b else (sqrt_price_b, sqrt_price_a)
    if lower == 0:
        raise PoolMathError("division by zero")
    price_ratio = (upper << 96) // lower
    return ((price_ratio - Q96) // bin_step_q96) * 2


def update_references(state: DynamicFeeState, current_point: int, sqrt_price: int) -> DynamicFeeState:
    """Pre-trade snapshot. No-op inside the filter period."""
    if not state.initialized:
        return state
    if current_point < state.last_update_timestamp:
        raise PoolMathError(
            f"current point {current_point} precedes last update {state.last_update_timestamp}"
        )
    elapsed = current_point - state.last_update_timestamp
    if elapsed < state.filter_period:
        return state

    if elapsed < state.decay_period:
        volatility_reference = state.volatility_accumulator * state.reduction_factor // BASIS_POINT_MAX
    else:
        volatility_reference = 0
    return replace(
        state,
        sqrt_price_reference=sqrt_price,
        last_update_timestamp=current_point,
        volatility_reference=volatility_reference,
    )


def update_volatility_accumulator(state: DynamicFeeState, sqrt_price: int) -> DynamicFeeState:
    """Post-trade accumulator update. Clamps instead of raising."""
    if not state.initialized:
        return state
    delta_bin = get_delta_bin_id(state.bin_step_q96, sqrt_price, state.sqrt_price_reference)
    volatility_accumulator = state.volatility_reference + delta_bin * BASIS_POINT_MAX
    return replace(
        state,
        volatility_accumulator=min(volatility_accumulator, state.max_volatility_accumulator),
    )


def refresh_after_swap(state: DynamicFeeState, current_point: int, sqrt_price: int) -> DynamicFeeState:
    """
    Accumulator update plus the timestamp refresh that follows a price move.

    The timestamp only moves when the trade crossed at least one bin.
    """
    if not state.initialized:
        return state
    updated = update_volatility_accumulator(state, sqrt_price)
    if get_delta_bin_id(state.bin_step_q96, sqrt_price, state.sqrt_price_reference) > 0:
        updated = replace(updated, last_update_timestamp=current_point)
    return updated
