"""
Exact-in swap against a single-range pool.

Algorithm Design:
    1. Refresh the volatility references (pre-trade snapshot).
    2. Resolve the fee mode from (collect_fee_mode, direction).
    3. Fee on input: charge the total fee rate on ``amount_in`` and feed the
       residual to the curve.
    4. Move the price along the curve; crossing a range bound raises
       ``PriceRangeViolation`` before anything is written.
    5. Fee on output: charge the fee on the curve's output instead.
    6. Split: protocol share first, referral out of protocol, partner out of
       what remains; the LP keeps the rest.
    7. Post the LP fee to the per-liquidity accumulator of the fee token.
    8. Update the volatility accumulator; the timestamp only moves when the
       price crossed at least one bin.

The referral share leaves the pool with the trade (it is paid out by the
caller of ``apply_swap``); every other fee share stays in reserves until
claimed.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, replace

from ..errors import PoolStateError, PoolValidationError
from ..fixed_point import LIQUIDITY_SCALE, safe_sub, shl_div, to_u64, to_u256
from ..state.pools import PoolState
from .fees import FeeOnAmount, TradeDirection, get_fee_mode, get_fee_on_amount, get_total_fee
from .price_curve import swap_within_range
from .volatility import refresh_after_swap, update_references


@dataclass(frozen=True)
class SwapParams:
    amount_a_in: int = 0
    amount_b_in: int = 0
    minimum_amount_out: int = 0
    has_referral: bool = False

    def __post_init__(self) -> None:
        for name in ("amount_a_in", "amount_b_in", "minimum_amount_out"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")

    @property
    def direction(self) -> TradeDirection:
        if (self.amount_a_in > 0) == (self.amount_b_in > 0):
            raise PoolValidationError("exactly one of amount_a_in / amount_b_in must be non-zero")
        return TradeDirection.A_TO_B if self.amount_a_in > 0 else TradeDirection.B_TO_A

    @property
    def amount_in(self) -> int:
        return self.amount_a_in or self.amount_b_in


@dataclass(frozen=True)
class SwapResult:
    """
    Amounts of a priced swap.

    Attributes:
        amount_in: Gross input paid by the trader
        actual_amount_in: Input that reached the curve (after any input fee)
        output_amount: Output delivered to the trader (after any output fee)
        fees_on_token_a: Token the fee shares below are denominated in
        fee_rate: Total fee rate applied (1e18-scaled)
    """

    direction: TradeDirection
    amount_in: int
    actual_amount_in: int
    output_amount: int
    next_sqrt_price: int
    lp_fee: int
    protocol_fee: int
    partner_fee: int
    referral_fee: int
    fees_on_token_a: bool
    fee_rate: int

    @property
    def total_fee(self) -> int:
        return self.lp_fee + self.protocol_fee + self.partner_fee + self.referral_fee


_NO_FEE = FeeOnAmount(amount=0, lp_fee=0, protocol_fee=0, partner_fee=0, referral_fee=0)


def _post_fees(pool: PoolState, fee: FeeOnAmount, fees_on_token_a: bool) -> None:
    """Accumulator, claimable balances, lifetime metrics and the referral payout."""
    accumulator_delta = shl_div(fee.lp_fee, pool.liquidity, LIQUIDITY_SCALE)
    metrics = pool.metrics
    if fees_on_token_a:
        pool.fee_a_per_liquidity = to_u256(pool.fee_a_per_liquidity + accumulator_delta, "fee_a_per_liquidity")
        pool.protocol_a_fee += fee.protocol_fee
        pool.partner_a_fee += fee.partner_fee
        pool.reserve_a = safe_sub(pool.reserve_a, fee.referral_fee, "reserve_a")
        metrics.total_lp_a_fee += fee.lp_fee
        metrics.total_protocol_a_fee += fee.protocol_fee
        metrics.total_partner_a_fee += fee.partner_fee
        metrics.total_referral_a_fee += fee.referral_fee
    else:
        pool.fee_b_per_liquidity = to_u256(pool.fee_b_per_liquidity + accumulator_delta, "fee_b_per_liquidity")
        pool.protocol_b_fee += fee.protocol_fee
        pool.partner_b_fee += fee.partner_fee
        pool.reserve_b = safe_sub(pool.reserve_b, fee.referral_fee, "reserve_b")
        metrics.total_lp_b_fee += fee.lp_fee
        metrics.total_protocol_b_fee += fee.protocol_fee
        metrics.total_partner_b_fee += fee.partner_fee
        metrics.total_referral_b_fee += fee.referral_fee


def _execute(pool: PoolState, params: SwapParams, current_point: int, activation_point: int) -> SwapResult:
    direction = params.direction
    amount_in = to_u64(params.amount_in, "amount_in")
    if pool.liquidity == 0:
        raise PoolStateError("pool has no liquidity")

    pool_fees = replace(
        pool.pool_fees,
        dynamic_fee=update_references(pool.pool_fees.dynamic_fee, current_point, pool.sqrt_price),
    )
    fee_mode = get_fee_mode(pool.collect_fee_mode, direction, params.has_referral)
    fee_rate = get_total_fee(pool_fees, current_point, activation_point)
    has_partner = pool.has_partner()

    fee = _NO_FEE
    actual_amount_in = amount_in
    if fee_mode.fees_on_input:
        fee = get_fee_on_amount(
            amount_in, fee_rate, pool_fees, has_referral=fee_mode.has_referral, has_partner=has_partner
        )
        actual_amount_in = fee.amount

    a_for_b = direction is TradeDirection.A_TO_B
    curve = swap_within_range(
        pool.sqrt_price, pool.sqrt_min_price, pool.sqrt_max_price, pool.liquidity, actual_amount_in, a_for_b
    )

    output_amount = curve.output_amount
    if not fee_mode.fees_on_input:
        fee = get_fee_on_amount(
            output_amount, fee_rate, pool_fees, has_referral=fee_mode.has_referral, has_partner=has_partner
        )
        output_amount = fee.amount

    if output_amount <= 0:
        raise PoolStateError(f"swap output must be positive, got {output_amount}")
    if output_amount < params.minimum_amount_out:
        raise PoolStateError(f"output {output_amount} below minimum {params.minimum_amount_out}")

    if a_for_b:
        pool.reserve_a += amount_in
        pool.reserve_b = safe_sub(pool.reserve_b, output_amount, "reserve_b")
    else:
        pool.reserve_b += amount_in
        pool.reserve_a = safe_sub(pool.reserve_a, output_amount, "reserve_a")
    _post_fees(pool, fee, fee_mode.fees_on_token_a)

    pool.sqrt_price = curve.next_sqrt_price
    pool.pool_fees = replace(
        pool_fees,
        dynamic_fee=refresh_after_swap(pool_fees.dynamic_fee, current_point, curve.next_sqrt_price),
    )

    return SwapResult(
        direction=direction,
        amount_in=amount_in,
        actual_amount_in=actual_amount_in,
        output_amount=output_amount,
        next_sqrt_price=curve.next_sqrt_price,
        lp_fee=fee.lp_fee,
        protocol_fee=fee.protocol_fee,
        partner_fee=fee.partner_fee,
        referral_fee=fee.referral_fee,
        fees_on_token_a=fee_mode.fees_on_token_a,
        fee_rate=fee_rate,
    )


def apply_swap(pool: PoolState, params: SwapParams, current_point: int, activation_point: int) -> SwapResult:
    """
    Execute a swap against ``pool`` in place.

    Callers that need all-or-nothing behaviour run this on a copy; every
    check that can fail runs before the first write except the reserve
    debits, which cannot fail for a pool whose reserves back its liquidity.

    Raises:
        PoolValidationError: If not exactly one input is set
        PoolStateError: If the pool is not active, empty, or the output is
            zero or below ``minimum_amount_out``
        PriceRangeViolation: If the trade would leave the price range
    """
    if current_point < activation_point:
        raise PoolStateError(f"pool activates at {activation_point}, now {current_point}")
    return _execute(pool, params, current_point, activation_point)


def quote_swap(pool: PoolState, params: SwapParams, current_point: int, activation_point: int) -> SwapResult:
    """Price a swap without touching ``pool``. Allowed before activation."""
    return _execute(copy.deepcopy(pool), params, current_point, activation_point)
