"""
Fee scheduling and fee splitting kernels (deterministic, integer-only).

Trading fee rate (1e18-scaled):

    total_fee = min(MAX_FEE_RATE, base_fee(now, activation) + variable_fee(dynamic_fee))

The base fee starts at the cliff rate and decays per elapsed period, either
linearly or exponentially. Exponential decay compounds the 1e-6 cliff
numerator with a floor at every period and only then scales to 1e18, so a
tiny cliff can decay to exactly zero. Each step with a non-zero reduction
lowers the rate by at least one unit, which bounds the loop by the cliff
numerator as well as by ``number_of_period``. Before the pool activates the
schedule is quoted as fully decayed (``number_of_period`` elapsed). The
variable fee grows with the volatility accumulator maintained by
``volatility.py``.

A charged fee is split in a fixed order: protocol share first, then referral
out of the protocol share, then partner out of what remains; the LP keeps the
rest of the gross fee.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique

from ..fixed_point import div_round_up, mul_div
from ..state.fee_config import (
    FEE_RATE_DENOMINATOR,
    FEE_RATE_SCALE_UP,
    FEE_RATE_UNITS,
    MAX_FEE_RATE,
    BaseFeeConfig,
    CollectFeeMode,
    DynamicFeeState,
    FeeSchedulerMode,
    PoolFeesConfig,
)

# (va * bin_step)^2 * variable_fee_control is in 1e-20 units; 1e18 units is /100.
VARIABLE_FEE_SCALE_DOWN = 100


@unique
class TradeDirection(Enum):
    A_TO_B = "a_to_b"
    B_TO_A = "b_to_a"


@dataclass(frozen=True)
class FeeMode:
    fees_on_input: bool
    fees_on_token_a: bool
    has_referral: bool


# (collect_fee_mode, direction) -> (fees_on_input, fees_on_token_a)
_FEE_MODE_TABLE = {
    # Fee on the output leg.
    (CollectFeeMode.BOTH_TOKEN, TradeDirection.A_TO_B): (False, False),
    (CollectFeeMode.BOTH_TOKEN, TradeDirection.B_TO_A): (False, True),
    # Fee always in token B.
    (CollectFeeMode.ONLY_B, TradeDirection.A_TO_B): (False, False),
    (CollectFeeMode.ONLY_B, TradeDirection.B_TO_A): (True, False),
}


def get_fee_mode(collect_fee_mode: CollectFeeMode, trade_direction: TradeDirection, has_referral: bool) -> FeeMode:
    fees_on_input, fees_on_token_a = _FEE_MODE_TABLE[(collect_fee_mode, trade_direction)]
    return FeeMode(fees_on_input=fees_on_input, fees_on_token_a=fees_on_token_a, has_referral=has_referral)


def _elapsed_periods(base_fee: BaseFeeConfig, current_point: int, activation_point: int) -> int:
    if current_point < activation_point:
        # Pre-activation quotes assume the schedule has fully decayed.
        return base_fee.number_of_period
    period = (current_point - activation_point) // base_fee.period_frequency
    return min(period, base_fee.number_of_period)


def get_base_fee(base_fee: BaseFeeConfig, current_point: int, activation_point: int) -> int:
    """Base fee rate (1e18-scaled) at ``current_point``."""
    cliff_rate = base_fee.cliff_fee_numerator * FEE_RATE_SCALE_UP
    if base_fee.period_frequency == 0:
        return cliff_rate

    periods = _elapsed_periods(base_fee, current_point, activation_point)
    if base_fee.fee_scheduler_mode is FeeSchedulerMode.LINEAR:
        reduction = periods * base_fee.reduction_factor * FEE_RATE_SCALE_UP
        return max(0, cliff_rate - reduction)

    # Compounded in 1e-6 units, floored each period, then scaled up.
    keep = FEE_RATE_UNITS - base_fee.reduction_factor
    rate = base_fee.cliff_fee_numerator
    if keep == FEE_RATE_UNITS:
        return cliff_rate
    for _ in range(periods):
        if rate == 0:
            break
        rate = rate * keep // FEE_RATE_UNITS
    return rate * FEE_RATE_SCALE_UP


def get_variable_fee(dynamic_fee: DynamicFeeState) -> int:
    """Variable fee rate (1e18-scaled); zero when the dynamic fee is disabled."""
    if not dynamic_fee.initialized:
        return 0
    square_vfa_bin = (dynamic_fee.volatility_accumulator * dynamic_fee.bin_step) ** 2
    v_fee = square_vfa_bin * dynamic_fee.variable_fee_control
    return div_round_up(v_fee, VARIABLE_FEE_SCALE_DOWN)


def get_total_fee(pool_fees: PoolFeesConfig, current_point: int, activation_point: int) -> int:
    """Total trading fee rate (1e18-scaled), capped at ``MAX_FEE_RATE``."""
    base = get_base_fee(pool_fees.base_fee, current_point, activation_point)
    variable = get_variable_fee(pool_fees.dynamic_fee)
    return min(MAX_FEE_RATE, base + variable)


@dataclass(frozen=True)
class FeeOnAmount:
    amount: int
    lp_fee: int
    protocol_fee: int
    partner_fee: int
    referral_fee: int

    def __post_init__(self) -> None:
        for name in ("amount", "lp_fee", "protocol_fee", "partner_fee", "referral_fee"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")

    @property
    def total_fee(self) -> int:
        return self.lp_fee + self.protocol_fee + self.partner_fee + self.referral_fee


def get_fee_on_amount(
    amount: int,
    fee_rate: int,
    pool_fees: PoolFeesConfig,
    *,
    has_referral: bool,
    has_partner: bool,
) -> FeeOnAmount:
    """
    Charge ``fee_rate`` on ``amount`` and split the fee.

    The gross fee rounds up (in the pool's favour); every share below it
    rounds down, so the LP keeps any dust.
    """
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
        raise ValueError(f"amount must be a non-negative int, got {amount}")
    if not (0 <= fee_rate <= MAX_FEE_RATE):
        raise ValueError(f"fee_rate must be in [0, {MAX_FEE_RATE}]: {fee_rate}")

    trade_fee = mul_div(amount, fee_rate, FEE_RATE_DENOMINATOR, round_up=True)
    protocol_fee = trade_fee * pool_fees.protocol_fee_percent // 100
    lp_fee = trade_fee - protocol_fee

    referral_fee = protocol_fee * pool_fees.referral_fee_percent // 100 if has_referral else 0
    protocol_after_referral = protocol_fee - referral_fee
    partner_fee = 0
    if has_partner and pool_fees.partner_fee_percent > 0:
        partner_fee = protocol_after_referral * pool_fees.partner_fee_percent // 100

    return FeeOnAmount(
        amount=amount - trade_fee,
        lp_fee=lp_fee,
        protocol_fee=protocol_after_referral - partner_fee,
        partner_fee=partner_fee,
        referral_fee=referral_fee,
    )
