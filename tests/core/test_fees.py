"""Tests for fee scheduling, fee modes and fee splitting."""

from __future__ import annotations

import hypothesis.strategies as st
import pytest
from hypothesis import given, settings

from rangepool.core.fees import (
    TradeDirection,
    get_base_fee,
    get_fee_mode,
    get_fee_on_amount,
    get_total_fee,
    get_variable_fee,
)
from rangepool.state.fee_config import (
    MAX_FEE_RATE,
    MAX_NUMBER_OF_PERIOD,
    BaseFeeConfig,
    CollectFeeMode,
    DynamicFeeState,
    FeeSchedulerMode,
    PoolFeesConfig,
)

HOUR = 3600


def _scenario_b() -> BaseFeeConfig:
    return BaseFeeConfig(
        cliff_fee_numerator=10_000,
        fee_scheduler_mode=FeeSchedulerMode.LINEAR,
        period_frequency=HOUR,
        number_of_period=5,
        reduction_factor=1_000,
    )


# ---------------------------------------------------------------------------
# Base fee schedule
# ---------------------------------------------------------------------------

def test_scenario_b_linear_decay() -> None:
    base = _scenario_b()
    assert get_base_fee(base, 0, 0) == 10**16  # 1%
    assert get_base_fee(base, 3 * HOUR, 0) == 7 * 10**15  # 0.7%
    assert get_base_fee(base, 3 * HOUR + HOUR - 1, 0) == 7 * 10**15


def test_scenario_b_decay_caps_at_number_of_period() -> None:
    base = _scenario_b()
    assert get_base_fee(base, 6 * HOUR, 0) == 5 * 10**15  # floors at 0.5%
    assert get_base_fee(base, 10_000 * HOUR, 0) == 5 * 10**15


def test_before_activation_quotes_fully_decayed_fee() -> None:
    base = _scenario_b()
    assert get_base_fee(base, 100, 1_000) == 5 * 10**15


def test_linear_decay_never_goes_negative() -> None:
    base = BaseFeeConfig(
        cliff_fee_numerator=2_000,
        period_frequency=10,
        number_of_period=100,
        reduction_factor=500,
    )
    assert get_base_fee(base, 1_000, 0) == 0


def test_exponential_decay() -> None:
    base = BaseFeeConfig(
        cliff_fee_numerator=10_000,
        fee_scheduler_mode=FeeSchedulerMode.EXPONENTIAL,
        period_frequency=60,
        number_of_period=10,
        reduction_factor=100_000,  # 10% per period
    )
    assert get_base_fee(base, 0, 0) == 10**16
    assert get_base_fee(base, 120, 0) == 81 * 10**14


def test_exponential_decay_floors_in_fee_units() -> None:
    base = BaseFeeConfig(
        cliff_fee_numerator=3,
        fee_scheduler_mode=FeeSchedulerMode.EXPONENTIAL,
        period_frequency=1,
        number_of_period=4,
        reduction_factor=500_000,
    )
    # 3 -> 1 -> 0, each step floored in 1e-6 units
    assert get_base_fee(base, 1, 0) == 1 * 10**12
    assert get_base_fee(base, 2, 0) == 0
    assert get_base_fee(base, 4, 0) == 0


def test_exponential_decay_with_max_periods() -> None:
    base = BaseFeeConfig(
        cliff_fee_numerator=100_000,
        fee_scheduler_mode=FeeSchedulerMode.EXPONENTIAL,
        period_frequency=1,
        number_of_period=MAX_NUMBER_OF_PERIOD,
        reduction_factor=1,
    )
    fee = get_base_fee(base, MAX_NUMBER_OF_PERIOD, 0)
    assert 0 < fee < 100_000 * 10**12
    assert get_base_fee(base, 0, 1) == fee


def test_number_of_period_is_bounded() -> None:
    with pytest.raises(ValueError):
        BaseFeeConfig(
            cliff_fee_numerator=10_000,
            fee_scheduler_mode=FeeSchedulerMode.EXPONENTIAL,
            period_frequency=1,
            number_of_period=MAX_NUMBER_OF_PERIOD + 1,
            reduction_factor=100_000,
        )


def test_constant_fee_without_periods() -> None:
    base = BaseFeeConfig(cliff_fee_numerator=2_500)
    assert get_base_fee(base, 0, 0) == get_base_fee(base, 10**9, 0) == 25 * 10**14


# ---------------------------------------------------------------------------
# Variable fee and cap
# ---------------------------------------------------------------------------

def test_variable_fee_disabled_is_zero() -> None:
    assert get_variable_fee(DynamicFeeState(volatility_accumulator=10_000, variable_fee_control=100)) == 0


def test_variable_fee_formula() -> None:
    dynamic = DynamicFeeState(
        initialized=True,
        bin_step=10,
        volatility_accumulator=10_000,
        variable_fee_control=100,
    )
    # (10_000 * 10)^2 * 100 / 100
    assert get_variable_fee(dynamic) == 10**10


def test_variable_fee_rounds_up() -> None:
    dynamic = DynamicFeeState(initialized=True, bin_step=1, volatility_accumulator=1, variable_fee_control=1)
    assert get_variable_fee(dynamic) == 1


def test_total_fee_is_capped() -> None:
    dynamic = DynamicFeeState(
        initialized=True,
        bin_step=100,
        volatility_accumulator=14_460_000,
        variable_fee_control=10**6,
    )
    fees = PoolFeesConfig(base_fee=BaseFeeConfig(cliff_fee_numerator=100_000), dynamic_fee=dynamic)
    assert get_total_fee(fees, 0, 0) == MAX_FEE_RATE


@given(
    cliff=st.integers(min_value=0, max_value=100_000),
    reduction=st.integers(min_value=0, max_value=100_000),
    periods=st.integers(min_value=0, max_value=50),
    frequency=st.integers(min_value=1, max_value=10_000),
    mode=st.sampled_from(list(FeeSchedulerMode)),
    bin_step=st.integers(min_value=1, max_value=400),
    max_va=st.integers(min_value=0, max_value=20_000_000),
    va_fraction=st.floats(min_value=0.0, max_value=1.0),
    control=st.integers(min_value=0, max_value=10**7),
    now=st.integers(min_value=0, max_value=10**7),
    activation=st.integers(min_value=0, max_value=10**7),
)
@settings(max_examples=300, deadline=2000)
def test_total_fee_never_exceeds_max(
    cliff: int,
    reduction: int,
    periods: int,
    frequency: int,
    mode: FeeSchedulerMode,
    bin_step: int,
    max_va: int,
    va_fraction: float,
    control: int,
    now: int,
    activation: int,
) -> None:
    base = BaseFeeConfig(
        cliff_fee_numerator=cliff,
        fee_scheduler_mode=mode,
        period_frequency=frequency if periods else 0,
        number_of_period=periods,
        reduction_factor=reduction,
    )
    dynamic = DynamicFeeState(
        initialized=True,
        bin_step=bin_step,
        max_volatility_accumulator=max_va,
        volatility_accumulator=int(max_va * va_fraction),
        variable_fee_control=control,
    )
    fee = get_total_fee(PoolFeesConfig(base_fee=base, dynamic_fee=dynamic), now, activation)
    assert 0 <= fee <= MAX_FEE_RATE


# ---------------------------------------------------------------------------
# Fee mode table
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "collect_fee_mode, direction, fees_on_input, fees_on_token_a",
    [
        (CollectFeeMode.BOTH_TOKEN, TradeDirection.A_TO_B, False, False),
        (CollectFeeMode.BOTH_TOKEN, TradeDirection.B_TO_A, False, True),
        (CollectFeeMode.ONLY_B, TradeDirection.A_TO_B, False, False),
        (CollectFeeMode.ONLY_B, TradeDirection.B_TO_A, True, False),
    ],
)
def test_fee_mode_table(
    collect_fee_mode: CollectFeeMode, direction: TradeDirection, fees_on_input: bool, fees_on_token_a: bool
) -> None:
    mode = get_fee_mode(collect_fee_mode, direction, has_referral=True)
    assert mode.fees_on_input is fees_on_input
    assert mode.fees_on_token_a is fees_on_token_a
    assert mode.has_referral is True


# ---------------------------------------------------------------------------
# Fee split
# ---------------------------------------------------------------------------

def test_fee_split_order() -> None:
    fees = PoolFeesConfig(
        base_fee=BaseFeeConfig(cliff_fee_numerator=10_000),
        protocol_fee_percent=20,
        partner_fee_percent=50,
        referral_fee_percent=20,
    )
    split = get_fee_on_amount(1_000_000, 10**16, fees, has_referral=True, has_partner=True)
    assert split.total_fee == 10_000
    assert split.lp_fee == 8_000
    assert split.referral_fee == 400
    assert split.partner_fee == 800
    assert split.protocol_fee == 800
    assert split.amount == 990_000


def test_fee_split_without_referral_or_partner() -> None:
    fees = PoolFeesConfig(
        base_fee=BaseFeeConfig(cliff_fee_numerator=10_000),
        protocol_fee_percent=20,
        partner_fee_percent=50,
    )
    split = get_fee_on_amount(1_000_000, 10**16, fees, has_referral=False, has_partner=False)
    assert (split.lp_fee, split.protocol_fee, split.partner_fee, split.referral_fee) == (8_000, 2_000, 0, 0)


def test_gross_fee_rounds_up() -> None:
    fees = PoolFeesConfig(base_fee=BaseFeeConfig(cliff_fee_numerator=10_000))
    split = get_fee_on_amount(1, 10**16, fees, has_referral=False, has_partner=False)
    assert split.total_fee == 1
    assert split.amount == 0


def test_fee_split_rejects_rate_above_max() -> None:
    fees = PoolFeesConfig(base_fee=BaseFeeConfig(cliff_fee_numerator=0))
    with pytest.raises(ValueError):
        get_fee_on_amount(100, MAX_FEE_RATE + 1, fees, has_referral=False, has_partner=False)


@given(
    amount=st.integers(min_value=0, max_value=2**64 - 1),
    rate=st.integers(min_value=0, max_value=MAX_FEE_RATE),
    protocol=st.integers(min_value=0, max_value=100),
    partner=st.integers(min_value=0, max_value=100),
    referral=st.integers(min_value=0, max_value=100),
    has_referral=st.booleans(),
    has_partner=st.booleans(),
)
@settings(max_examples=300, deadline=2000)
def test_fee_split_conserves_amount(
    amount: int,
    rate: int,
    protocol: int,
    partner: int,
    referral: int,
    has_referral: bool,
    has_partner: bool,
) -> None:
    fees = PoolFeesConfig(
        base_fee=BaseFeeConfig(cliff_fee_numerator=0),
        protocol_fee_percent=protocol,
        partner_fee_percent=partner,
        referral_fee_percent=referral,
    )
    split = get_fee_on_amount(amount, rate, fees, has_referral=has_referral, has_partner=has_partner)
    assert split.amount + split.total_fee == amount
    assert split.amount >= 0
