"""Tests for vesting schedules and lock/release."""

from __future__ import annotations

from typing import List

import hypothesis.strategies as st
import pytest
from hypothesis import given, settings

from rangepool.core.ledger import add_liquidity, remove_liquidity
from rangepool.core.vesting import (
    VestingParams,
    accumulate_released,
    get_max_unlocked_liquidity,
    get_new_release_liquidity,
    get_total_lock_amount,
    is_done,
    lock_position,
    release_vested_liquidity,
    validate_vesting_params,
)
from rangepool.errors import PoolMathError, PoolStateError, PoolValidationError
from rangepool.fixed_point import Q96, U64_MAX
from rangepool.state.fee_config import BaseFeeConfig, PoolFeesConfig
from rangepool.state.pools import PoolState
from rangepool.state.vesting import VestingState

T0 = 1_000
MAX_DURATION = 10_000


def _scenario_c() -> VestingState:
    return VestingState(
        cliff_point=T0,
        period_frequency=100,
        cliff_unlock_liquidity=50,
        liquidity_per_period=10,
        number_of_period=4,
    )


def _pool(liquidity: int = 1_000) -> PoolState:
    pool = PoolState(
        pool_id="0xpool",
        token_a="TOKEN_A",
        token_b="TOKEN_B",
        sqrt_price=2 * Q96,
        sqrt_min_price=Q96,
        sqrt_max_price=4 * Q96,
        pool_fees=PoolFeesConfig(base_fee=BaseFeeConfig(cliff_fee_numerator=0)),
    )
    add_liquidity(pool, "alice", liquidity, U64_MAX, U64_MAX, 0)
    return pool


def _params(**overrides: int) -> VestingParams:
    values = dict(
        cliff_point=100,
        period_frequency=100,
        cliff_unlock_liquidity=50,
        liquidity_per_period=10,
        number_of_period=4,
    )
    values.update(overrides)
    return VestingParams(**values)


# ---------------------------------------------------------------------------
# Schedule math
# ---------------------------------------------------------------------------

def test_scenario_c_unlock_curve() -> None:
    vesting = _scenario_c()
    assert get_total_lock_amount(vesting) == 90
    assert get_max_unlocked_liquidity(vesting, T0 - 1) == 0
    assert get_max_unlocked_liquidity(vesting, T0) == 50
    assert get_max_unlocked_liquidity(vesting, T0 + 250) == 70
    assert get_max_unlocked_liquidity(vesting, T0 + 500) == 90


def test_cliff_only_schedule() -> None:
    vesting = VestingState(
        cliff_point=T0,
        period_frequency=0,
        cliff_unlock_liquidity=40,
        liquidity_per_period=0,
        number_of_period=0,
    )
    assert get_max_unlocked_liquidity(vesting, T0 - 1) == 0
    assert get_max_unlocked_liquidity(vesting, T0 + 10**9) == 40


def test_accumulate_released_cannot_exceed_total() -> None:
    vesting = _scenario_c()
    accumulate_released(vesting, 90)
    assert is_done(vesting)
    with pytest.raises(PoolMathError):
        accumulate_released(vesting, 1)


def test_total_lock_amount_overflow() -> None:
    with pytest.raises(PoolMathError):
        get_total_lock_amount(_params(liquidity_per_period=1 << 127, number_of_period=4))


@given(nows=st.lists(st.integers(min_value=0, max_value=3_000), min_size=1, max_size=20))
@settings(max_examples=200, deadline=2000)
def test_release_consistency(nows: List[int]) -> None:
    vesting = _scenario_c()
    for now in sorted(nows):
        released_before = vesting.total_released_liquidity
        new_release = get_new_release_liquidity(vesting, now)
        assert new_release + released_before == get_max_unlocked_liquidity(vesting, now)
        accumulate_released(vesting, new_release)
        assert vesting.total_released_liquidity <= get_total_lock_amount(vesting)


# ---------------------------------------------------------------------------
# Lock-time validation
# ---------------------------------------------------------------------------

def test_validate_defaults_cliff_to_now() -> None:
    vesting = validate_vesting_params(_params(cliff_point=None), 500, MAX_DURATION)  # type: ignore[arg-type]
    assert vesting.cliff_point == 500
    assert vesting.total_released_liquidity == 0


def test_validate_rejects_cliff_in_past() -> None:
    with pytest.raises(PoolValidationError):
        validate_vesting_params(_params(cliff_point=99), 100, MAX_DURATION)


def test_validate_rejects_long_schedule() -> None:
    # (cliff - now) + frequency * periods = 100 + 400
    validate_vesting_params(_params(), 0, 500)
    with pytest.raises(PoolValidationError):
        validate_vesting_params(_params(), 0, 499)


def test_validate_rejects_empty_lock() -> None:
    with pytest.raises(PoolValidationError):
        validate_vesting_params(
            _params(cliff_unlock_liquidity=0, liquidity_per_period=0, number_of_period=0, period_frequency=0),
            0,
            MAX_DURATION,
        )


def test_validate_requires_complete_periodic_fields() -> None:
    with pytest.raises(PoolValidationError):
        validate_vesting_params(_params(period_frequency=0), 0, MAX_DURATION)
    with pytest.raises(PoolValidationError):
        validate_vesting_params(_params(number_of_period=0), 0, MAX_DURATION)


# ---------------------------------------------------------------------------
# Lock / release on a position
# ---------------------------------------------------------------------------

def test_lock_moves_unlocked_to_vested() -> None:
    pool = _pool()
    lock_position(pool, "alice", _params(), 0, MAX_DURATION)
    position = pool.positions.require("alice")
    assert (position.unlocked_liquidity, position.vested_liquidity) == (910, 90)
    assert pool.liquidity == 1_000
    assert pool.verify_liquidity_conservation()
    assert "alice" in pool.vestings


def test_vested_liquidity_cannot_be_withdrawn() -> None:
    pool = _pool()
    lock_position(pool, "alice", _params(), 0, MAX_DURATION)
    with pytest.raises(PoolStateError):
        remove_liquidity(pool, "alice", 1_000, 0, 0, 0)


def test_lock_rejects_second_schedule_and_oversized_lock() -> None:
    pool = _pool(liquidity=80)
    with pytest.raises(PoolStateError):
        lock_position(pool, "alice", _params(), 0, MAX_DURATION)
    lock_position(pool, "alice", _params(cliff_unlock_liquidity=0), 0, MAX_DURATION)
    with pytest.raises(PoolStateError):
        lock_position(pool, "alice", _params(cliff_unlock_liquidity=0), 0, MAX_DURATION)


def test_release_before_cliff_fails() -> None:
    pool = _pool()
    lock_position(pool, "alice", _params(), 0, MAX_DURATION)
    with pytest.raises(PoolStateError):
        release_vested_liquidity(pool, "alice", 99)


def test_release_without_schedule_fails() -> None:
    with pytest.raises(PoolStateError):
        release_vested_liquidity(_pool(), "alice", 0)


def test_lock_release_round_trip() -> None:
    pool = _pool()
    lock_position(pool, "alice", _params(), 0, MAX_DURATION)

    assert release_vested_liquidity(pool, "alice", 250) == 60
    assert pool.positions.require("alice").vested_liquidity == 30
    assert pool.vestings["alice"].total_released_liquidity == 60

    assert release_vested_liquidity(pool, "alice", 10_000) == 30
    position = pool.positions.require("alice")
    assert (position.unlocked_liquidity, position.vested_liquidity) == (1_000, 0)
    assert "alice" not in pool.vestings
    assert pool.verify_liquidity_conservation()
