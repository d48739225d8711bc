"""Tests for the pool state records."""

from __future__ import annotations

import pytest

from rangepool.fixed_point import Q96
from rangepool.state.balances import BalanceTable
from rangepool.state.fee_config import (
    BaseFeeConfig,
    CollectFeeMode,
    DynamicFeeState,
    FeeSchedulerMode,
    PoolFeesConfig,
)
from rangepool.state.pools import PoolState, compute_pool_id
from rangepool.state.positions import Position, PositionTable
from rangepool.state.vesting import VestingState


def _fees() -> PoolFeesConfig:
    return PoolFeesConfig(base_fee=BaseFeeConfig(cliff_fee_numerator=2_500))


# ---------------------------------------------------------------------------
# Fee configuration
# ---------------------------------------------------------------------------

def test_base_fee_rejects_rate_above_cap() -> None:
    BaseFeeConfig(cliff_fee_numerator=100_000)
    with pytest.raises(ValueError):
        BaseFeeConfig(cliff_fee_numerator=100_001)


def test_base_fee_rejects_bad_schedule() -> None:
    with pytest.raises(ValueError):
        BaseFeeConfig(cliff_fee_numerator=1, period_frequency=10, number_of_period=0)
    with pytest.raises(ValueError):
        BaseFeeConfig(
            cliff_fee_numerator=1,
            fee_scheduler_mode=FeeSchedulerMode.EXPONENTIAL,
            reduction_factor=1_000_000,
        )
    with pytest.raises(TypeError):
        BaseFeeConfig(cliff_fee_numerator=True)


def test_dynamic_fee_checks_only_when_initialized() -> None:
    DynamicFeeState(bin_step=0, filter_period=200)
    with pytest.raises(ValueError):
        DynamicFeeState(initialized=True, bin_step=0)
    with pytest.raises(ValueError):
        DynamicFeeState(initialized=True, filter_period=120, decay_period=120)
    with pytest.raises(ValueError):
        DynamicFeeState(max_volatility_accumulator=10, volatility_accumulator=11)


def test_bin_step_q96() -> None:
    assert DynamicFeeState(bin_step=10_000).bin_step_q96 == Q96


def test_fee_percentages_are_bounded() -> None:
    with pytest.raises(ValueError):
        PoolFeesConfig(base_fee=BaseFeeConfig(cliff_fee_numerator=0), protocol_fee_percent=101)


# ---------------------------------------------------------------------------
# Pool state
# ---------------------------------------------------------------------------

def test_pool_state_validates_range() -> None:
    with pytest.raises(ValueError):
        PoolState("0x", "A", "A", Q96, Q96 // 2, 2 * Q96, _fees())
    with pytest.raises(ValueError):
        PoolState("0x", "A", "B", Q96, 2 * Q96, Q96 // 2, _fees())
    with pytest.raises(ValueError):
        PoolState("0x", "A", "B", 3 * Q96, Q96 // 2, 2 * Q96, _fees())


def test_fresh_pool_invariants() -> None:
    pool = PoolState("0x", "A", "B", Q96, Q96 // 2, 2 * Q96, _fees())
    assert pool.verify_liquidity_conservation()
    assert pool.verify_price_bounds()
    assert not pool.has_partner()
    assert not pool.pool_reward_initialized()
    assert pool.collect_fee_mode is CollectFeeMode.BOTH_TOKEN


def test_pool_id_is_deterministic_and_parameter_sensitive() -> None:
    base = compute_pool_id("A", "B", Q96 // 2, 2 * Q96, CollectFeeMode.BOTH_TOKEN)
    assert base == compute_pool_id("A", "B", Q96 // 2, 2 * Q96, CollectFeeMode.BOTH_TOKEN)
    assert base.startswith("0x") and len(base) == 66
    assert base != compute_pool_id("B", "A", Q96 // 2, 2 * Q96, CollectFeeMode.BOTH_TOKEN)
    assert base != compute_pool_id("A", "B", Q96 // 2, 2 * Q96, CollectFeeMode.ONLY_B)
    with pytest.raises(ValueError):
        compute_pool_id("A", "B", Q96, Q96, CollectFeeMode.BOTH_TOKEN)


# ---------------------------------------------------------------------------
# Positions and vesting records
# ---------------------------------------------------------------------------

def test_position_table_get_or_create() -> None:
    table = PositionTable()
    position, created = table.get_or_create("alice")
    assert created
    again, created = table.get_or_create("alice")
    assert again is position and not created
    assert "alice" in table and len(table) == 1
    with pytest.raises(KeyError):
        table.require("bob")


def test_position_liquidity_buckets() -> None:
    position = Position("alice", unlocked_liquidity=5, vested_liquidity=3, permanent_locked_liquidity=2)
    assert position.total_liquidity() == 10
    assert not position.is_empty()
    assert Position("bob").is_empty()
    with pytest.raises(ValueError):
        Position("")


def test_vesting_state_rejects_over_release() -> None:
    with pytest.raises(ValueError):
        VestingState(0, 10, 5, 1, 2, total_released_liquidity=8)
    with pytest.raises(ValueError):
        VestingState(-1, 10, 5, 1, 2)


# ---------------------------------------------------------------------------
# Balance table
# ---------------------------------------------------------------------------

def test_balance_table_is_sparse_and_non_negative() -> None:
    table = BalanceTable()
    table.add("alice", "A", 10)
    table.subtract("alice", "A", 10)
    assert table.get("alice", "A") == 0
    assert repr(table) == "BalanceTable(0 entries)"
    with pytest.raises(ValueError):
        table.subtract("alice", "A", 1)
    with pytest.raises(ValueError):
        table.subtract("alice", "A", -1)


def test_balance_table_total_supply() -> None:
    table = BalanceTable()
    table.add("alice", "A", 3)
    table.add("bob", "A", 4)
    table.add("bob", "B", 100)
    assert table.total_supply("A") == 7
