"""
Liquidity ledger: per-position fee/reward settlement and liquidity lifecycle.

Fees and rewards are never fanned out to positions. Each swap (or reward
accrual) bumps a pool-wide "per unit of liquidity" accumulator; a position
remembers the accumulator value it last settled against:

    pending    += position_liquidity * (accumulator - checkpoint) / 2**128
    checkpoint  = accumulator

Every operation that changes a position's liquidity or pays out its pending
balance settles that position first. Skipping the settle would price the
new liquidity into fees it never earned (or drop fees the old liquidity did).

Functions here mutate the ``PoolState`` they are given and return a result
record; ``Pool`` runs them against a working copy and commits on success.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ..errors import PoolStateError, PoolValidationError
from ..fixed_point import LIQUIDITY_SCALE, mul_shr, safe_sub, to_u128
from ..state.balances import PubKey
from ..state.pools import PoolState
from ..state.positions import Position
from .price_curve import get_amounts_for_modify_liquidity
from .rewards import update_pool_rewards, validate_reward_index


@dataclass(frozen=True)
class ModifyLiquidityResult:
    owner: PubKey
    liquidity_delta: int
    amount_a: int
    amount_b: int
    position_created: bool = False


@dataclass(frozen=True)
class ClaimFeeResult:
    owner: PubKey
    fee_a: int
    fee_b: int


def _require_positive(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise PoolValidationError(f"{name} must be a positive int, got {value}")


def require_position(pool: PoolState, owner: PubKey) -> Position:
    position = pool.positions.get(owner)
    if position is None:
        raise PoolStateError(f"position for {owner} is not initialized")
    return position


def settle_position_fees(pool: PoolState, position: Position) -> None:
    liquidity = position.total_liquidity()
    if liquidity > 0:
        delta_a = pool.fee_a_per_liquidity - position.fee_a_per_token_checkpoint
        delta_b = pool.fee_b_per_liquidity - position.fee_b_per_token_checkpoint
        position.fee_a_pending += mul_shr(liquidity, delta_a, LIQUIDITY_SCALE)
        position.fee_b_pending += mul_shr(liquidity, delta_b, LIQUIDITY_SCALE)
    position.fee_a_per_token_checkpoint = pool.fee_a_per_liquidity
    position.fee_b_per_token_checkpoint = pool.fee_b_per_liquidity


def settle_position_rewards(pool: PoolState, position: Position) -> None:
    liquidity = position.total_liquidity()
    for pool_info, user_info in zip(pool.reward_infos, position.reward_infos):
        if not pool_info.initialized:
            continue
        delta = pool_info.reward_per_token_stored - user_info.reward_per_token_checkpoint
        if liquidity > 0:
            user_info.reward_pending += mul_shr(liquidity, delta, LIQUIDITY_SCALE)
        user_info.reward_per_token_checkpoint = pool_info.reward_per_token_stored


def settle_position(pool: PoolState, position: Position, current_point: int) -> None:
    """Accrue pool rewards to ``current_point``, then settle fees and rewards."""
    update_pool_rewards(pool, current_point)
    settle_position_fees(pool, position)
    settle_position_rewards(pool, position)


def open_position(pool: PoolState, owner: PubKey, current_point: int) -> Tuple[Position, bool]:
    """Fetch or create the owner's position, settled against current accumulators."""
    if not owner:
        raise PoolValidationError("owner must be non-empty")
    position, created = pool.positions.get_or_create(owner)
    if created:
        pool.metrics.total_position += 1
    settle_position(pool, position, current_point)
    return position, created


def add_liquidity(
    pool: PoolState,
    owner: PubKey,
    liquidity_delta: int,
    token_a_amount_threshold: int,
    token_b_amount_threshold: int,
    current_point: int,
) -> ModifyLiquidityResult:
    """
    Deposit ``liquidity_delta`` into the owner's unlocked bucket.

    Token amounts round up. Thresholds are the most the caller will pay.
    """
    _require_positive("liquidity_delta", liquidity_delta)
    position, created = open_position(pool, owner, current_point)

    amount_a, amount_b = get_amounts_for_modify_liquidity(
        pool.sqrt_price, pool.sqrt_min_price, pool.sqrt_max_price, liquidity_delta, round_up=True
    )
    if amount_a == 0 and amount_b == 0:
        raise PoolValidationError("liquidity delta requires no tokens")
    if amount_a > token_a_amount_threshold:
        raise PoolStateError(f"amount_a ({amount_a}) exceeds threshold ({token_a_amount_threshold})")
    if amount_b > token_b_amount_threshold:
        raise PoolStateError(f"amount_b ({amount_b}) exceeds threshold ({token_b_amount_threshold})")

    position.unlocked_liquidity = to_u128(position.unlocked_liquidity + liquidity_delta, "unlocked_liquidity")
    pool.liquidity = to_u128(pool.liquidity + liquidity_delta, "liquidity")
    pool.reserve_a += amount_a
    pool.reserve_b += amount_b
    return ModifyLiquidityResult(
        owner=owner,
        liquidity_delta=liquidity_delta,
        amount_a=amount_a,
        amount_b=amount_b,
        position_created=created,
    )


def remove_liquidity(
    pool: PoolState,
    owner: PubKey,
    liquidity_delta: int,
    token_a_amount_threshold: int,
    token_b_amount_threshold: int,
    current_point: int,
) -> ModifyLiquidityResult:
    """
    Withdraw ``liquidity_delta`` from the owner's unlocked bucket.

    Token amounts round down. Thresholds are the least the caller accepts.
    """
    _require_positive("liquidity_delta", liquidity_delta)
    position = require_position(pool, owner)
    settle_position(pool, position, current_point)
    if liquidity_delta > position.unlocked_liquidity:
        raise PoolStateError(
            f"insufficient unlocked liquidity: {position.unlocked_liquidity} < {liquidity_delta}"
        )

    amount_a, amount_b = get_amounts_for_modify_liquidity(
        pool.sqrt_price, pool.sqrt_min_price, pool.sqrt_max_price, liquidity_delta, round_up=False
    )
    if amount_a < token_a_amount_threshold:
        raise PoolStateError(f"amount_a ({amount_a}) below threshold ({token_a_amount_threshold})")
    if amount_b < token_b_amount_threshold:
        raise PoolStateError(f"amount_b ({amount_b}) below threshold ({token_b_amount_threshold})")

    position.unlocked_liquidity -= liquidity_delta
    pool.liquidity = safe_sub(pool.liquidity, liquidity_delta, "liquidity")
    pool.reserve_a = safe_sub(pool.reserve_a, amount_a, "reserve_a")
    pool.reserve_b = safe_sub(pool.reserve_b, amount_b, "reserve_b")
    return ModifyLiquidityResult(owner=owner, liquidity_delta=-liquidity_delta, amount_a=amount_a, amount_b=amount_b)


def remove_all_liquidity(
    pool: PoolState,
    owner: PubKey,
    token_a_amount_threshold: int,
    token_b_amount_threshold: int,
    current_point: int,
) -> ModifyLiquidityResult:
    position = require_position(pool, owner)
    if position.unlocked_liquidity == 0:
        raise PoolStateError(f"position for {owner} has no unlocked liquidity")
    return remove_liquidity(
        pool,
        owner,
        position.unlocked_liquidity,
        token_a_amount_threshold,
        token_b_amount_threshold,
        current_point,
    )


def permanent_lock(pool: PoolState, owner: PubKey, liquidity: int, current_point: int) -> int:
    """Move unlocked liquidity into the permanent bucket. One way."""
    _require_positive("liquidity", liquidity)
    position = require_position(pool, owner)
    settle_position(pool, position, current_point)
    if liquidity > position.unlocked_liquidity:
        raise PoolStateError(
            f"insufficient unlocked liquidity: {position.unlocked_liquidity} < {liquidity}"
        )
    position.unlocked_liquidity -= liquidity
    position.permanent_locked_liquidity = to_u128(
        position.permanent_locked_liquidity + liquidity, "permanent_locked_liquidity"
    )
    pool.permanent_lock_liquidity = to_u128(pool.permanent_lock_liquidity + liquidity, "permanent_lock_liquidity")
    return liquidity


def claim_position_fee(pool: PoolState, owner: PubKey, current_point: int) -> ClaimFeeResult:
    """Zero the position's pending fees and pay them out of reserves."""
    position = require_position(pool, owner)
    settle_position(pool, position, current_point)

    fee_a, fee_b = position.fee_a_pending, position.fee_b_pending
    position.fee_a_pending = 0
    position.fee_b_pending = 0
    position.total_claimed_a_fee += fee_a
    position.total_claimed_b_fee += fee_b
    pool.reserve_a = safe_sub(pool.reserve_a, fee_a, "reserve_a")
    pool.reserve_b = safe_sub(pool.reserve_b, fee_b, "reserve_b")
    return ClaimFeeResult(owner=owner, fee_a=fee_a, fee_b=fee_b)


def claim_reward(pool: PoolState, owner: PubKey, index: int, current_point: int) -> int:
    validate_reward_index(index)
    if not pool.reward_infos[index].initialized:
        raise PoolStateError(f"reward {index} is not initialized")
    position = require_position(pool, owner)
    settle_position(pool, position, current_point)

    user_info = position.reward_infos[index]
    amount = user_info.reward_pending
    user_info.reward_pending = 0
    user_info.total_claimed_rewards += amount
    return amount


def _check_claim_caps(max_amount_a: int, max_amount_b: int) -> None:
    if max_amount_a < 0 or max_amount_b < 0:
        raise PoolValidationError(f"claim caps must be non-negative: ({max_amount_a}, {max_amount_b})")


def claim_protocol_fee(pool: PoolState, max_amount_a: int, max_amount_b: int) -> Tuple[int, int]:
    _check_claim_caps(max_amount_a, max_amount_b)
    amount_a = min(pool.protocol_a_fee, max_amount_a)
    amount_b = min(pool.protocol_b_fee, max_amount_b)
    pool.protocol_a_fee -= amount_a
    pool.protocol_b_fee -= amount_b
    pool.reserve_a = safe_sub(pool.reserve_a, amount_a, "reserve_a")
    pool.reserve_b = safe_sub(pool.reserve_b, amount_b, "reserve_b")
    return amount_a, amount_b


def claim_partner_fee(pool: PoolState, partner: PubKey, max_amount_a: int, max_amount_b: int) -> Tuple[int, int]:
    if not pool.has_partner() or partner != pool.partner:
        raise PoolValidationError(f"{partner} is not the partner of this pool")
    _check_claim_caps(max_amount_a, max_amount_b)
    amount_a = min(pool.partner_a_fee, max_amount_a)
    amount_b = min(pool.partner_b_fee, max_amount_b)
    pool.partner_a_fee -= amount_a
    pool.partner_b_fee -= amount_b
    pool.reserve_a = safe_sub(pool.reserve_a, amount_a, "reserve_a")
    pool.reserve_b = safe_sub(pool.reserve_b, amount_b, "reserve_b")
    return amount_a, amount_b
