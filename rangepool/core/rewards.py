"""
Reward emission channels (two per pool).

Each channel streams a funded amount linearly over ``reward_duration`` and
folds it into a per-liquidity accumulator:

    reward_per_token_stored += elapsed * reward_rate / pool_liquidity

``reward_rate`` carries 128 fractional bits, so the accumulator shares the
2**128 scale of the fee accumulators and positions settle both the same way.

Seconds during which the pool had no liquidity emit to nobody; they are
tracked so the funder can withdraw them (or carry them into a new funding).

Functions here mutate the ``PoolState`` they are given. ``Pool`` only ever
hands them a working copy.
"""

from __future__ import annotations

from ..errors import PoolStateError, PoolValidationError
from ..fixed_point import LIQUIDITY_SCALE, mul_shr, shl_div, to_u128, to_u256
from ..state.balances import PubKey, TokenId
from ..state.pools import PoolState
from ..state.positions import NUM_REWARDS
from ..state.rewards import RewardInfo

MIN_REWARD_DURATION = 24 * 60 * 60
MAX_REWARD_DURATION = 31_536_000


def validate_reward_index(index: int) -> None:
    if not isinstance(index, int) or isinstance(index, bool) or not (0 <= index < NUM_REWARDS):
        raise PoolValidationError(f"invalid reward index: {index}")


def validate_reward_duration(duration: int) -> None:
    if not (MIN_REWARD_DURATION <= duration <= MAX_REWARD_DURATION):
        raise PoolValidationError(
            f"reward duration must be in [{MIN_REWARD_DURATION}, {MAX_REWARD_DURATION}]: {duration}"
        )


def _initialized_reward(pool: PoolState, index: int) -> RewardInfo:
    validate_reward_index(index)
    info = pool.reward_infos[index]
    if not info.initialized:
        raise PoolStateError(f"reward {index} is not initialized")
    return info


def _seconds_since_last_update(info: RewardInfo, current_point: int) -> int:
    last_time_applicable = min(current_point, info.reward_duration_end)
    return max(0, last_time_applicable - info.last_update_time)


def _accrue(info: RewardInfo, liquidity: int, current_point: int) -> None:
    elapsed = _seconds_since_last_update(info, current_point)
    if elapsed > 0:
        if liquidity > 0:
            delta = elapsed * info.reward_rate // liquidity
            info.reward_per_token_stored = to_u256(info.reward_per_token_stored + delta, "reward_per_token_stored")
        else:
            info.cumulative_seconds_with_empty_liquidity_reward += elapsed
    info.last_update_time = max(info.last_update_time, current_point)


def update_pool_rewards(pool: PoolState, current_point: int) -> None:
    """Bring every initialized channel's accumulator up to ``current_point``."""
    for info in pool.reward_infos:
        if info.initialized:
            _accrue(info, pool.liquidity, current_point)


def initialize_reward(
    pool: PoolState,
    index: int,
    mint: TokenId,
    funder: PubKey,
    reward_duration: int,
    current_point: int,
) -> RewardInfo:
    validate_reward_index(index)
    validate_reward_duration(reward_duration)
    if not mint:
        raise PoolValidationError("reward mint must be non-empty")
    if not funder:
        raise PoolValidationError("reward funder must be non-empty")
    info = pool.reward_infos[index]
    if info.initialized:
        raise PoolStateError(f"reward {index} is already initialized")

    pool.reward_infos[index] = RewardInfo(
        initialized=True,
        mint=mint,
        funder=funder,
        reward_duration=reward_duration,
        reward_duration_end=current_point,
        last_update_time=current_point,
    )
    return pool.reward_infos[index]


def get_ineligible_reward(info: RewardInfo) -> int:
    """Rewards emitted while the pool had no liquidity."""
    return mul_shr(info.cumulative_seconds_with_empty_liquidity_reward, info.reward_rate, LIQUIDITY_SCALE)


def fund_reward(
    pool: PoolState,
    index: int,
    funder: PubKey,
    amount: int,
    current_point: int,
    carry_forward: bool = False,
) -> int:
    """
    Top up a channel and restart its emission window at ``current_point``.

    Anything the previous window had not emitted yet is rolled into the new
    rate. With ``carry_forward`` the ineligible (empty-liquidity) rewards are
    rolled in as well.

    Returns:
        The new total amount streaming over the fresh window.
    """
    info = _initialized_reward(pool, index)
    if funder != info.funder:
        raise PoolValidationError(f"{funder} is not the funder of reward {index}")
    if amount <= 0 and not carry_forward:
        raise PoolValidationError(f"funding amount must be positive: {amount}")

    update_pool_rewards(pool, current_point)

    total_amount = amount
    if current_point < info.reward_duration_end:
        remaining = info.reward_duration_end - current_point
        total_amount += mul_shr(info.reward_rate, remaining, LIQUIDITY_SCALE)
    if carry_forward:
        total_amount += get_ineligible_reward(info)
        info.cumulative_seconds_with_empty_liquidity_reward = 0
    if total_amount <= 0:
        raise PoolStateError(f"reward {index} has nothing to emit")

    info.reward_rate = to_u256(shl_div(total_amount, info.reward_duration, LIQUIDITY_SCALE), "reward_rate")
    info.last_update_time = current_point
    info.reward_duration_end = current_point + info.reward_duration
    return total_amount


def update_reward_duration(pool: PoolState, index: int, new_duration: int, current_point: int) -> None:
    info = _initialized_reward(pool, index)
    validate_reward_duration(new_duration)
    if info.is_running(current_point):
        raise PoolStateError(f"reward {index} is still emitting until {info.reward_duration_end}")
    if new_duration == info.reward_duration:
        raise PoolValidationError("reward duration is unchanged")
    info.reward_duration = new_duration


def update_reward_funder(pool: PoolState, index: int, new_funder: PubKey) -> None:
    info = _initialized_reward(pool, index)
    if not new_funder:
        raise PoolValidationError("reward funder must be non-empty")
    if new_funder == info.funder:
        raise PoolValidationError("reward funder is unchanged")
    info.funder = new_funder


def withdraw_ineligible_reward(pool: PoolState, index: int, funder: PubKey, current_point: int) -> int:
    """Hand back rewards that were emitted while nobody held liquidity."""
    info = _initialized_reward(pool, index)
    if funder != info.funder:
        raise PoolValidationError(f"{funder} is not the funder of reward {index}")
    if info.is_running(current_point):
        raise PoolStateError(f"reward {index} is still emitting until {info.reward_duration_end}")

    update_pool_rewards(pool, current_point)
    amount = get_ineligible_reward(info)
    info.cumulative_seconds_with_empty_liquidity_reward = 0
    return to_u128(amount, "ineligible_reward")
