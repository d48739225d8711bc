"""
Vesting schedules: cliff + periodic unlock of locked liquidity.

    total_lock = cliff_unlock + liquidity_per_period * number_of_period

    max_unlocked(now) = 0                                         now < cliff
                      = cliff_unlock                              period_frequency == 0
                      = cliff_unlock + per_period * min(n, (now - cliff) // freq)

Locking moves unlocked liquidity into the vested bucket and records a
schedule; releasing moves whatever the schedule has newly unlocked back to
unlocked. Neither changes pool liquidity, but both settle the position first
like every other ledger mutation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..errors import PoolMathError, PoolStateError, PoolValidationError
from ..fixed_point import U128_MAX, safe_sub, to_u128
from ..state.balances import PubKey
from ..state.pools import PoolState
from ..state.vesting import VestingState
from .ledger import require_position, settle_position


@dataclass(frozen=True)
class VestingParams:
    """Caller-supplied schedule. ``cliff_point=None`` means "now"."""

    cliff_point: Optional[int]
    period_frequency: int
    cliff_unlock_liquidity: int
    liquidity_per_period: int
    number_of_period: int


def get_total_lock_amount(vesting: VestingState | VestingParams) -> int:
    total = vesting.cliff_unlock_liquidity + vesting.liquidity_per_period * vesting.number_of_period
    if total > U128_MAX:
        raise PoolMathError(f"total lock amount overflow: {total}")
    return total


def get_max_unlocked_liquidity(vesting: VestingState, current_point: int) -> int:
    if current_point < vesting.cliff_point:
        return 0
    if vesting.period_frequency == 0:
        return vesting.cliff_unlock_liquidity
    period = (current_point - vesting.cliff_point) // vesting.period_frequency
    period = min(period, vesting.number_of_period)
    return vesting.cliff_unlock_liquidity + vesting.liquidity_per_period * period


def get_new_release_liquidity(vesting: VestingState, current_point: int) -> int:
    unlocked = get_max_unlocked_liquidity(vesting, current_point)
    return safe_sub(unlocked, vesting.total_released_liquidity, "new_release_liquidity")


def accumulate_released(vesting: VestingState, released: int) -> None:
    total = vesting.total_released_liquidity + released
    if total > get_total_lock_amount(vesting):
        raise PoolMathError(f"released liquidity {total} exceeds lock amount")
    vesting.total_released_liquidity = total


def is_done(vesting: VestingState) -> bool:
    return vesting.total_released_liquidity == get_total_lock_amount(vesting)


def validate_vesting_params(params: VestingParams, current_point: int, max_vesting_duration: int) -> VestingState:
    """
    Check a lock request and build the schedule it describes.

    Raises:
        PoolValidationError: If the schedule is malformed or too long
    """
    cliff_point = current_point if params.cliff_point is None else params.cliff_point
    if cliff_point < current_point:
        raise PoolValidationError(f"cliff point {cliff_point} is in the past (now {current_point})")
    for name in ("period_frequency", "cliff_unlock_liquidity", "liquidity_per_period", "number_of_period"):
        value = getattr(params, name)
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise PoolValidationError(f"{name} must be a non-negative int, got {value}")
    if params.number_of_period > 0 or params.liquidity_per_period > 0:
        if params.number_of_period == 0 or params.period_frequency == 0 or params.liquidity_per_period == 0:
            raise PoolValidationError(
                "periodic unlocks need number_of_period, period_frequency and liquidity_per_period"
            )

    duration = (cliff_point - current_point) + params.period_frequency * params.number_of_period
    if duration > max_vesting_duration:
        raise PoolValidationError(f"vesting duration {duration} exceeds maximum {max_vesting_duration}")
    if get_total_lock_amount(params) == 0:
        raise PoolValidationError("total lock amount must be positive")

    return VestingState(
        cliff_point=cliff_point,
        period_frequency=params.period_frequency,
        cliff_unlock_liquidity=params.cliff_unlock_liquidity,
        liquidity_per_period=params.liquidity_per_period,
        number_of_period=params.number_of_period,
    )


def lock_position(
    pool: PoolState,
    owner: PubKey,
    params: VestingParams,
    current_point: int,
    max_vesting_duration: int,
) -> VestingState:
    """Move the schedule's total from unlocked to vested and record the schedule."""
    if owner in pool.vestings:
        raise PoolStateError(f"{owner} already has an active vesting schedule")
    vesting = validate_vesting_params(params, current_point, max_vesting_duration)
    position = require_position(pool, owner)
    settle_position(pool, position, current_point)

    total = get_total_lock_amount(vesting)
    if total > position.unlocked_liquidity:
        raise PoolStateError(f"insufficient unlocked liquidity: {position.unlocked_liquidity} < {total}")
    position.unlocked_liquidity -= total
    position.vested_liquidity = to_u128(position.vested_liquidity + total, "vested_liquidity")
    pool.vestings[owner] = vesting
    return vesting


def release_vested_liquidity(pool: PoolState, owner: PubKey, current_point: int) -> int:
    """
    Release whatever the owner's schedule has unlocked since the last release.

    Returns:
        Liquidity moved from vested back to unlocked
    """
    vesting = pool.vestings.get(owner)
    if vesting is None:
        raise PoolStateError(f"{owner} has no vesting schedule")
    position = require_position(pool, owner)
    settle_position(pool, position, current_point)

    released = get_new_release_liquidity(vesting, current_point)
    if released == 0:
        raise PoolStateError(f"no vested liquidity due for {owner} at {current_point}")
    if released > position.vested_liquidity:
        raise PoolStateError(f"insufficient vested liquidity: {position.vested_liquidity} < {released}")

    position.vested_liquidity -= released
    position.unlocked_liquidity += released
    accumulate_released(vesting, released)
    if is_done(vesting):
        del pool.vestings[owner]
    return released
