"""
Proportional position splitting.

Both sides are settled against the current accumulators before anything is
moved, so the pending balances being split include everything earned up to
now and the destination does not inherit stale checkpoints. Each dimension
then moves ``floor(source_amount * percent / 100)``. Vested liquidity never
moves: a source with an active vesting schedule cannot be split at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ..errors import PoolStateError, PoolValidationError
from ..state.balances import PubKey
from ..state.pools import PoolState
from ..state.positions import NUM_REWARDS, Position
from .ledger import open_position, require_position, settle_position

_PERCENT_FIELDS = (
    "unlocked_liquidity_percentage",
    "permanent_locked_liquidity_percentage",
    "fee_a_percentage",
    "fee_b_percentage",
    "reward_0_percentage",
    "reward_1_percentage",
)


@dataclass(frozen=True)
class SplitParams:
    """Per-dimension share to move, in percent. 0 leaves that dimension alone."""

    unlocked_liquidity_percentage: int = 0
    permanent_locked_liquidity_percentage: int = 0
    fee_a_percentage: int = 0
    fee_b_percentage: int = 0
    reward_0_percentage: int = 0
    reward_1_percentage: int = 0

    def __post_init__(self) -> None:
        for name in _PERCENT_FIELDS:
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise PoolValidationError(f"{name} must be an int")
            if not (0 <= v <= 100):
                raise PoolValidationError(f"{name} must be in [0, 100]: {v}")
        if all(getattr(self, name) == 0 for name in _PERCENT_FIELDS):
            raise PoolValidationError("at least one split percentage must be non-zero")

    @property
    def reward_percentages(self) -> Tuple[int, int]:
        return (self.reward_0_percentage, self.reward_1_percentage)


@dataclass(frozen=True)
class SplitResult:
    source: PubKey
    destination: PubKey
    unlocked_liquidity: int
    permanent_locked_liquidity: int
    fee_a: int
    fee_b: int
    rewards: Tuple[int, ...]
    destination_created: bool = False


def _portion(amount: int, percentage: int) -> int:
    return amount * percentage // 100


def _move_rewards(source: Position, destination: Position, params: SplitParams) -> Tuple[int, ...]:
    moved = []
    for index in range(NUM_REWARDS):
        amount = _portion(source.reward_infos[index].reward_pending, params.reward_percentages[index])
        source.reward_infos[index].reward_pending -= amount
        destination.reward_infos[index].reward_pending += amount
        moved.append(amount)
    return tuple(moved)


def split_position(
    pool: PoolState,
    source_owner: PubKey,
    destination_owner: PubKey,
    params: SplitParams,
    current_point: int,
) -> SplitResult:
    """
    Move a share of every selected dimension from one position to another.

    Pool liquidity, reserves and the pool-wide permanent lock total are
    unchanged: liquidity only changes hands.

    Raises:
        PoolValidationError: If source and destination are the same owner
        PoolStateError: If the source is missing or still vesting
    """
    if not source_owner or not destination_owner:
        raise PoolValidationError("split owners must be non-empty")
    if source_owner == destination_owner:
        raise PoolValidationError("cannot split a position into itself")
    if source_owner in pool.vestings:
        raise PoolStateError(f"position for {source_owner} has an active vesting schedule")

    source = require_position(pool, source_owner)
    settle_position(pool, source, current_point)
    destination, created = open_position(pool, destination_owner, current_point)

    unlocked = _portion(source.unlocked_liquidity, params.unlocked_liquidity_percentage)
    permanent = _portion(source.permanent_locked_liquidity, params.permanent_locked_liquidity_percentage)
    fee_a = _portion(source.fee_a_pending, params.fee_a_percentage)
    fee_b = _portion(source.fee_b_pending, params.fee_b_percentage)

    source.unlocked_liquidity -= unlocked
    destination.unlocked_liquidity += unlocked
    source.permanent_locked_liquidity -= permanent
    destination.permanent_locked_liquidity += permanent
    source.fee_a_pending -= fee_a
    destination.fee_a_pending += fee_a
    source.fee_b_pending -= fee_b
    destination.fee_b_pending += fee_b
    rewards = _move_rewards(source, destination, params)

    return SplitResult(
        source=source_owner,
        destination=destination_owner,
        unlocked_liquidity=unlocked,
        permanent_locked_liquidity=permanent,
        fee_a=fee_a,
        fee_b=fee_b,
        rewards=rewards,
        destination_created=created,
    )
