"""
Per-owner position records for a pool.

A position's liquidity is split into three disjoint buckets, all of which
earn fees and rewards:
- unlocked: free to withdraw, lock or split,
- vested: locked under a vesting schedule, released back to unlocked,
- permanent: locked forever, movable only by splitting the position.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple

from .balances import PubKey

NUM_REWARDS = 2


@dataclass
class UserRewardInfo:
    reward_per_token_checkpoint: int = 0
    reward_pending: int = 0
    total_claimed_rewards: int = 0


@dataclass
class Position:
    owner: PubKey
    unlocked_liquidity: int = 0
    vested_liquidity: int = 0
    permanent_locked_liquidity: int = 0

    fee_a_per_token_checkpoint: int = 0
    fee_b_per_token_checkpoint: int = 0
    fee_a_pending: int = 0
    fee_b_pending: int = 0
    total_claimed_a_fee: int = 0
    total_claimed_b_fee: int = 0

    reward_infos: List[UserRewardInfo] = field(
        default_factory=lambda: [UserRewardInfo() for _ in range(NUM_REWARDS)]
    )

    def __post_init__(self) -> None:
        if not self.owner:
            raise ValueError("owner must be a non-empty key")
        if len(self.reward_infos) != NUM_REWARDS:
            raise ValueError(f"position must carry {NUM_REWARDS} reward slots")

    def total_liquidity(self) -> int:
        """Liquidity that earns fees and rewards."""
        return self.unlocked_liquidity + self.vested_liquidity + self.permanent_locked_liquidity

    def is_empty(self) -> bool:
        return (
            self.total_liquidity() == 0
            and self.fee_a_pending == 0
            and self.fee_b_pending == 0
            and all(info.reward_pending == 0 for info in self.reward_infos)
        )


class PositionTable:
    """
    Mapping owner -> Position for a single pool.

    Notes:
    - Positions are created on first touch via ``get_or_create``.
    - Empty positions are kept; nothing garbage-collects them.
    """

    def __init__(self) -> None:
        self._positions: Dict[PubKey, Position] = {}

    def get(self, owner: PubKey) -> Position | None:
        return self._positions.get(owner)

    def require(self, owner: PubKey) -> Position:
        """Return the position for ``owner`` or raise ``KeyError``."""
        position = self._positions.get(owner)
        if position is None:
            raise KeyError(owner)
        return position

    def get_or_create(self, owner: PubKey) -> Tuple[Position, bool]:
        """Return ``(position, created)``."""
        position = self._positions.get(owner)
        if position is not None:
            return position, False
        position = Position(owner=owner)
        self._positions[owner] = position
        return position, True

    def __contains__(self, owner: object) -> bool:
        return owner in self._positions

    def __iter__(self) -> Iterator[Position]:
        return iter(self._positions.values())

    def __len__(self) -> int:
        return len(self._positions)

    def total_liquidity(self) -> int:
        """Sum of every position's fee-earning liquidity."""
        return sum(position.total_liquidity() for position in self._positions.values())

    def __repr__(self) -> str:
        return f"PositionTable({len(self._positions)} entries)"
