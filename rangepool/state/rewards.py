"""Pool-level reward emission record (one per reward channel)."""

from __future__ import annotations

from dataclasses import dataclass

from .balances import PubKey, TokenId


@dataclass
class RewardInfo:
    """
    Emission state of one reward channel.

    ``reward_rate`` is tokens per second scaled by ``2**128``;
    ``reward_per_token_stored`` is rewards per unit liquidity on the same scale.
    """

    initialized: bool = False
    mint: TokenId = ""
    funder: PubKey = ""
    reward_duration: int = 0
    reward_duration_end: int = 0
    reward_rate: int = 0
    reward_per_token_stored: int = 0
    last_update_time: int = 0
    cumulative_seconds_with_empty_liquidity_reward: int = 0

    def is_running(self, current_point: int) -> bool:
        return self.initialized and current_point < self.reward_duration_end
