"""
Observability events emitted by ``Pool`` after a state transition commits.

Events are plain data. Nothing in the pool reads them back.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Tuple

from ..state.balances import PubKey, TokenId


@dataclass(frozen=True)
class PoolEvent:
    pool_id: str

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["event"] = self.name
        return data


@dataclass(frozen=True)
class PoolCreated(PoolEvent):
    token_a: TokenId
    token_b: TokenId
    sqrt_price: int
    sqrt_min_price: int
    sqrt_max_price: int


@dataclass(frozen=True)
class PositionCreated(PoolEvent):
    owner: PubKey


@dataclass(frozen=True)
class LiquidityModified(PoolEvent):
    """``liquidity_delta`` is negative on withdrawal."""

    owner: PubKey
    liquidity_delta: int
    amount_a: int
    amount_b: int


@dataclass(frozen=True)
class FeesUpdated(PoolEvent):
    fee_a_per_liquidity: int
    fee_b_per_liquidity: int


@dataclass(frozen=True)
class PositionFeeClaimed(PoolEvent):
    owner: PubKey
    fee_a: int
    fee_b: int


@dataclass(frozen=True)
class RewardClaimed(PoolEvent):
    owner: PubKey
    reward_index: int
    mint: TokenId
    amount: int


@dataclass(frozen=True)
class SwapExecuted(PoolEvent):
    trader: PubKey
    a_to_b: bool
    amount_in: int
    output_amount: int
    lp_fee: int
    protocol_fee: int
    partner_fee: int
    referral_fee: int
    fees_on_token_a: bool
    next_sqrt_price: int


@dataclass(frozen=True)
class ReserveSync(PoolEvent):
    reserve_a: int
    reserve_b: int
    sqrt_price: int
    liquidity: int


@dataclass(frozen=True)
class RewardInitialized(PoolEvent):
    reward_index: int
    mint: TokenId
    funder: PubKey
    reward_duration: int


@dataclass(frozen=True)
class RewardFunded(PoolEvent):
    reward_index: int
    funder: PubKey
    amount: int
    total_amount: int
    reward_duration_end: int


@dataclass(frozen=True)
class IneligibleRewardWithdrawn(PoolEvent):
    reward_index: int
    funder: PubKey
    amount: int


@dataclass(frozen=True)
class PositionLocked(PoolEvent):
    owner: PubKey
    liquidity: int
    permanent: bool
    cliff_point: int = 0


@dataclass(frozen=True)
class VestingReleased(PoolEvent):
    owner: PubKey
    liquidity: int
    schedule_done: bool


@dataclass(frozen=True)
class PositionSplit(PoolEvent):
    source: PubKey
    destination: PubKey
    unlocked_liquidity: int
    permanent_locked_liquidity: int
    fee_a: int
    fee_b: int
    rewards: Tuple[int, ...]


@dataclass(frozen=True)
class ProtocolFeeClaimed(PoolEvent):
    recipient: PubKey
    amount_a: int
    amount_b: int


@dataclass(frozen=True)
class PartnerFeeClaimed(PoolEvent):
    partner: PubKey
    amount_a: int
    amount_b: int
