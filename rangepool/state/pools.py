"""
Pool state for a single-range concentrated liquidity pool.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .balances import Amount, PubKey, TokenId
from .fee_config import CollectFeeMode, PoolFeesConfig
from .positions import NUM_REWARDS, PositionTable
from .rewards import RewardInfo
from .vesting import VestingState


def compute_pool_id(
    token_a: TokenId,
    token_b: TokenId,
    sqrt_min_price: int,
    sqrt_max_price: int,
    collect_fee_mode: CollectFeeMode,
) -> str:
    """
    Deterministically compute a pool_id for the given pool parameters.

        pool_id = H("RangePool" || token_a || token_b || sqrt_min || sqrt_max || collect_fee_mode)
    """
    if token_a == token_b:
        raise ValueError(f"Pool tokens must differ: {token_a}")
    if sqrt_min_price >= sqrt_max_price:
        raise ValueError(f"sqrt_min_price ({sqrt_min_price}) must be < sqrt_max_price ({sqrt_max_price})")

    pool_id_data = (
        b"RangePool"
        + token_a.encode("utf-8")
        + token_b.encode("utf-8")
        + str(int(sqrt_min_price)).encode("utf-8")
        + str(int(sqrt_max_price)).encode("utf-8")
        + collect_fee_mode.value.encode("utf-8")
    )
    return "0x" + hashlib.sha256(pool_id_data).hexdigest()


@dataclass
class PoolMetrics:
    """Lifetime fee totals, split by recipient and token."""

    total_lp_a_fee: Amount = 0
    total_lp_b_fee: Amount = 0
    total_protocol_a_fee: Amount = 0
    total_protocol_b_fee: Amount = 0
    total_partner_a_fee: Amount = 0
    total_partner_b_fee: Amount = 0
    total_referral_a_fee: Amount = 0
    total_referral_b_fee: Amount = 0
    total_position: int = 0


@dataclass
class PoolState:
    """
    State of a range pool.

    Attributes:
        pool_id: Pool identifier (hex string)
        token_a: Token A mint (the "0" side of the price)
        token_b: Token B mint
        sqrt_price: Current sqrt price (Q64.96)
        sqrt_min_price: Lower bound of the active range (Q64.96)
        sqrt_max_price: Upper bound of the active range (Q64.96)
        liquidity: Total liquidity across all positions
        reserve_a: Token A held by the pool vault (includes unclaimed fees)
        reserve_b: Token B held by the pool vault (includes unclaimed fees)
        fee_a_per_liquidity: LP fee accumulator for token A (scaled 2**128)
        fee_b_per_liquidity: LP fee accumulator for token B (scaled 2**128)
        protocol_a_fee / protocol_b_fee: Unclaimed protocol fees
        partner_a_fee / partner_b_fee: Unclaimed partner fees
        pool_fees: Fee configuration and volatility tracker state
        collect_fee_mode: Which token(s) fees are charged in
        partner: Optional partner entitled to the partner fee share
        permanent_lock_liquidity: Pool-wide permanently locked liquidity
        reward_infos: The two reward emission channels
        positions: Per-owner positions
        vestings: Per-owner vesting schedules
    """

    pool_id: str
    token_a: TokenId
    token_b: TokenId
    sqrt_price: int
    sqrt_min_price: int
    sqrt_max_price: int
    pool_fees: PoolFeesConfig
    collect_fee_mode: CollectFeeMode = CollectFeeMode.BOTH_TOKEN
    partner: Optional[PubKey] = None
    liquidity: int = 0
    reserve_a: Amount = 0
    reserve_b: Amount = 0
    fee_a_per_liquidity: int = 0
    fee_b_per_liquidity: int = 0
    protocol_a_fee: Amount = 0
    protocol_b_fee: Amount = 0
    partner_a_fee: Amount = 0
    partner_b_fee: Amount = 0
    permanent_lock_liquidity: int = 0
    metrics: PoolMetrics = field(default_factory=PoolMetrics)
    reward_infos: List[RewardInfo] = field(default_factory=lambda: [RewardInfo() for _ in range(NUM_REWARDS)])
    positions: PositionTable = field(default_factory=PositionTable)
    vestings: Dict[PubKey, VestingState] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate pool state invariants."""
        if self.token_a == self.token_b:
            raise ValueError(f"Pool tokens must differ: {self.token_a}")
        if not (0 < self.sqrt_min_price < self.sqrt_max_price):
            raise ValueError(
                f"Invalid price range: ({self.sqrt_min_price}, {self.sqrt_max_price})"
            )
        if not (self.sqrt_min_price <= self.sqrt_price <= self.sqrt_max_price):
            raise ValueError(
                f"sqrt_price {self.sqrt_price} outside [{self.sqrt_min_price}, {self.sqrt_max_price}]"
            )
        if self.reserve_a < 0 or self.reserve_b < 0:
            raise ValueError(
                f"Reserves must be non-negative: ({self.reserve_a}, {self.reserve_b})"
            )
        if len(self.reward_infos) != NUM_REWARDS:
            raise ValueError(f"pool must carry {NUM_REWARDS} reward channels")

    def has_partner(self) -> bool:
        return bool(self.partner)

    def pool_reward_initialized(self) -> bool:
        return any(info.initialized for info in self.reward_infos)

    def verify_liquidity_conservation(self) -> bool:
        """Total pool liquidity equals the sum over every position."""
        return self.liquidity == self.positions.total_liquidity()

    def verify_price_bounds(self) -> bool:
        return self.sqrt_min_price <= self.sqrt_price <= self.sqrt_max_price

    def __repr__(self) -> str:
        return (
            f"PoolState(pool_id={self.pool_id[:16]}..., "
            f"tokens=({self.token_a[:8]}..., {self.token_b[:8]}...), "
            f"sqrt_price={self.sqrt_price}, liquidity={self.liquidity}, "
            f"reserves=({self.reserve_a}, {self.reserve_b}))"
        )
