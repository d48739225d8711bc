"""
Core pool algorithms
"""

from .price_curve import (
    get_amount_a_delta,
    get_amount_b_delta,
    get_next_sqrt_price_from_input,
    swap_within_range,
)
from .fees import FeeMode, TradeDirection, get_base_fee, get_fee_mode, get_fee_on_amount, get_total_fee
from .volatility import update_references, update_volatility_accumulator
from .swap import SwapParams, SwapResult, apply_swap, quote_swap
from .ledger import add_liquidity, remove_liquidity, settle_position
from .vesting import VestingParams, lock_position, release_vested_liquidity
from .splitter import SplitParams, SplitResult, split_position
from .pool import PendingSettlement, Pool, PoolConfig

__all__ = [
    "get_amount_a_delta",
    "get_amount_b_delta",
    "get_next_sqrt_price_from_input",
    "swap_within_range",
    "FeeMode",
    "TradeDirection",
    "get_base_fee",
    "get_fee_mode",
    "get_fee_on_amount",
    "get_total_fee",
    "update_references",
    "update_volatility_accumulator",
    "SwapParams",
    "SwapResult",
    "apply_swap",
    "quote_swap",
    "add_liquidity",
    "remove_liquidity",
    "settle_position",
    "VestingParams",
    "lock_position",
    "release_vested_liquidity",
    "SplitParams",
    "SplitResult",
    "split_position",
    "PendingSettlement",
    "Pool",
    "PoolConfig",
]
