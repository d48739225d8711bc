"""
State records for rangepool
"""

from .balances import BalanceTable
from .fee_config import BaseFeeConfig, CollectFeeMode, DynamicFeeState, FeeSchedulerMode, PoolFeesConfig
from .pools import PoolMetrics, PoolState, compute_pool_id
from .positions import NUM_REWARDS, Position, PositionTable, UserRewardInfo
from .rewards import RewardInfo
from .vesting import VestingState

__all__ = [
    "BalanceTable",
    "BaseFeeConfig",
    "CollectFeeMode",
    "DynamicFeeState",
    "FeeSchedulerMode",
    "PoolFeesConfig",
    "PoolMetrics",
    "PoolState",
    "compute_pool_id",
    "NUM_REWARDS",
    "Position",
    "PositionTable",
    "UserRewardInfo",
    "RewardInfo",
    "VestingState",
]
