"""
rangepool: accounting and pricing core of a single-range concentrated liquidity pool.
"""

from .errors import (
    PoolError,
    PoolLockedError,
    PoolMathError,
    PoolStateError,
    PoolValidationError,
    PriceRangeViolation,
    SettlementError,
)
from .core.pool import PendingSettlement, Pool, PoolConfig

__all__ = [
    "PoolError",
    "PoolLockedError",
    "PoolMathError",
    "PoolStateError",
    "PoolValidationError",
    "PriceRangeViolation",
    "SettlementError",
    "PendingSettlement",
    "Pool",
    "PoolConfig",
]
