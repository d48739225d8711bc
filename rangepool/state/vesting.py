"""Vesting schedule record (one per owner while liquidity is locked)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class VestingState:
    """
    Cliff + periodic unlock schedule.

    Attributes:
        cliff_point: Point at which ``cliff_unlock_liquidity`` unlocks
        period_frequency: Points between periodic unlocks (0 = cliff only)
        cliff_unlock_liquidity: Liquidity released at the cliff
        liquidity_per_period: Liquidity released per elapsed period
        number_of_period: Number of periodic unlocks after the cliff
        total_released_liquidity: Liquidity already moved back to unlocked
    """

    cliff_point: int
    period_frequency: int
    cliff_unlock_liquidity: int
    liquidity_per_period: int
    number_of_period: int
    total_released_liquidity: int = 0

    def __post_init__(self) -> None:
        for name in (
            "cliff_point",
            "period_frequency",
            "cliff_unlock_liquidity",
            "liquidity_per_period",
            "number_of_period",
            "total_released_liquidity",
        ):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"{name} must be an int")
            if value < 0:
                raise ValueError(f"{name} must be non-negative: {value}")
        total = self.cliff_unlock_liquidity + self.liquidity_per_period * self.number_of_period
        if self.total_released_liquidity > total:
            raise ValueError(
                f"total_released_liquidity ({self.total_released_liquidity}) exceeds lock amount ({total})"
            )
