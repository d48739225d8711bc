"""
Clock / activation collaborator.

The pool never reads wall-clock time. Every "now" it uses comes from an
``ActivationClock``: a monotone point (slot or timestamp), the configured
maximum vesting duration, and the point at which a given pool activates.
"""

from __future__ import annotations

from typing import Dict, Protocol, runtime_checkable

from ..errors import PoolValidationError

# One year of seconds.
DEFAULT_MAX_VESTING_DURATION = 31_536_000


@runtime_checkable
class ActivationClock(Protocol):
    def current_point(self) -> int:
        ...

    def max_vesting_duration(self) -> int:
        ...

    def activation_point(self, pool_id: str) -> int:
        ...


class ManualClock:
    """
    In-process clock driven explicitly by the caller.

    Pools without an explicit activation point activate at 0.
    """

    def __init__(self, start: int = 0, max_vesting_duration: int = DEFAULT_MAX_VESTING_DURATION) -> None:
        if start < 0:
            raise PoolValidationError(f"clock start must be non-negative: {start}")
        if max_vesting_duration < 0:
            raise PoolValidationError(f"max_vesting_duration must be non-negative: {max_vesting_duration}")
        self._point = start
        self._max_vesting_duration = max_vesting_duration
        self._activation_points: Dict[str, int] = {}

    def current_point(self) -> int:
        return self._point

    def max_vesting_duration(self) -> int:
        return self._max_vesting_duration

    def activation_point(self, pool_id: str) -> int:
        return self._activation_points.get(pool_id, 0)

    def set_point(self, point: int) -> None:
        if point < self._point:
            raise PoolValidationError(f"clock cannot move backwards: {point} < {self._point}")
        self._point = point

    def advance(self, delta: int) -> int:
        self.set_point(self._point + delta)
        return self._point

    def set_activation_point(self, pool_id: str, point: int) -> None:
        if point < 0:
            raise PoolValidationError(f"activation point must be non-negative: {point}")
        self._activation_points[pool_id] = point
