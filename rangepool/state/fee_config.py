"""Fee configuration records for a pool.

Two parts make up the trading fee:
- a base fee that decays from a cliff rate on a fixed schedule after the
  pool activates,
- an optional variable fee driven by recent price volatility.

Units:
- ``cliff_fee_numerator`` and linear ``reduction_factor`` are in 1e-6
  (``FEE_RATE_UNITS``); 10_000 == 1%.
- Exponential ``reduction_factor`` is a per-period fraction in 1e-6.
- Dynamic fee ``reduction_factor`` is in basis points (1/10_000).
- Fee percentages split the trading fee and are plain percents (0-100).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique

from ..fixed_point import BASIS_POINT_MAX, Q96

FEE_RATE_UNITS = 1_000_000
# 1e-6 units -> 1e18 units
FEE_RATE_SCALE_UP = 1_000_000_000_000
FEE_RATE_DENOMINATOR = 10**18
MAX_FEE_RATE = 10**17  # 10%
# number_of_period is a u16
MAX_NUMBER_OF_PERIOD = 65_535


@unique
class FeeSchedulerMode(Enum):
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


@unique
class CollectFeeMode(Enum):
    """Which token(s) a pool charges its trading fee in."""

    BOTH_TOKEN = "both_token"
    ONLY_B = "only_b"


def _require_int(name: str, value: object) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


@dataclass(frozen=True)
class BaseFeeConfig:
    cliff_fee_numerator: int
    fee_scheduler_mode: FeeSchedulerMode = FeeSchedulerMode.LINEAR
    period_frequency: int = 0
    number_of_period: int = 0
    reduction_factor: int = 0

    def __post_init__(self) -> None:
        for name in ("cliff_fee_numerator", "period_frequency", "number_of_period", "reduction_factor"):
            value = getattr(self, name)
            _require_int(name, value)
            if value < 0:
                raise ValueError(f"{name} must be non-negative: {value}")
        if not isinstance(self.fee_scheduler_mode, FeeSchedulerMode):
            raise TypeError("fee_scheduler_mode must be a FeeSchedulerMode")
        if self.cliff_fee_numerator * FEE_RATE_SCALE_UP > MAX_FEE_RATE:
            raise ValueError(f"cliff_fee_numerator exceeds the maximum fee: {self.cliff_fee_numerator}")
        if self.fee_scheduler_mode is FeeSchedulerMode.EXPONENTIAL and self.reduction_factor >= FEE_RATE_UNITS:
            raise ValueError(f"exponential reduction_factor must be < {FEE_RATE_UNITS}")
        if self.number_of_period > MAX_NUMBER_OF_PERIOD:
            raise ValueError(f"number_of_period exceeds {MAX_NUMBER_OF_PERIOD}: {self.number_of_period}")
        if self.period_frequency > 0 and self.number_of_period == 0:
            raise ValueError("number_of_period must be positive when period_frequency is set")


@dataclass(frozen=True)
class DynamicFeeState:
    """Volatility tracker parameters and running state.

    The first block is configuration; ``volatility_accumulator`` and below
    change on every swap.
    """

    bin_step: int = 1
    filter_period: int = 10
    decay_period: int = 120
    reduction_factor: int = 5_000
    max_volatility_accumulator: int = 14_460_000
    variable_fee_control: int = 0
    initialized: bool = False

    volatility_accumulator: int = 0
    volatility_reference: int = 0
    sqrt_price_reference: int = 0
    last_update_timestamp: int = 0

    def __post_init__(self) -> None:
        for name in (
            "bin_step",
            "filter_period",
            "decay_period",
            "reduction_factor",
            "max_volatility_accumulator",
            "variable_fee_control",
            "volatility_accumulator",
            "volatility_reference",
            "sqrt_price_reference",
            "last_update_timestamp",
        ):
            value = getattr(self, name)
            _require_int(name, value)
            if value < 0:
                raise ValueError(f"{name} must be non-negative: {value}")
        if not isinstance(self.initialized, bool):
            raise TypeError("initialized must be a bool")
        if self.initialized:
            if self.bin_step <= 0:
                raise ValueError("bin_step must be positive")
            if self.filter_period >= self.decay_period:
                raise ValueError(
                    f"filter_period ({self.filter_period}) must be < decay_period ({self.decay_period})"
                )
            if self.reduction_factor > BASIS_POINT_MAX:
                raise ValueError(f"reduction_factor must be in [0, {BASIS_POINT_MAX}]")
        if self.volatility_accumulator > self.max_volatility_accumulator:
            raise ValueError("volatility_accumulator exceeds max_volatility_accumulator")

    @property
    def bin_step_q96(self) -> int:
        """Bin step as a Q96 price-ratio increment."""
        return self.bin_step * Q96 // BASIS_POINT_MAX


@dataclass(frozen=True)
class PoolFeesConfig:
    base_fee: BaseFeeConfig
    dynamic_fee: DynamicFeeState = field(default_factory=DynamicFeeState)
    protocol_fee_percent: int = 20
    partner_fee_percent: int = 0
    referral_fee_percent: int = 20

    def __post_init__(self) -> None:
        for name in ("protocol_fee_percent", "partner_fee_percent", "referral_fee_percent"):
            value = getattr(self, name)
            _require_int(name, value)
            if not (0 <= value <= 100):
                raise ValueError(f"{name} must be in [0, 100]: {value}")
