"""
Fail-closed loader for pool definitions in YAML.

Layout:

    pool:
      token_a: <mint>
      token_b: <mint>
      sqrt_price: <Q64.96 int>
      sqrt_min_price: <Q64.96 int>
      sqrt_max_price: <Q64.96 int>
      collect_fee_mode: both_token | only_b      # optional, default both_token
      partner: <account>                         # optional
    fees:
      protocol_fee_percent: 20                   # optional
      partner_fee_percent: 0                     # optional
      referral_fee_percent: 20                   # optional
      base_fee:
        cliff_fee_numerator: 10000
        fee_scheduler_mode: linear | exponential # optional, default linear
        period_frequency: 0                      # optional
        number_of_period: 0                      # optional
        reduction_factor: 0                      # optional
      dynamic_fee:                               # optional; enables the variable fee
        bin_step: 1
        filter_period: 10
        decay_period: 120
        reduction_factor: 5000
        max_volatility_accumulator: 14460000
        variable_fee_control: 0

Unknown keys are rejected.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import yaml

from .core.pool import PoolConfig
from .errors import PoolValidationError
from .state.fee_config import BaseFeeConfig, CollectFeeMode, DynamicFeeState, FeeSchedulerMode, PoolFeesConfig


class ConfigError(PoolValidationError):
    """Raised when a pool definition is malformed."""


_POOL_KEYS = {"token_a", "token_b", "sqrt_price", "sqrt_min_price", "sqrt_max_price", "collect_fee_mode", "partner"}
_FEES_KEYS = {"protocol_fee_percent", "partner_fee_percent", "referral_fee_percent", "base_fee", "dynamic_fee"}
_BASE_FEE_KEYS = {"cliff_fee_numerator", "fee_scheduler_mode", "period_frequency", "number_of_period", "reduction_factor"}
_DYNAMIC_FEE_KEYS = {
    "bin_step",
    "filter_period",
    "decay_period",
    "reduction_factor",
    "max_volatility_accumulator",
    "variable_fee_control",
}


def _require_mapping(obj: Any, *, name: str) -> dict[str, Any]:
    if not isinstance(obj, dict):
        raise ConfigError(f"{name} must be a mapping")
    return obj


def _require_keys(obj: Mapping[str, Any], allowed: set[str], *, name: str) -> None:
    unknown = sorted(set(obj) - allowed)
    if unknown:
        raise ConfigError(f"{name} has unknown keys: {', '.join(unknown)}")


def _require_str(obj: Any, *, name: str) -> str:
    if not isinstance(obj, str) or not obj.strip():
        raise ConfigError(f"{name} must be a non-empty string")
    return obj


def _require_int(obj: Any, *, name: str) -> int:
    if not isinstance(obj, int) or isinstance(obj, bool):
        raise ConfigError(f"{name} must be an integer")
    if obj < 0:
        raise ConfigError(f"{name} must be non-negative")
    return obj


def _require_enum(obj: Any, enum_type: Any, *, name: str) -> Any:
    value = _require_str(obj, name=name).lower()
    try:
        return enum_type(value)
    except ValueError as exc:
        choices = ", ".join(member.value for member in enum_type)
        raise ConfigError(f"{name} must be one of: {choices}") from exc


def _optional_ints(obj: Mapping[str, Any], keys: set[str], *, name: str) -> dict[str, int]:
    return {key: _require_int(obj[key], name=f"{name}.{key}") for key in sorted(keys) if key in obj}


def _parse_base_fee(obj: Any) -> BaseFeeConfig:
    base = _require_mapping(obj, name="fees.base_fee")
    _require_keys(base, _BASE_FEE_KEYS, name="fees.base_fee")
    if "cliff_fee_numerator" not in base:
        raise ConfigError("fees.base_fee.cliff_fee_numerator is required")
    kwargs: dict[str, Any] = _optional_ints(base, _BASE_FEE_KEYS - {"fee_scheduler_mode"}, name="fees.base_fee")
    if "fee_scheduler_mode" in base:
        kwargs["fee_scheduler_mode"] = _require_enum(
            base["fee_scheduler_mode"], FeeSchedulerMode, name="fees.base_fee.fee_scheduler_mode"
        )
    return BaseFeeConfig(**kwargs)


def _parse_dynamic_fee(obj: Any) -> DynamicFeeState:
    dynamic = _require_mapping(obj, name="fees.dynamic_fee")
    _require_keys(dynamic, _DYNAMIC_FEE_KEYS, name="fees.dynamic_fee")
    return DynamicFeeState(initialized=True, **_optional_ints(dynamic, _DYNAMIC_FEE_KEYS, name="fees.dynamic_fee"))


def parse_pool_config(root_obj: Any) -> PoolConfig:
    """
    Build a ``PoolConfig`` from an already-decoded YAML document.

    Raises:
        ConfigError: On any structural or value error
    """
    root = _require_mapping(root_obj, name="config")
    _require_keys(root, {"pool", "fees"}, name="config")
    pool = _require_mapping(root.get("pool"), name="pool")
    _require_keys(pool, _POOL_KEYS, name="pool")
    fees = _require_mapping(root.get("fees"), name="fees")
    _require_keys(fees, _FEES_KEYS, name="fees")

    try:
        fee_kwargs: dict[str, Any] = _optional_ints(
            fees, _FEES_KEYS - {"base_fee", "dynamic_fee"}, name="fees"
        )
        fee_kwargs["base_fee"] = _parse_base_fee(fees.get("base_fee"))
        if fees.get("dynamic_fee") is not None:
            fee_kwargs["dynamic_fee"] = _parse_dynamic_fee(fees["dynamic_fee"])
        pool_fees = PoolFeesConfig(**fee_kwargs)

        collect_fee_mode = CollectFeeMode.BOTH_TOKEN
        if "collect_fee_mode" in pool:
            collect_fee_mode = _require_enum(pool["collect_fee_mode"], CollectFeeMode, name="pool.collect_fee_mode")
        partner = _require_str(pool["partner"], name="pool.partner") if pool.get("partner") is not None else None

        return PoolConfig(
            token_a=_require_str(pool.get("token_a"), name="pool.token_a"),
            token_b=_require_str(pool.get("token_b"), name="pool.token_b"),
            sqrt_price=_require_int(pool.get("sqrt_price"), name="pool.sqrt_price"),
            sqrt_min_price=_require_int(pool.get("sqrt_min_price"), name="pool.sqrt_min_price"),
            sqrt_max_price=_require_int(pool.get("sqrt_max_price"), name="pool.sqrt_max_price"),
            pool_fees=pool_fees,
            collect_fee_mode=collect_fee_mode,
            partner=partner,
        )
    except ConfigError:
        raise
    except (TypeError, ValueError) as exc:
        raise ConfigError(str(exc)) from exc


def load_pool_config(path: Path | str) -> PoolConfig:
    """Read and validate a pool definition from a YAML file."""
    raw = Path(path).read_text(encoding="utf-8")
    try:
        document = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path}: invalid YAML: {exc}") from exc
    return parse_pool_config(document)
