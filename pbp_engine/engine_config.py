from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any, Optional, Union


def _freeze_mapping(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze_mapping(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze_mapping(v) for v in value)
    return value


# -------------------------
# Injury model
# -------------------------

@dataclass(frozen=True)
class InjuryModelDisabled:
    """No in-game injuries are rolled."""

    enabled = False


@dataclass(frozen=True)
class InjuryModelEnabled:
    """Condition-gated injury roll.

    While on court below `threshold` condition, each possession rolls
    `rand < (threshold - condition) * rate_per_point`.
    """

    threshold: float = 15.0
    rate_per_point: float = 5.0 / 10000.0

    enabled = True


InjuryModel = Union[InjuryModelDisabled, InjuryModelEnabled]


def _default_recovery() -> Mapping[str, float]:
    return MappingProxyType({"timeout": 3.0, "quarter_break": 6.0, "halftime": 15.0})


@dataclass(frozen=True)
class EngineConfig:
    quarter_length: int = 720
    regulation_quarters: int = 4
    shot_clock: int = 24
    orb_shot_clock: int = 14
    timeouts_per_team: int = 7
    tie_break_min_hit_rate: float = 0.75
    home_advantage: float = 0.02
    run_threshold: int = 8
    max_possessions: int = 1200
    injury_model: InjuryModel = InjuryModelDisabled()
    recovery: Mapping[str, float] = field(default_factory=_default_recovery)

    @property
    def regulation_minutes(self) -> int:
        return self.regulation_quarters * self.quarter_length // 60


def _parse_injury_model(value: Any) -> InjuryModel:
    if isinstance(value, (InjuryModelDisabled, InjuryModelEnabled)):
        return value
    if value is None or value is False or value == "disabled":
        return InjuryModelDisabled()
    if value is True or value == "enabled":
        return InjuryModelEnabled()
    if isinstance(value, Mapping):
        if not value.get("enabled", True):
            return InjuryModelDisabled()
        return InjuryModelEnabled(
            threshold=float(value.get("threshold", 15.0)),
            rate_per_point=float(value.get("rate_per_point", 5.0 / 10000.0)),
        )
    raise ValueError(f"injury_model: unsupported value {value!r}")


def build_engine_config(overrides: Optional[Mapping[str, Any]] = None) -> EngineConfig:
    if overrides is None:
        return EngineConfig()
    if not isinstance(overrides, Mapping):
        raise TypeError(f"build_engine_config expected Mapping, got {type(overrides).__name__}")

    known = {f.name for f in fields(EngineConfig)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(f"build_engine_config: unknown keys {unknown!r}")

    cfg_copy = copy.deepcopy(dict(overrides))
    kwargs: dict = {}
    for key, value in cfg_copy.items():
        if key == "injury_model":
            kwargs[key] = _parse_injury_model(value)
        elif key == "recovery":
            merged = dict(_default_recovery())
            merged.update({str(k): float(v) for k, v in dict(value).items()})
            kwargs[key] = _freeze_mapping(merged)
        else:
            kwargs[key] = _freeze_mapping(value)
    return EngineConfig(**kwargs)
