from __future__ import annotations

import math
import random
from typing import Mapping

from .core import clamp
from .engine_config import InjuryModel, InjuryModelEnabled
from .models import LivePlayer

DRAIN_BASE = 3.5  # condition points per minute on court before multipliers
STAMINA_DRAIN_FACTOR = 0.30
B2B_MULT = 1.5
STOPPER_MULT = 1.3
COMBO_MULT = 1.15
SPIRAL_START = 60.0
SPIRAL_RATE = 0.012

BENCH_RECOVERY_PER_MIN = 1.2
BENCH_STAMINA_BONUS = 0.02

RECOVERY_STAMINA_FACTOR = 0.30
RECOVERY_DURABILITY_FACTOR = 0.20

RED_ZONE = 30.0
RED_ZONE_RETURN = 65.0
SHUTDOWN = 20.0
SHUTDOWN_RETURN = 70.0


def pace_multiplier(pace: float) -> float:
    if pace <= 5:
        return 1.0
    return math.exp((pace - 5.0) * 0.06)


def calculate_drain(
    p: LivePlayer,
    seconds: float,
    sliders: Mapping[str, float],
    *,
    is_b2b: bool = False,
    is_stopper: bool = False,
) -> float:
    minutes = float(seconds) / 60.0
    drain = minutes * DRAIN_BASE
    drain *= 1.0 - (p.rating("stamina") - 50.0) / 100.0 * STAMINA_DRAIN_FACTOR
    drain *= pace_multiplier(float(sliders.get("pace", 5)))
    drain *= max(0.85, 1.0 + (float(sliders.get("defIntensity", 5)) - 5.0) * 0.03)
    press = float(sliders.get("fullCourtPress", 1))
    if press > 1:
        drain *= 1.0 + (press - 1.0) * 0.05
    if is_b2b:
        drain *= B2B_MULT
    if is_stopper:
        drain *= STOPPER_MULT
    if float(sliders.get("pace", 5)) >= 8 and float(sliders.get("zoneFreq", 5)) <= 3:
        drain *= COMBO_MULT
    if p.current_condition < SPIRAL_START:
        drain *= 1.0 + max(0.0, (100.0 - p.current_condition) * SPIRAL_RATE)
    return max(0.0, drain)


def calculate_recovery(p: LivePlayer, base: float) -> float:
    return base * (
        1.0
        + (p.rating("stamina") - 50.0) / 100.0 * RECOVERY_STAMINA_FACTOR
        + (p.rating("durability") - 50.0) / 100.0 * RECOVERY_DURABILITY_FACTOR
    )


def bench_recovery(p: LivePlayer, seconds: float) -> float:
    per_min = BENCH_RECOVERY_PER_MIN + max(0.0, (p.rating("stamina") - 50.0) * BENCH_STAMINA_BONUS)
    return per_min * float(seconds) / 60.0


def update_thresholds(p: LivePlayer) -> None:
    """Enter/leave the red-zone and shutdown states from the current condition."""
    c = p.current_condition
    if c <= SHUTDOWN:
        p.is_shutdown = True
    elif p.is_shutdown and c > SHUTDOWN_RETURN:
        p.is_shutdown = False

    if c < RED_ZONE:
        p.needs_deep_recovery = True
    elif p.needs_deep_recovery and c >= RED_ZONE_RETURN:
        p.needs_deep_recovery = False


def apply_condition_delta(p: LivePlayer, delta: float) -> None:
    p.current_condition = clamp(p.current_condition + delta, 0.0, 100.0)
    update_thresholds(p)


def recover(p: LivePlayer, base: float) -> None:
    apply_condition_delta(p, calculate_recovery(p, base))


def roll_injury(rng: random.Random, p: LivePlayer, model: InjuryModel) -> bool:
    """One injury roll for an on-court player; always False when the model is disabled."""
    if not isinstance(model, InjuryModelEnabled):
        return False
    if p.current_condition >= model.threshold:
        return False
    return rng.random() < (model.threshold - p.current_condition) * model.rate_per_point
