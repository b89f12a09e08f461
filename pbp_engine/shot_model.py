from __future__ import annotations

import logging
import math
import random
import zlib
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Mapping, Optional

from .archetypes import composure
from .core import clamp, normalize_weights, weighted_choice
from .defense import OpponentDefensiveMetrics
from .models import SUB_ZONES, ZONE_TO_SUB_ZONES, LivePlayer

logger = logging.getLogger(__name__)

ZONES = ("Rim", "Paint", "Mid", "3PT")

BASE_RATE = {"Rim": 0.58, "Paint": 0.50, "Mid": 0.40, "3PT": 0.35}
ABILITY_IMPACT = {"Rim": 0.004, "Paint": 0.004, "Mid": 0.003, "3PT": 0.003}
RATE_BOUNDS = {"Rim": (0.30, 0.85), "Paint": (0.25, 0.75), "Mid": (0.20, 0.60), "3PT": (0.20, 0.50)}
HASTE_WEIGHT = {"Rim": 0.5, "Paint": 0.7, "Mid": 1.0, "3PT": 0.8}

# lateral_bias enum (0..3) -> left-side multiplier; right side gets 2 - m
LATERAL_LEFT_MULT = (1.6, 1.2, 0.8, 0.4)
TENDENCY_BUCKETS = ("rim", "paint", "mid", "corner3", "wing3", "top3")

_MID_BASE = {"zone_mid_l": 0.33, "zone_mid_c": 0.34, "zone_mid_r": 0.33}
_THREE_BASE = {"zone_c3_l": 0.15, "zone_atb3_l": 0.2, "zone_atb3_c": 0.3, "zone_atb3_r": 0.2, "zone_c3_r": 0.15}
_LEFT = {"zone_mid_l", "zone_c3_l", "zone_atb3_l"}
_RIGHT = {"zone_mid_r", "zone_c3_r", "zone_atb3_r"}

SUB_ZONE_TO_ZONE: Dict[str, str] = {sz: z for z, subs in ZONE_TO_SUB_ZONES.items() for sz in subs}

ACE_MIN_OVERLAP = 0.25
ACE_EFFECT_BOUNDS = (-50.0, 50.0)


# -------------------------
# Hidden tendencies (used when no tendency data exists)
# -------------------------

@dataclass(frozen=True)
class HiddenTendencies:
    lateral_bias: float  # -1 (right) .. +1 (left)
    hand: str


@lru_cache(maxsize=2048)
def hidden_tendencies(player_id: str, name: str) -> HiddenTendencies:
    seed = zlib.crc32(f"{player_id}{name}".encode("utf-8"))

    def seeded(k: int) -> float:
        x = math.sin(seed + k) * 10000.0
        return x - math.floor(x)

    u1 = max(seeded(1), 1e-9)
    u2 = seeded(2)
    z = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
    return HiddenTendencies(
        lateral_bias=clamp(z / 2.5, -1.0, 1.0),
        hand="Left" if seeded(3) < 0.10 else "Right",
    )


# -------------------------
# Attempt distribution
# -------------------------

def _tendency_buckets(tendencies: Optional[Mapping[str, Any]]) -> Optional[Dict[str, float]]:
    if not isinstance(tendencies, Mapping):
        return None
    zones = tendencies.get("zones")
    if not isinstance(zones, Mapping):
        return None
    try:
        raw = {k: max(0.0, float(zones.get(k, 0.0))) for k in TENDENCY_BUCKETS}
    except (TypeError, ValueError):
        return None
    if sum(raw.values()) <= 0:
        return None
    return normalize_weights(raw)


def _from_tendency_data(buckets: Dict[str, float], lateral_bias: Any) -> Dict[str, float]:
    try:
        idx = int(lateral_bias)
    except (TypeError, ValueError):
        idx = 1
    m = LATERAL_LEFT_MULT[int(clamp(idx, 0, 3))]
    r = 2.0 - m
    third = 1.0 / 3.0
    return {
        "zone_rim": buckets["rim"],
        "zone_paint": buckets["paint"],
        "zone_mid_l": buckets["mid"] * third * m,
        "zone_mid_c": buckets["mid"] * third,
        "zone_mid_r": buckets["mid"] * third * r,
        "zone_c3_l": buckets["corner3"] * 0.5 * m,
        "zone_c3_r": buckets["corner3"] * 0.5 * r,
        "zone_atb3_l": buckets["wing3"] * 0.5 * m,
        "zone_atb3_r": buckets["wing3"] * 0.5 * r,
        "zone_atb3_c": buckets["top3"],
    }


def _lateral_skew(weights: Dict[str, float], bias: float) -> Dict[str, float]:
    favored = _LEFT if bias > 0 else _RIGHT
    mult = 1.0 + abs(bias) * 0.6
    skewed = {k: (v * mult if k in favored else v) for k, v in weights.items()}
    return normalize_weights(skewed)


def _from_archetypes(p: LivePlayer, sliders: Optional[Mapping[str, float]]) -> Dict[str, float]:
    spacer = p.arch("spacer")
    handler = p.arch("handler")
    driver = p.arch("driver")
    post = p.arch("postScorer")

    inside = max(1.0, (driver + post) / 2.0) ** 2
    mid = max(1.0, p.rating("mid") * 0.8) ** 2
    three = max(1.0, spacer) ** 2
    if sliders:
        inside *= float(sliders.get("shot_rim", 5)) / 5.0
        mid *= float(sliders.get("shot_mid", 5)) / 5.0
        three *= float(sliders.get("shot_3pt", 5)) / 5.0
    coarse = normalize_weights({"inside": inside, "mid": mid, "three": three})

    rim_ratio = 0.75
    if post > driver + 10:
        rim_ratio = 0.5
    elif driver > post + 10:
        rim_ratio = 0.85

    three_w = dict(_THREE_BASE)
    if spacer > 80 and handler < 70:
        three_w["zone_c3_l"] += 0.25
        three_w["zone_c3_r"] += 0.25
        three_w["zone_atb3_c"] -= 0.3
    elif handler > 80 and spacer > 75:
        three_w["zone_atb3_c"] += 0.3
        three_w["zone_c3_l"] -= 0.1
        three_w["zone_c3_r"] -= 0.1

    bias = hidden_tendencies(p.player_id, p.name).lateral_bias
    mid_w = _lateral_skew(dict(_MID_BASE), bias)
    three_w = _lateral_skew(three_w, bias)

    out = {
        "zone_rim": coarse["inside"] * rim_ratio,
        "zone_paint": coarse["inside"] * (1.0 - rim_ratio),
    }
    out.update({k: v * coarse["mid"] for k, v in mid_w.items()})
    out.update({k: v * coarse["three"] for k, v in three_w.items()})
    return out


def attempt_distribution(p: LivePlayer, sliders: Optional[Mapping[str, float]] = None) -> Dict[str, float]:
    """Per-player attempt share over the 10 sub-zones (sums to 1)."""
    buckets = _tendency_buckets(p.tendencies)
    if buckets is not None:
        weights = _from_tendency_data(buckets, (p.tendencies or {}).get("lateral_bias", 1))
    else:
        weights = _from_archetypes(p, sliders)
    return normalize_weights({sz: weights.get(sz, 0.0) for sz in SUB_ZONES})


def draw_zone(rng: random.Random, p: LivePlayer, sliders: Optional[Mapping[str, float]] = None) -> str:
    dist = attempt_distribution(p, sliders)
    coarse: Dict[str, float] = {z: 0.0 for z in ZONES}
    for sz, w in dist.items():
        coarse[SUB_ZONE_TO_ZONE[sz]] += w
    return weighted_choice(rng, coarse)


def draw_sub_zone(rng: random.Random, p: LivePlayer, zone: str) -> str:
    subs = ZONE_TO_SUB_ZONES.get(zone, ("zone_mid_c",))
    if len(subs) == 1:
        return subs[0]
    dist = attempt_distribution(p)
    return weighted_choice(rng, {sz: dist.get(sz, 0.0) + 1e-6 for sz in subs})


# -------------------------
# Hit rate
# -------------------------

@dataclass(frozen=True)
class HitRate:
    rate: float
    matchup_effect: float = 0.0
    is_ace_target: bool = False
    is_mismatch: bool = False


def _zone_ability(p: LivePlayer, zone: str) -> float:
    if zone == "Rim":
        return p.rating("ins") * 0.5 + p.rating("layup") * 0.25 + p.rating("dunk") * 0.25
    if zone == "Paint":
        return p.rating("ins") * 0.4 + p.rating("post_play") * 0.3 + p.rating("mid") * 0.3
    if zone == "Mid":
        return p.rating("mid")
    return p.rating("three_val")


def haste_malus(offense_sliders: Mapping[str, float], defense_sliders: Mapping[str, float], p: LivePlayer) -> float:
    pace_mult = (
        1.0
        + (float(offense_sliders.get("pace", 5)) - 5.0) * 0.02
        + (float(defense_sliders.get("fullCourtPress", 1)) - 5.0) * 0.015
    )
    if pace_mult <= 1.15:
        return 0.0
    return (pace_mult - 1.15) * 0.6 * (1.0 - composure(p.attr))


def ace_matchup_effect(shooter: LivePlayer, stopper: LivePlayer) -> float:
    """Bounded percentage (+/-) applied to the shooter's makes against a designated stopper."""
    total = shooter.sec_with_stopper + shooter.sec_without_stopper
    overlap = shooter.sec_with_stopper / total if total > 0 else 1.0
    if overlap < ACE_MIN_OVERLAP:
        return 0.0
    raw_impact = 40.0 - stopper.rating("per_def") * 0.9
    freedom = min(35.0, (shooter.sec_without_stopper / 60.0) * 1.2)
    return clamp(raw_impact * overlap + freedom, *ACE_EFFECT_BOUNDS)


def calculate_hit_rate(
    actor: LivePlayer,
    defender: Optional[LivePlayer],
    zone: str,
    *,
    offense_sliders: Mapping[str, float],
    defense_sliders: Mapping[str, float],
    metrics: OpponentDefensiveMetrics,
    is_home: bool,
    home_advantage: float = 0.02,
    play_bonus: float = 0.0,
    modifier: float = 0.0,
    is_mismatch: bool = False,
    is_ace_matchup: bool = False,
    min_hit_rate: Optional[float] = None,
) -> HitRate:
    if zone not in BASE_RATE:
        raise ValueError(f"calculate_hit_rate(): unknown zone {zone!r}")

    inside = zone in ("Rim", "Paint")
    team_def = metrics.int_def if inside else metrics.per_def
    if defender is not None:
        ind_def = defender.rating("int_def" if inside else "per_def")
        def_mix = team_def * 0.5 + ind_def * 0.5
    else:
        def_mix = team_def

    rate = BASE_RATE[zone] + (_zone_ability(actor, zone) - def_mix) * ABILITY_IMPACT[zone]
    if zone == "Rim":
        rate -= (metrics.block - 50.0) * 0.001
    elif zone == "3PT":
        rate -= (metrics.pressure - 50.0) * 0.0005
    else:
        rate -= (metrics.pressure - 50.0) * 0.001

    rate -= haste_malus(offense_sliders, defense_sliders, actor) * HASTE_WEIGHT[zone]

    home_term = home_advantage if is_home else -0.8 * home_advantage
    rate += home_term * (0.8 if zone == "3PT" else 1.0)

    rate += (float(offense_sliders.get("ballMovement", 5)) - 5.0) * 0.002
    rate -= (float(defense_sliders.get("defIntensity", 5)) - 5.0) * 0.004
    rate -= max(0.0, 50.0 - actor.current_condition) * 0.002
    rate += actor.hot_cold * 0.03
    rate += play_bonus * 0.5
    rate += modifier
    if is_mismatch:
        rate += 0.05

    effect = 0.0
    if is_ace_matchup and defender is not None:
        effect = ace_matchup_effect(actor, defender)
        rate *= 1.0 + effect / 100.0

    lo, hi = RATE_BOUNDS[zone]
    rate = clamp(rate, lo, hi)
    if min_hit_rate is not None:
        rate = max(rate, float(min_hit_rate))

    return HitRate(rate=rate, matchup_effect=effect, is_ace_target=is_ace_matchup, is_mismatch=is_mismatch)


def clamp_makes(makes: int, attempts: int) -> int:
    return max(0, min(int(makes), int(attempts)))
