from __future__ import annotations

from typing import Dict, Iterable, Mapping

from .core import clamp

ARCHETYPE_KEYS = (
    "handler", "spacer", "driver", "screener", "roller", "popper",
    "rebounder", "postScorer", "isoScorer", "connector", "perimLock", "rimProtector",
)


def _a(attr: Mapping[str, float], key: str) -> float:
    return float(attr.get(key, 50.0))


def fatigue_factor(condition: float) -> float:
    return max(0.5, 0.5 + float(condition) * 0.005)


def compute_archetypes(
    attr: Mapping[str, float],
    height: float,
    weight: float,
    condition: float = 100.0,
) -> Dict[str, float]:
    """Role-fit ratings (0-100+) from raw attributes, scaled by current condition."""
    norm_h = max(0.0, (float(height) - 185.0) * 3.0)
    norm_w = max(0.0, (float(weight) - 80.0) * 1.6)

    raw = {
        "handler": _a(attr, "handling") * 0.30 + _a(attr, "pass_iq") * 0.25
        + _a(attr, "pass_vision") * 0.25 + _a(attr, "pass_acc") * 0.20,
        "spacer": _a(attr, "three_val") * 0.6 + _a(attr, "shot_iq") * 0.25 + _a(attr, "off_consist") * 0.15,
        "driver": _a(attr, "speed") * 0.2 + _a(attr, "agility") * 0.15 + _a(attr, "vertical") * 0.1
        + _a(attr, "ins") * 0.35 + _a(attr, "mid") * 0.2,
        "screener": _a(attr, "strength") * 0.4 + min(100.0, norm_h) * 0.3 + min(100.0, norm_w) * 0.3,
        "roller": _a(attr, "ins") * 0.4 + _a(attr, "vertical") * 0.3 + _a(attr, "speed") * 0.3,
        "popper": _a(attr, "three_val") * 0.7 + _a(attr, "shot_iq") * 0.3,
        "rebounder": _a(attr, "reb") * 0.7 + _a(attr, "hustle") * 0.15 + _a(attr, "vertical") * 0.15,
        "postScorer": _a(attr, "post_play") * 0.5 + _a(attr, "strength") * 0.3 + _a(attr, "hands") * 0.2,
        "isoScorer": (_a(attr, "handling") + _a(attr, "mid") + _a(attr, "speed") + _a(attr, "agility")) * 0.25,
        "connector": _a(attr, "pass_iq") * 0.3 + _a(attr, "help_def_iq") * 0.2
        + _a(attr, "hustle") * 0.3 + _a(attr, "hands") * 0.2,
        "perimLock": _a(attr, "per_def") * 0.5 + _a(attr, "agility") * 0.25 + _a(attr, "steal") * 0.25,
        "rimProtector": _a(attr, "blk") * 0.35 + _a(attr, "int_def") * 0.35
        + _a(attr, "vertical") * 0.15 + min(100.0, norm_h) * 0.15,
    }
    f = fatigue_factor(condition)
    return {k: round(v * f, 2) for k, v in raw.items()}


# -------------------------
# Usage / gravity
# -------------------------

def scoring_gravity(attr: Mapping[str, float], condition: float = 100.0) -> float:
    shooting = (
        _a(attr, "ins") * 0.4 + _a(attr, "out") * 0.3 + _a(attr, "mid") * 0.2 + _a(attr, "ft") * 0.1
    )
    craft = _a(attr, "off_consist") * 0.4 + _a(attr, "shot_iq") * 0.4 + _a(attr, "pass_acc") * 0.2
    base = shooting * 0.6 + craft * 0.4
    return base * max(0.5, float(condition) / 100.0)


def top_player_gravity(players: Iterable) -> float:
    """Highest scoring gravity among LivePlayer-like objects (attr + current_condition)."""
    vals = [scoring_gravity(p.attr, p.current_condition) for p in players]
    return max(vals) if vals else 0.0


def composure(attr: Mapping[str, float]) -> float:
    """0..1 mitigation against rushed shots."""
    avg = (_a(attr, "shot_iq") + _a(attr, "off_consist") + _a(attr, "intangibles")) / 3.0
    return clamp((avg - 50.0) / 50.0, 0.0, 1.0)
