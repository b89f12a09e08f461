from __future__ import annotations

"""Court geometry for shot charts (feet, full court 94 x 50).

Shots are generated toward the left hoop and mirrored when the shooting
side is "Right". y=50 is the left sideline as seen from the hoop.
"""

import math
import random
from typing import Tuple

COURT_WIDTH = 94.0
COURT_HEIGHT = 50.0
HOOP_X_LEFT = 5.25
HOOP_Y_CENTER = 25.0
THREE_POINT_RADIUS = 23.75
CORNER_THREE_X = 14.0
PAINT_WIDTH = 16.0
PAINT_LENGTH = 19.0
RESTRICTED_AREA = 4.0

_MAX_TRIES = 12


def _polar(r: float, theta: float) -> Tuple[float, float]:
    return HOOP_X_LEFT + r * math.cos(theta), HOOP_Y_CENTER + r * math.sin(theta)


def _in_paint(x: float, y: float) -> bool:
    return x < PAINT_LENGTH and abs(y - HOOP_Y_CENTER) < PAINT_WIDTH / 2


def _dist(x: float, y: float) -> float:
    return math.hypot(x - HOOP_X_LEFT, y - HOOP_Y_CENTER)


def _valid(x: float, y: float) -> bool:
    return 0.0 <= x <= COURT_WIDTH / 2 and 0.0 <= y <= COURT_HEIGHT


def _biased_offset(max_offset: float, power: float, rng: random.Random) -> float:
    return (rng.random() ** power) * max_offset


def _sample(rng: random.Random, sub_zone: str) -> Tuple[float, float]:
    if sub_zone == "zone_rim":
        return _polar(rng.random() * RESTRICTED_AREA, rng.uniform(-math.pi / 2, math.pi / 2))
    if sub_zone == "zone_paint":
        x = rng.uniform(1.0, PAINT_LENGTH)
        y = HOOP_Y_CENTER + rng.uniform(-PAINT_WIDTH / 2, PAINT_WIDTH / 2)
        return x, y
    if sub_zone.startswith("zone_mid"):
        lo, hi = {
            "zone_mid_l": (math.radians(30), math.radians(85)),
            "zone_mid_c": (math.radians(-30), math.radians(30)),
            "zone_mid_r": (math.radians(-85), math.radians(-30)),
        }[sub_zone]
        return _polar(8.0 + rng.random() * (THREE_POINT_RADIUS - 9.0), rng.uniform(lo, hi))
    if sub_zone == "zone_c3_l":
        return rng.random() * CORNER_THREE_X, COURT_HEIGHT - (1.5 + rng.random() * 2.0)
    if sub_zone == "zone_c3_r":
        return rng.random() * CORNER_THREE_X, 1.5 + rng.random() * 2.0
    lo, hi = {
        "zone_atb3_l": (0.45, 1.2),
        "zone_atb3_c": (-0.45, 0.45),
        "zone_atb3_r": (-1.2, -0.45),
    }.get(sub_zone, (-1.2, 1.2))
    r = THREE_POINT_RADIUS + 0.5 + _biased_offset(6.0, 4.0, rng)
    return _polar(r, rng.uniform(lo, hi))


def _acceptable(sub_zone: str, x: float, y: float) -> bool:
    if not _valid(x, y):
        return False
    if sub_zone.startswith("zone_mid"):
        return not _in_paint(x, y) and _dist(x, y) <= 22.0
    return True


def generate_shot_coordinate(rng: random.Random, sub_zone: str, side: str = "Left") -> Tuple[float, float]:
    x, y = HOOP_X_LEFT, HOOP_Y_CENTER
    for _ in range(_MAX_TRIES):
        x, y = _sample(rng, sub_zone)
        if _acceptable(sub_zone, x, y):
            break
    else:
        x = min(max(x, 0.0), COURT_WIDTH / 2)
        y = min(max(y, 0.0), COURT_HEIGHT)

    if side == "Right":
        x = COURT_WIDTH - x
    return x, y


def categorize_zone(dist: float) -> str:
    if dist < RESTRICTED_AREA:
        return "Rim"
    if dist < 16:
        return "Paint"
    if dist < 23:
        return "Mid"
    return "3PT"
