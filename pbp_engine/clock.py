from __future__ import annotations

"""Clock utilities (possession time cost, display format)."""

import random
from typing import Optional

from .core import clamp

MIN_POSSESSION_SEC = 4
MAX_POSSESSION_SEC = 24
LATE_CLOCK_WINDOW = (30, 45)
LATE_CLOCK_CAP = 8


def calculate_possession_time(
    rng: random.Random,
    pace: float,
    game_clock: float,
    play_type: Optional[str] = None,
) -> int:
    if play_type == "Putback":
        t = float(rng.randint(2, 5))
    elif play_type == "Transition":
        t = float(rng.randint(4, 8))
    else:
        t = rng.randint(10, 17) + (float(pace) - 5.0) * -0.8
        if LATE_CLOCK_WINDOW[0] <= game_clock <= LATE_CLOCK_WINDOW[1]:
            t = min(t, LATE_CLOCK_CAP)
        t = clamp(t, MIN_POSSESSION_SEC, MAX_POSSESSION_SEC)
    t = min(t, max(0.0, float(game_clock)))
    return int(round(t))


def format_time(seconds: float) -> str:
    s = max(0, int(seconds))
    return f"{s // 60}:{s % 60:02d}"
