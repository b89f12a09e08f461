from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .core import clamp
from .errors import LineupInvariantError
from .models import LivePlayer, TeamState

ORB_MIN = 0.15
ORB_MAX = 0.40
DEF_POWER_WEIGHT = 2.5

_POS_REB_BONUS = {"C": 1.3, "PF": 1.2}
_SHOOTER_PENALTY = 0.3


@dataclass(frozen=True)
class OpponentDefensiveMetrics:
    int_def: float
    per_def: float
    block: float
    pressure: float
    help_def: float


def get_opponent_defensive_metrics(team: TeamState, zone_active: bool = False) -> OpponentDefensiveMetrics:
    """Minute-weighted averages of the on-court defenders.

    A player who has not logged a minute yet still counts with weight 1.
    """
    players = team.on_court
    if not players:
        raise LineupInvariantError(f"{team.name}: no defenders on court")

    weights = [max(1.0, p.mp) for p in players]
    total = sum(weights)

    def wavg(key: str) -> float:
        return sum(p.rating(key) * w for p, w in zip(players, weights)) / total

    int_def = wavg("int_def")
    per_def = wavg("per_def")
    if zone_active:
        zone_effect = (team.slider("zoneUsage") - 5.0) * 2.0
        int_def += zone_effect
        per_def -= zone_effect

    return OpponentDefensiveMetrics(
        int_def=int_def,
        per_def=per_def,
        block=wavg("blk"),
        pressure=wavg("def"),
        help_def=wavg("help_def_iq"),
    )


# -------------------------
# Rebounding
# -------------------------

def _reb_power(p: LivePlayer, key: str) -> float:
    return p.rating(key) * 0.6 + p.rating("vertical") * 0.2 + (p.height - 180.0) * 0.5


def orb_probability(offense: TeamState, defense: TeamState) -> float:
    off_players = offense.on_court
    def_players = defense.on_court
    if not off_players or not def_players:
        raise LineupInvariantError("orb_probability(): empty on-court list")

    off_power = max(1.0, sum(_reb_power(p, "off_reb") for p in off_players) / len(off_players))
    def_power = max(1.0, sum(_reb_power(p, "def_reb") for p in def_players) / len(def_players))

    p = off_power / (off_power + DEF_POWER_WEIGHT * def_power)
    p += (offense.slider("offReb") - 5.0) * 0.01
    p -= (defense.slider("defReb") - 5.0) * 0.01
    return clamp(p, ORB_MIN, ORB_MAX)


def select_rebounder(
    rng: random.Random,
    players: List[LivePlayer],
    shooter: Optional[LivePlayer] = None,
) -> LivePlayer:
    if not players:
        raise LineupInvariantError("select_rebounder(): empty candidate list")
    best: Optional[LivePlayer] = None
    best_score = -1.0
    for p in players:
        score = (p.rating("reb") * 0.6 + p.rating("vertical") * 0.2 + (p.height - 180.0) * 0.5)
        score = max(1.0, score) * _POS_REB_BONUS.get(p.position.upper().split("/")[0], 1.0)
        if shooter is not None and p is shooter:
            score *= _SHOOTER_PENALTY
        score *= rng.random()
        if score > best_score:
            best, best_score = p, score
    return best if best is not None else players[0]


def resolve_rebound(
    rng: random.Random,
    offense: TeamState,
    defense: TeamState,
    shooter: Optional[LivePlayer],
) -> Tuple[LivePlayer, bool]:
    """Return (rebounder, is_offensive)."""
    if rng.random() < orb_probability(offense, defense):
        return select_rebounder(rng, offense.on_court, shooter), True
    return select_rebounder(rng, defense.on_court), False


def best_rebounder(players: List[LivePlayer]) -> LivePlayer:
    if not players:
        raise LineupInvariantError("best_rebounder(): empty candidate list")
    return max(players, key=lambda p: p.arch("rebounder"))
