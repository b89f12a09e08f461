from __future__ import annotations

"""Per-player substitution requests.

check_substitutions() only decides who must leave the floor and why; the
rotation module carries the requests out (succession, temporary overrides).
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .fatigue import SHUTDOWN
from .models import FOUL_OUT_LIMIT, INJURED, GameState, LivePlayer, TeamState

HALF_END_MINUTE = 24
CLUTCH_MINUTE = 42  # Q4 6:00

GARBAGE_CLOCK = 300
GARBAGE_MARGIN = 20


@dataclass
class SubRequest:
    player: LivePlayer
    reason: str  # injury | foul_out | shutdown | foul_trouble | foul_trouble_rest | garbage
    permanent: bool
    return_minute: Optional[int] = None


# -------------------------
# Foul trouble
# -------------------------

def player_importance(team: TeamState, player: LivePlayer) -> str:
    """star | rotation | bench.

    A star is a starter whose OVR reaches the team's third-best OVR.
    """
    ovrs = sorted((p.ovr for p in team.all_players()), reverse=True)
    if not ovrs:
        return "bench"
    threshold = ovrs[min(2, len(ovrs) - 1)]
    if player.is_starter and player.ovr >= threshold:
        return "star"
    if player.is_starter:
        return "rotation"
    return "bench"


def foul_trouble_action(quarter: int, fouls: int, importance: str, minute: int) -> Optional[Tuple[bool, Optional[int]]]:
    """(permanent, return_minute) for a player in foul trouble, or None to keep playing."""
    star = importance == "star"
    bench = importance == "bench"

    if quarter == 1:
        if fouls >= 4:
            return (False, HALF_END_MINUTE) if star else (True, None)
        if fouls >= 3:
            return (True, None) if bench else (False, HALF_END_MINUTE)
        if fouls >= 2:
            return False, minute + 6
        return None

    if quarter == 2:
        if fouls >= 5:
            return (False, HALF_END_MINUTE) if star else (True, None)
        if fouls >= 4:
            return False, HALF_END_MINUTE
        if fouls >= 3:
            return (True, None) if bench else (False, minute + 6)
        return None

    if quarter == 3:
        if fouls >= 5:
            return (False, minute + 4) if star else (True, None)
        if fouls >= 4:
            return False, minute + 6
        return None

    if quarter == 4:
        if fouls == 5 and star and minute < CLUTCH_MINUTE:
            return False, min(45, minute + 3)
        if fouls == 5 and bench:
            return True, None
    return None


def is_garbage_time(state: GameState) -> bool:
    margin = abs(state.home.score - state.away.score)
    return (
        state.quarter >= state.config.regulation_quarters
        and state.game_clock < GARBAGE_CLOCK
        and margin > GARBAGE_MARGIN
    )


def _fresh_reserves(team: TeamState) -> int:
    return sum(
        1 for p in team.all_players()
        if not p.is_starter and p.health != INJURED and p.pf < FOUL_OUT_LIMIT
        and p.bench_reason is None and not p.is_shutdown
    )


# -------------------------
# Main entry
# -------------------------

def check_substitutions(state: GameState, team: TeamState, minute: int) -> List[SubRequest]:
    """Forced exits for the current on-court unit, highest priority first per player.

    Injury and a sixth foul always apply. Exhaustion (condition at or below the
    shutdown floor) always applies. Foul trouble and garbage time are coach
    decisions and only apply to players the schedule does not want right now.
    """
    garbage = is_garbage_time(state) and _fresh_reserves(team) >= 5
    requests: List[SubRequest] = []

    for p in list(team.on_court):
        if p.bench_reason:
            continue
        scheduled = team.schedule.is_scheduled(p.player_id, minute)

        if p.health == INJURED:
            requests.append(SubRequest(p, "injury", permanent=True))
            continue
        if p.pf >= FOUL_OUT_LIMIT:
            requests.append(SubRequest(p, "foul_out", permanent=True))
            continue
        if p.is_shutdown or p.current_condition <= SHUTDOWN:
            p.is_shutdown = True
            requests.append(SubRequest(p, "shutdown", permanent=False))
            continue

        if not scheduled and p.pf > p.foul_trouble_handled_at:
            action = foul_trouble_action(state.quarter, p.pf, player_importance(team, p), minute)
            if action is not None:
                permanent, return_minute = action
                reason = "foul_trouble_rest" if permanent else "foul_trouble"
                requests.append(SubRequest(p, reason, permanent=permanent, return_minute=return_minute))
                continue

        if garbage and p.is_starter and not scheduled:
            requests.append(SubRequest(p, "garbage", permanent=True))

    return requests
