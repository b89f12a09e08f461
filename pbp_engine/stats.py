from __future__ import annotations

"""Apply a PossessionResult to GameState: box score, team score, plus-minus,
shot chart and play-by-play lines.

This is the only place where possession outcomes turn into counters.
"""

import random
from typing import Any, Dict, List, Optional

from .clock import format_time
from .core import clamp
from .court import generate_shot_coordinate
from .models import HOME, SUB_ZONES, GameState, LivePlayer, PbpLog, ShotEvent, TeamState
from .results import Foul, FreeThrow, Miss, PossessionResult, Score, Turnover
from .shot_model import clamp_makes

HOT_COLD_DECAY = 0.7
HOT_COLD_STEP = 0.3
HOT_COLD_DAMPEN = 0.5


# -------------------------
# Small helpers
# -------------------------

def update_hot_cold(p: LivePlayer, made: bool) -> None:
    step = HOT_COLD_STEP if made else -HOT_COLD_STEP
    p.hot_cold = clamp(p.hot_cold * HOT_COLD_DECAY + step, -1.0, 1.0)


def dampen_hot_cold(players: List[LivePlayer]) -> None:
    for p in players:
        p.hot_cold *= HOT_COLD_DAMPEN


def reset_hot_cold(players: List[LivePlayer]) -> None:
    for p in players:
        p.hot_cold = 0.0


def add_log(
    state: GameState,
    team: TeamState,
    text: str,
    type: str,
    points: Optional[int] = None,
) -> PbpLog:
    log = PbpLog(
        quarter=state.quarter,
        time_remaining=format_time(state.game_clock),
        team_id=team.id,
        text=text,
        type=type,
        points=points,
    )
    state.logs.append(log)
    return log


def _credit_points(offense: TeamState, defense: TeamState, points: int) -> None:
    if points <= 0:
        return
    offense.score += points
    for p in offense.on_court:
        p.plus_minus += points
    for p in defense.on_court:
        p.plus_minus -= points


def _record_shot(
    rng: random.Random,
    state: GameState,
    offense: TeamState,
    shooter: LivePlayer,
    zone: str,
    sub_zone: Optional[str],
    play_type: str,
    made: bool,
    assister: Optional[LivePlayer],
    matchup_effect: float,
) -> None:
    shooter.fga += 1
    if made:
        shooter.fgm += 1
    if zone == "3PT":
        shooter.p3a += 1
        if made:
            shooter.p3m += 1
    if sub_zone in shooter.zone_stats:
        shooter.zone_stats[sub_zone]["a"] += 1
        if made:
            shooter.zone_stats[sub_zone]["m"] += 1
    if matchup_effect:
        shooter.matchup_effect_sum += matchup_effect
        shooter.matchup_effect_count += 1
    update_hot_cold(shooter, made)

    side = "Right" if state.side_of(offense) == HOME else "Left"
    x, y = generate_shot_coordinate(rng, sub_zone or "zone_mid_c", side)
    state.shot_events.append(
        ShotEvent(
            id=f"shot-{len(state.shot_events) + 1}",
            quarter=state.quarter,
            game_clock=int(state.game_clock),
            team_id=offense.id,
            player_id=shooter.player_id,
            x=x,
            y=y,
            zone=sub_zone or zone,
            is_make=made,
            play_type=play_type,
            assist_player_id=assister.player_id if (made and assister is not None) else None,
        )
    )


def _charge_foul(defense: TeamState, defender: Optional[LivePlayer]) -> None:
    if defender is not None:
        defender.pf += 1
    defense.fouls += 1


def _assist_suffix(assister: Optional[LivePlayer]) -> str:
    return f" (assist: {assister.name})" if assister is not None else ""


# -------------------------
# Main entry
# -------------------------

def apply_possession_result(rng: random.Random, state: GameState, result: PossessionResult) -> List[PbpLog]:
    """Fold one possession outcome into the game state; returns the new log lines."""
    offense = state.offense()
    defense = state.defense()
    start = len(state.logs)

    if isinstance(result, Score):
        actor = result.actor
        actor.pts += result.points
        if result.assister is not None:
            result.assister.ast += 1
        _record_shot(
            rng, state, offense, actor, result.zone, result.sub_zone, result.play_type,
            True, result.assister, result.matchup_effect,
        )
        _credit_points(offense, defense, result.points)
        add_log(
            state, offense,
            f"{actor.name} scores {result.points} ({result.play_type}){_assist_suffix(result.assister)}",
            "score", result.points,
        )

    elif isinstance(result, Miss):
        actor = result.actor
        _record_shot(
            rng, state, offense, actor, result.zone, result.sub_zone, result.play_type,
            False, None, result.matchup_effect,
        )
        if result.blocker is not None:
            result.blocker.blk += 1
            add_log(state, defense, f"{result.blocker.name} blocks {actor.name}", "block")
        else:
            add_log(state, offense, f"{actor.name} misses ({result.play_type}, {result.zone})", "miss")
        reb = result.rebounder
        if reb is not None:
            reb.reb += 1
            if result.is_offensive_rebound:
                reb.off_reb += 1
                add_log(state, offense, f"{reb.name} offensive rebound", "info")
            else:
                reb.def_reb += 1
                add_log(state, defense, f"{reb.name} defensive rebound", "info")

    elif isinstance(result, Turnover):
        actor = result.actor
        actor.tov += 1
        if result.stealer is not None:
            result.stealer.stl += 1
            add_log(state, offense, f"{actor.name} turnover (steal: {result.stealer.name})", "turnover")
        else:
            add_log(state, offense, f"{actor.name} turnover", "turnover")

    elif isinstance(result, Foul):
        _charge_foul(defense, result.defender)
        add_log(state, defense, f"Foul on {result.defender.name} ({result.defender.pf} PF)", "foul")

    elif isinstance(result, FreeThrow):
        actor = result.actor
        if result.is_and_one:
            actor.pts += result.shot_points
            if result.assister is not None:
                result.assister.ast += 1
            _record_shot(
                rng, state, offense, actor, result.zone or "Rim", result.sub_zone, result.play_type,
                True, result.assister, 0.0,
            )
            _credit_points(offense, defense, result.shot_points)
            add_log(
                state, offense,
                f"{actor.name} scores {result.shot_points} and one ({result.play_type})"
                f"{_assist_suffix(result.assister)}",
                "score", result.shot_points,
            )
        _charge_foul(defense, result.defender)
        if not result.is_and_one:
            fouler = result.defender.name if result.defender is not None else "team"
            kind = "Shooting foul" if result.is_shooting_foul else "Bonus foul"
            add_log(state, defense, f"{kind} on {fouler}", "foul")
        actor.fta += result.attempts
        actor.ftm += result.made
        actor.pts += result.made
        _credit_points(offense, defense, result.made)
        add_log(
            state, offense,
            f"{actor.name} makes {result.made} of {result.attempts} free throws",
            "freethrow", result.made,
        )

    else:
        raise TypeError(f"apply_possession_result(): unknown result {type(result).__name__}")

    return state.logs[start:]


# -------------------------
# Box score views
# -------------------------

def zone_data(p: LivePlayer) -> Dict[str, Dict[str, int]]:
    out = {}
    for sz in SUB_ZONES:
        raw = p.zone_stats.get(sz, {"m": 0, "a": 0})
        a = max(0, int(raw.get("a", 0)))
        out[sz] = {"m": clamp_makes(raw.get("m", 0), a), "a": a}
    return out


def player_box(p: LivePlayer) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "playerId": p.player_id,
        "playerName": p.name,
        "position": p.position,
        "isStarter": p.is_starter,
        "gs": p.gs,
        "mp": round(p.mp, 1),
        "pts": p.pts,
        "reb": p.reb,
        "offReb": p.off_reb,
        "defReb": p.def_reb,
        "ast": p.ast,
        "stl": p.stl,
        "blk": p.blk,
        "tov": p.tov,
        "fgm": clamp_makes(p.fgm, p.fga),
        "fga": p.fga,
        "p3m": clamp_makes(p.p3m, p.p3a),
        "p3a": p.p3a,
        "ftm": clamp_makes(p.ftm, p.fta),
        "fta": p.fta,
        "pf": p.pf,
        "plusMinus": p.plus_minus,
        "condition": round(p.current_condition, 1),
        "zoneData": zone_data(p),
    }
    if p.is_ace_target:
        avg = p.matchup_effect_sum / p.matchup_effect_count if p.matchup_effect_count else 0.0
        row["aceMatchup"] = {
            "secWithStopper": round(p.sec_with_stopper, 1),
            "secWithoutStopper": round(p.sec_without_stopper, 1),
            "avgEffect": round(avg, 2),
        }
    return row


def team_box(team: TeamState) -> List[Dict[str, Any]]:
    return [player_box(p) for p in sorted(team.all_players(), key=lambda p: (not p.is_starter, -p.mp))]


def box_score_frame(state: GameState):
    """Both teams' box scores as one pandas DataFrame (one row per player)."""
    import pandas as pd  # local import so the engine runs without pandas

    rows = []
    for team in (state.home, state.away):
        for row in team_box(team):
            flat = {k: v for k, v in row.items() if k not in ("zoneData", "aceMatchup")}
            flat["teamId"] = team.id
            rows.append(flat)
    df = pd.DataFrame(rows)
    if not df.empty:
        df = df.set_index(["teamId", "playerId"])
    return df
