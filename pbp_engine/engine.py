from __future__ import annotations

"""Game loop.

The public surface is create_game_state / step_possession /
apply_manual_substitution / extract_sim_result. GameState is owned by the
caller and mutated in place, one possession per step_possession() call.
Each step runs the same pipeline:

    quarter rollover -> resolve -> apply stats -> clock -> momentum
    -> fatigue/minutes -> temporary returns -> forced subs -> rotation
    -> next possession -> game end / timeout
"""

import copy
import logging
import random
from typing import Any, Dict, List, Mapping, Optional

from .archetypes import scoring_gravity
from .attributes import build_live_player, refresh_archetypes
from .clock import format_time
from .engine_config import EngineConfig
from .errors import EngineError, RosterError
from .fatigue import apply_condition_delta, bench_recovery, calculate_drain, recover, roll_injury
from .models import (
    AWAY,
    HOME,
    INJURED,
    POSITIONS,
    ActiveRun,
    DepthChart,
    GameState,
    GameTactics,
    LivePlayer,
    MomentumState,
    PbpLog,
    StepResult,
    Team,
    TeamState,
)
from .possession import resolve_possession
from .results import Miss, Score
from .rotation import (
    apply_manual_substitution,
    check_and_apply_rotation,
    check_temporary_returns,
    close_stint,
    open_stint,
    process_substitutions,
)
from .schedule import RotationSchedule
from .stats import (
    add_log,
    apply_possession_result,
    dampen_hot_cold,
    reset_hot_cold,
    team_box,
)
from .tactics import normalize_tactics

logger = logging.getLogger(__name__)

SYSTEM_TEAM_ID = "SYSTEM"

__all__ = [
    "create_game_state",
    "step_possession",
    "apply_manual_substitution",
    "call_timeout",
    "extract_sim_result",
    "simulate_full_game",
]


# -------------------------
# Setup
# -------------------------

def _system_log(state: GameState, text: str) -> PbpLog:
    log = PbpLog(
        quarter=min(state.quarter, state.config.regulation_quarters),
        time_remaining=format_time(state.game_clock),
        team_id=SYSTEM_TEAM_ID,
        text=text,
        type="info",
    )
    state.logs.append(log)
    return log


def _init_team(
    team: Team,
    tactics: Optional[GameTactics],
    depth_chart: Optional[DepthChart],
    cfg: EngineConfig,
    is_b2b: bool,
) -> TeamState:
    healthy = [p for p in team.roster if p.health != INJURED]
    if len(healthy) < 5:
        raise RosterError(f"{team.name}: need at least 5 healthy players, got {len(healthy)}")
    ids = [str(p.id) for p in team.roster]
    if len(set(ids)) != len(ids):
        raise RosterError(f"{team.name}: duplicate player ids in roster")

    gt = normalize_tactics(tactics, team.roster, depth_chart, team_label=team.name)
    starter_ids = set(gt.starters.values())
    live = {str(p.id): build_live_player(p, is_starter=str(p.id) in starter_ids) for p in team.roster}

    on_court = [live[gt.starters[pos]] for pos in POSITIONS if gt.starters.get(pos) in live]
    bench = [p for pid, p in live.items() if p not in on_court]

    schedule = RotationSchedule.from_minute_map(gt.rotation_map or {}, length=cfg.regulation_minutes)
    ts = TeamState(
        id=str(team.id),
        name=team.name,
        tactics=gt,
        depth_chart={pos: list(ranks) for pos, ranks in (gt.depth_chart or {}).items()},
        on_court=on_court,
        bench=bench,
        schedule=schedule,
        timeouts=cfg.timeouts_per_team,
        is_b2b=is_b2b,
    )
    ts.set_on_court([p.player_id for p in on_court], strict=True)

    candidates = [p for p in ts.all_players() if p.health != INJURED]
    ace = max(candidates, key=lambda p: scoring_gravity(p.attr, p.current_condition))
    ts.ace_id = ace.player_id
    stopper = ts.stopper
    if stopper is not None:
        stopper.is_stopper = True
    return ts


def create_game_state(
    home: Team,
    away: Team,
    user_team_id: Optional[str] = None,
    tactics: Optional[Mapping[str, GameTactics]] = None,
    b2b: Optional[Mapping[str, bool]] = None,
    depth_charts: Optional[Mapping[str, DepthChart]] = None,
    *,
    config: Optional[EngineConfig] = None,
    rng: Optional[random.Random] = None,
) -> GameState:
    """Build a fresh GameState at the Q1 tip-off.

    `tactics`, `b2b` and `depth_charts` are keyed by team id; any team missing
    from them gets generated tactics and an OVR-based depth chart.
    """
    cfg = config or EngineConfig()
    tactics = tactics or {}
    b2b = b2b or {}
    depth_charts = depth_charts or {}

    home_state = _init_team(home, tactics.get(home.id), depth_charts.get(home.id), cfg, bool(b2b.get(home.id)))
    away_state = _init_team(away, tactics.get(away.id), depth_charts.get(away.id), cfg, bool(b2b.get(away.id)))

    state = GameState(
        home=home_state,
        away=away_state,
        config=cfg,
        rng=rng if rng is not None else random.Random(),
        user_team_id=user_team_id,
        game_clock=cfg.quarter_length,
        shot_clock=cfg.shot_clock,
        is_home_b2b=home_state.is_b2b,
        is_away_b2b=away_state.is_b2b,
    )

    # ace target tracking only matters when the other side names a stopper
    for team, opp in ((home_state, away_state), (away_state, home_state)):
        if opp.stopper is not None and team.ace_id:
            ace = team.find(team.ace_id)
            if ace is not None:
                ace.is_ace_target = True

    for team in (home_state, away_state):
        state.original_schedules[team.id] = team.schedule.copy()
        for p in team.on_court:
            open_stint(state, p, 0)

    _system_log(state, "Tip-off")
    return state


# -------------------------
# Momentum / timeouts
# -------------------------

def reset_momentum(state: GameState) -> None:
    state.momentum = MomentumState(epoch_start_total_sec=state.elapsed_seconds())


def update_momentum(state: GameState, side: str, points: int) -> None:
    m = state.momentum
    if side == HOME:
        m.home_epoch_pts += points
    else:
        m.away_epoch_pts += points

    diff = m.home_epoch_pts - m.away_epoch_pts
    run = m.active_run
    lost_edge = run is not None and ((run.side == HOME and diff < 0) or (run.side == AWAY and diff > 0))
    if lost_edge or diff == 0:
        reset_momentum(state)
        return

    threshold = state.config.run_threshold
    if run is None:
        if diff >= threshold:
            m.active_run = ActiveRun(side=HOME, start_total_sec=state.elapsed_seconds())
        elif diff <= -threshold:
            m.active_run = ActiveRun(side=AWAY, start_total_sec=state.elapsed_seconds())


def _recover_all(state: GameState, key: str) -> None:
    base = float(state.config.recovery.get(key, 0.0))
    if base <= 0:
        return
    for team in (state.home, state.away):
        for p in team.all_players():
            if p.current_condition < 100:
                recover(p, base)
                refresh_archetypes(p)


def _ai_timeout_team(state: GameState) -> Optional[TeamState]:
    m = state.momentum
    run = m.active_run
    if run is None:
        return None
    victim = state.team(AWAY if run.side == HOME else HOME)
    if state.user_team_id is not None and victim.id == state.user_team_id:
        return None
    if victim.timeouts <= 0:
        return None
    run_pts = m.home_epoch_pts if run.side == HOME else m.away_epoch_pts
    victim_pts = m.away_epoch_pts if run.side == HOME else m.home_epoch_pts
    if run_pts - victim_pts >= state.config.run_threshold:
        return victim
    return None


def call_timeout(state: GameState, team_id: str, is_user_call: bool = False) -> Optional[PbpLog]:
    """Spend a timeout: momentum reset, streaks damped, short recovery.

    Returns None when the team has no timeouts left.
    """
    team = state.team_by_id(team_id)
    if team.timeouts <= 0:
        return None
    team.timeouts -= 1
    reset_momentum(state)
    dampen_hot_cold(state.home.all_players())
    dampen_hot_cold(state.away.all_players())
    _recover_all(state, "timeout")
    who = "Timeout called" if is_user_call else "Timeout"
    return add_log(state, team, f"{who} ({team.timeouts} left)", "info")


# -------------------------
# Per-possession updates
# -------------------------

def _start_next_quarter(state: GameState) -> None:
    cfg = state.config
    state.quarter += 1
    state.game_clock = cfg.quarter_length
    state.shot_clock = cfg.shot_clock
    state.home.fouls = 0
    state.away.fouls = 0
    state.last_offensive_rebounder_id = None
    reset_momentum(state)

    everyone = state.home.all_players() + state.away.all_players()
    if state.quarter == 3:
        reset_hot_cold(everyone)
        _recover_all(state, "halftime")
        _system_log(state, "Second half starts (Q3)")
    else:
        dampen_hot_cold(everyone)
        _recover_all(state, "quarter_break")
        _system_log(state, f"Q{state.quarter} starts")


def _advance_players(state: GameState, elapsed: int) -> None:
    if elapsed <= 0:
        return
    for team in (state.home, state.away):
        opp = state.away if team is state.home else state.home
        opp_stopper = opp.stopper
        stopper_on = opp_stopper is not None and opp_stopper in opp.on_court
        for p in team.on_court:
            p.mp += elapsed / 60.0
            if p.is_ace_target:
                if stopper_on:
                    p.sec_with_stopper += elapsed
                else:
                    p.sec_without_stopper += elapsed
            drain = calculate_drain(
                p, elapsed, team.tactics.sliders, is_b2b=team.is_b2b, is_stopper=p.is_stopper
            )
            apply_condition_delta(p, -drain)
            if p.health != INJURED and roll_injury(state.rng, p, state.config.injury_model):
                _record_injury(state, team, p)
            refresh_archetypes(p)
        for p in team.bench:
            if p.current_condition < 100:
                apply_condition_delta(p, bench_recovery(p, elapsed))
                refresh_archetypes(p)


def _record_injury(state: GameState, team: TeamState, p: LivePlayer) -> None:
    p.health = INJURED
    state.injuries.append({
        "playerId": p.player_id,
        "playerName": p.name,
        "teamId": team.id,
        "quarter": state.quarter,
        "timeRemaining": format_time(state.game_clock),
        "injuryType": "General Soreness",
        "condition": round(p.current_condition, 1),
    })
    logger.info("injury team=%s player=%s q=%s", team.id, p.player_id, state.quarter)
    add_log(state, team, f"{p.name} goes down with an injury", "info")


def _stamp_scores(state: GameState, logs: List[PbpLog]) -> None:
    for log in logs:
        log.home_score = state.home.score
        log.away_score = state.away.score


def _finish_game(state: GameState) -> None:
    cfg = state.config
    if state.home.score == state.away.score:
        side = HOME if state.rng.random() < 0.5 else AWAY
        saved = state.possession
        state.possession = side
        result, _ = resolve_possession(state.rng, state, min_hit_rate=cfg.tie_break_min_hit_rate)
        if isinstance(result, Score):
            apply_possession_result(state.rng, state, result)
        else:
            # decided without an extra narrated possession
            team = state.team(side)
            team.score += 1
            state.ghost_points[team.id] = state.ghost_points.get(team.id, 0) + 1
            logger.debug("tie-break ghost point team=%s", team.id)
        state.possession = saved

    state.quarter = cfg.regulation_quarters + 1
    state.game_clock = 0
    end_sec = state.elapsed_seconds()
    for team in (state.home, state.away):
        for p in team.on_court:
            close_stint(state, p, end_sec)
    state.is_game_over = True
    _system_log(state, f"Final: {state.home.name} {state.home.score} - {state.away.score} {state.away.name}")


# -------------------------
# Main entry
# -------------------------

def step_possession(state: GameState) -> StepResult:
    if state.is_game_over:
        raise EngineError("step_possession(): the game is already over")

    cfg = state.config
    start = len(state.logs)

    if state.game_clock <= 0:
        _start_next_quarter(state)

    result, elapsed = resolve_possession(state.rng, state)
    before = {HOME: state.home.score, AWAY: state.away.score}
    apply_possession_result(state.rng, state, result)
    state.game_clock = max(0, state.game_clock - elapsed)

    for side in (HOME, AWAY):
        scored = state.team(side).score - before[side]
        if scored > 0:
            update_momentum(state, side, scored)

    _advance_players(state, elapsed)

    minute = state.current_minute()
    check_temporary_returns(state, minute)
    for team in (state.home, state.away):
        process_substitutions(state, team, minute)
    for team in (state.home, state.away):
        check_and_apply_rotation(state, team, minute)

    offense = state.offense()
    keeps_ball = (
        isinstance(result, Miss)
        and result.is_offensive_rebound
        and result.rebounder is not None
    )
    if keeps_ball:
        state.shot_clock = cfg.orb_shot_clock
        state.last_offensive_rebounder_id = result.rebounder.player_id
    else:
        state.possession = AWAY if state.possession == HOME else HOME
        state.shot_clock = cfg.shot_clock
        state.last_offensive_rebounder_id = None
    state.possession_count += 1

    if state.game_clock <= 0 and state.quarter >= cfg.regulation_quarters:
        _finish_game(state)
        new_logs = state.logs[start:]
        _stamp_scores(state, new_logs)
        return StepResult(result=result, is_game_end=True, new_logs=new_logs)

    if state.game_clock <= 0:
        new_logs = state.logs[start:]
        _stamp_scores(state, new_logs)
        return StepResult(result=result, is_quarter_end=True, new_logs=new_logs)

    victim = _ai_timeout_team(state)
    if victim is not None:
        call_timeout(state, victim.id)
    new_logs = state.logs[start:]
    _stamp_scores(state, new_logs)
    logger.debug(
        "possession=%d q=%d clock=%d offense=%s result=%s",
        state.possession_count, state.quarter, state.game_clock, offense.id, result.kind,
    )
    return StepResult(
        result=result,
        is_timeout=victim is not None,
        timeout_team_id=victim.id if victim is not None else None,
        new_logs=new_logs,
    )


# -------------------------
# Results
# -------------------------

def _roster_updates(state: GameState) -> Dict[str, Dict[str, Any]]:
    out: Dict[str, Dict[str, Any]] = {}
    for team in (state.home, state.away):
        for p in team.all_players():
            upd: Dict[str, Any] = {"condition": round(p.current_condition, 1)}
            if p.health != "Healthy":
                upd["health"] = p.health
            out[p.player_id] = upd
    return out


def extract_sim_result(state: GameState) -> Dict[str, Any]:
    return {
        "homeTeamId": state.home.id,
        "awayTeamId": state.away.id,
        "homeScore": state.home.score,
        "awayScore": state.away.score,
        "ghostPoints": dict(state.ghost_points),
        "isFinal": state.is_game_over,
        "homeBox": team_box(state.home),
        "awayBox": team_box(state.away),
        "homeTactics": state.home.tactics.snapshot(),
        "awayTactics": state.away.tactics.snapshot(),
        "rosterUpdates": _roster_updates(state),
        "pbpLogs": [log.to_dict() for log in state.logs],
        "rotationData": copy.deepcopy(state.rotation_history),
        "shotEvents": [ev.to_dict() for ev in state.shot_events],
        "injuries": copy.deepcopy(state.injuries),
    }


def simulate_full_game(
    home: Team,
    away: Team,
    *,
    tactics: Optional[Mapping[str, GameTactics]] = None,
    b2b: Optional[Mapping[str, bool]] = None,
    depth_charts: Optional[Mapping[str, DepthChart]] = None,
    config: Optional[EngineConfig] = None,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """Run a whole game without pauses and return extract_sim_result()."""
    state = create_game_state(
        home, away, None, tactics, b2b, depth_charts, config=config, rng=rng
    )
    limit = state.config.max_possessions
    while not state.is_game_over:
        if state.possession_count >= limit:
            raise EngineError(f"simulate_full_game(): no result after {limit} possessions")
        step_possession(state)
    return extract_sim_result(state)
