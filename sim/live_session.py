from __future__ import annotations

"""In-memory live game sessions.

One session wraps one GameState. The server creates a session, then the
client drives it possession by possession, issuing substitutions and
timeouts between steps. Sessions are kept in a process-local registry.
"""

import logging
import random
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from pbp_engine import (
    EngineError,
    GameState,
    GameTactics,
    Player,
    RosterError,
    Team,
    apply_manual_substitution,
    build_engine_config,
    call_timeout,
    create_game_state,
    extract_sim_result,
    step_possession,
)
from pbp_engine.demo import make_sample_team

logger = logging.getLogger(__name__)


class SessionNotFoundError(KeyError):
    """Raised for an unknown session id."""


class GameOverError(EngineError):
    """Raised when a finished session is asked to keep playing."""


@dataclass
class LiveSession:
    id: str
    state: GameState
    lock: threading.Lock = field(default_factory=threading.Lock)


_SESSIONS: Dict[str, LiveSession] = {}
_REGISTRY_LOCK = threading.Lock()


# -------------------------
# Payload parsing
# -------------------------

def player_from_payload(raw: Mapping[str, Any]) -> Player:
    pid = raw.get("id")
    if pid is None or not str(pid).strip():
        raise RosterError(f"player payload without id: {dict(raw)!r}")
    return Player(
        id=str(pid),
        name=str(raw.get("name") or pid),
        position=str(raw.get("position") or "SF"),
        ovr=float(raw.get("ovr", 60.0)),
        height=float(raw.get("height", 200.0)),
        weight=float(raw.get("weight", 100.0)),
        attrs={str(k): float(v) for k, v in (raw.get("attrs") or {}).items()},
        health=str(raw.get("health") or "Healthy"),
        condition=float(raw.get("condition", 100.0)),
        tendencies=raw.get("tendencies"),
    )


def team_from_payload(raw: Mapping[str, Any]) -> Team:
    tid = raw.get("id")
    if not tid:
        raise RosterError("team payload without id")
    roster = [player_from_payload(p) for p in (raw.get("roster") or [])]
    return Team(id=str(tid), name=str(raw.get("name") or tid), roster=roster)


def tactics_from_payload(raw: Optional[Mapping[str, Any]]) -> Optional[GameTactics]:
    if not raw:
        return None
    tactics = GameTactics()
    if raw.get("sliders"):
        tactics.sliders.update({str(k): float(v) for k, v in raw["sliders"].items()})
    tactics.starters = {str(k): str(v) for k, v in (raw.get("starters") or {}).items()}
    if raw.get("rotationMap"):
        tactics.rotation_map = {str(k): list(v) for k, v in raw["rotationMap"].items()}
    tactics.minutes_limits = {str(k): float(v) for k, v in (raw.get("minutesLimits") or {}).items()}
    tactics.stopper_id = raw.get("stopperId")
    if raw.get("depthChart"):
        tactics.depth_chart = {str(k): list(v) for k, v in raw["depthChart"].items()}
    return tactics


# -------------------------
# Registry
# -------------------------

def create_session(
    home: Optional[Mapping[str, Any]] = None,
    away: Optional[Mapping[str, Any]] = None,
    *,
    user_team_id: Optional[str] = None,
    tactics: Optional[Mapping[str, Mapping[str, Any]]] = None,
    b2b: Optional[Mapping[str, bool]] = None,
    config: Optional[Mapping[str, Any]] = None,
    seed: Optional[int] = None,
) -> LiveSession:
    """Start a new game. Missing teams are generated from the seed."""
    rng = random.Random(seed)
    home_team = team_from_payload(home) if home else make_sample_team(rng, "HOME", "Home")
    away_team = team_from_payload(away) if away else make_sample_team(rng, "AWAY", "Away")
    parsed_tactics = {
        tid: t for tid, t in ((tid, tactics_from_payload(raw)) for tid, raw in (tactics or {}).items())
        if t is not None
    }

    state = create_game_state(
        home_team,
        away_team,
        user_team_id,
        parsed_tactics,
        b2b,
        config=build_engine_config(config),
        rng=rng,
    )
    session = LiveSession(id=uuid.uuid4().hex, state=state)
    with _REGISTRY_LOCK:
        _SESSIONS[session.id] = session
    logger.info("live game %s created: %s vs %s", session.id, home_team.id, away_team.id)
    return session


def get_session(session_id: str) -> LiveSession:
    with _REGISTRY_LOCK:
        session = _SESSIONS.get(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    return session


def drop_session(session_id: str) -> None:
    with _REGISTRY_LOCK:
        if _SESSIONS.pop(session_id, None) is None:
            raise SessionNotFoundError(session_id)


def clear_sessions() -> None:
    with _REGISTRY_LOCK:
        _SESSIONS.clear()


# -------------------------
# Session operations
# -------------------------

def _lineups(state: GameState) -> Dict[str, List[str]]:
    return {t.id: [p.player_id for p in t.on_court] for t in (state.home, state.away)}


def snapshot(state: GameState) -> Dict[str, Any]:
    return {
        "quarter": state.quarter,
        "gameClock": state.game_clock,
        "shotClock": state.shot_clock,
        "possession": state.offense().id,
        "homeScore": state.home.score,
        "awayScore": state.away.score,
        "timeouts": {t.id: t.timeouts for t in (state.home, state.away)},
        "onCourt": _lineups(state),
        "isGameOver": state.is_game_over,
    }


def step_session(session_id: str, count: int = 1) -> Dict[str, Any]:
    """Advance up to `count` possessions; stops early at a quarter end or timeout."""
    session = get_session(session_id)
    with session.lock:
        state = session.state
        if state.is_game_over:
            raise GameOverError(f"game {session_id} is already over")
        logs = []
        events: List[str] = []
        for _ in range(max(1, count)):
            try:
                res = step_possession(state)
            except EngineError:
                logger.exception("step failed for game %s", session_id)
                raise
            logs.extend(log.to_dict() for log in res.new_logs)
            if res.is_game_end:
                events.append("gameEnd")
                break
            if res.is_quarter_end:
                events.append("quarterEnd")
                break
            if res.is_timeout:
                events.append(f"timeout:{res.timeout_team_id}")
                break
        out = snapshot(state)
        out["logs"] = logs
        out["events"] = events
        return out


def substitute(session_id: str, team_id: str, out_id: str, in_id: str) -> Dict[str, Any]:
    session = get_session(session_id)
    with session.lock:
        state = session.state
        if state.is_game_over:
            raise GameOverError(f"game {session_id} is already over")
        log = apply_manual_substitution(state, team_id, out_id, in_id)
        out = snapshot(state)
        out["log"] = log.to_dict()
        return out


def timeout(session_id: str, team_id: str) -> Dict[str, Any]:
    session = get_session(session_id)
    with session.lock:
        state = session.state
        if state.is_game_over:
            raise GameOverError(f"game {session_id} is already over")
        log = call_timeout(state, team_id, is_user_call=True)
        out = snapshot(state)
        out["log"] = log.to_dict() if log is not None else None
        return out


def result(session_id: str) -> Dict[str, Any]:
    session = get_session(session_id)
    with session.lock:
        return extract_sim_result(session.state)
