from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from pbp_engine import (
    EngineError,
    InvalidSubstitutionError,
    LineupInvariantError,
    RosterError,
    simulate_full_game,
)
from sim import live_session
from sim.live_session import GameOverError, SessionNotFoundError

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------------
# App
# -------------------------------------------------------------------------
app = FastAPI(title="Possession engine server")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """Health check."""
    return {"message": "pbp_engine server. POST /api/live-games to start a game."}


# -------------------------------------------------------------------------
# Request models
# -------------------------------------------------------------------------
class TeamPayload(BaseModel):
    id: str
    name: Optional[str] = None
    roster: List[Dict[str, Any]] = Field(default_factory=list)


class CreateGameRequest(BaseModel):
    home: Optional[TeamPayload] = None
    away: Optional[TeamPayload] = None
    user_team_id: Optional[str] = None
    tactics: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    b2b: Dict[str, bool] = Field(default_factory=dict)
    config: Dict[str, Any] = Field(default_factory=dict)
    seed: Optional[int] = None


class StepRequest(BaseModel):
    count: int = Field(1, ge=1, le=500)


class SubstitutionRequest(BaseModel):
    team_id: str
    out_player_id: str
    in_player_id: str


class TimeoutRequest(BaseModel):
    team_id: str


class SimulateGameRequest(BaseModel):
    home: Optional[TeamPayload] = None
    away: Optional[TeamPayload] = None
    config: Dict[str, Any] = Field(default_factory=dict)
    seed: Optional[int] = None


def _raise_http(exc: Exception, session_id: Optional[str] = None):
    if isinstance(exc, SessionNotFoundError):
        raise HTTPException(status_code=404, detail=f"live game '{session_id}' not found")
    if isinstance(exc, GameOverError):
        raise HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, (LineupInvariantError, InvalidSubstitutionError, RosterError, ValueError)):
        raise HTTPException(status_code=400, detail=str(exc))
    logger.exception("unhandled engine error (game=%s)", session_id)
    raise HTTPException(status_code=500, detail=f"engine error: {exc}")


# -------------------------------------------------------------------------
# Live game API
# -------------------------------------------------------------------------
@app.post("/api/live-games")
async def api_create_live_game(req: CreateGameRequest):
    try:
        session = live_session.create_session(
            req.home.model_dump() if req.home else None,
            req.away.model_dump() if req.away else None,
            user_team_id=req.user_team_id,
            tactics=req.tactics,
            b2b=req.b2b,
            config=req.config,
            seed=req.seed,
        )
    except (RosterError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    state = session.state
    return {
        "game_id": session.id,
        "home_team_id": state.home.id,
        "away_team_id": state.away.id,
        "state": live_session.snapshot(state),
        "logs": [log.to_dict() for log in state.logs],
    }


@app.post("/api/live-games/{game_id}/step")
async def api_step_live_game(game_id: str, req: Optional[StepRequest] = None):
    try:
        return live_session.step_session(game_id, (req or StepRequest()).count)
    except (SessionNotFoundError, EngineError) as e:
        _raise_http(e, game_id)


@app.post("/api/live-games/{game_id}/substitution")
async def api_live_substitution(game_id: str, req: SubstitutionRequest):
    try:
        return live_session.substitute(game_id, req.team_id, req.out_player_id, req.in_player_id)
    except (SessionNotFoundError, EngineError, InvalidSubstitutionError) as e:
        _raise_http(e, game_id)


@app.post("/api/live-games/{game_id}/timeout")
async def api_live_timeout(game_id: str, req: TimeoutRequest):
    try:
        out = live_session.timeout(game_id, req.team_id)
    except (SessionNotFoundError, EngineError) as e:
        _raise_http(e, game_id)
    if out["log"] is None:
        raise HTTPException(status_code=409, detail=f"team '{req.team_id}' has no timeouts left")
    return out


@app.get("/api/live-games/{game_id}/result")
async def api_live_result(game_id: str):
    try:
        return live_session.result(game_id)
    except SessionNotFoundError as e:
        _raise_http(e, game_id)


@app.delete("/api/live-games/{game_id}")
async def api_drop_live_game(game_id: str):
    try:
        live_session.drop_session(game_id)
    except SessionNotFoundError as e:
        _raise_http(e, game_id)
    return {"ok": True}


# -------------------------------------------------------------------------
# One-shot simulation
# -------------------------------------------------------------------------
@app.post("/api/simulate-game")
async def api_simulate_game(req: SimulateGameRequest):
    """Play a whole game without pauses."""
    import random

    from pbp_engine import build_engine_config
    from pbp_engine.demo import make_sample_team

    rng = random.Random(req.seed)
    try:
        home = live_session.team_from_payload(req.home.model_dump()) if req.home else make_sample_team(rng, "HOME", "Home")
        away = live_session.team_from_payload(req.away.model_dump()) if req.away else make_sample_team(rng, "AWAY", "Away")
        return simulate_full_game(home, away, config=build_engine_config(req.config), rng=rng)
    except (RosterError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except EngineError as e:
        _raise_http(e)
