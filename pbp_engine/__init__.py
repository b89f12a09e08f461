"""Possession-by-possession basketball game engine."""

from .engine import (
    apply_manual_substitution,
    call_timeout,
    create_game_state,
    extract_sim_result,
    simulate_full_game,
    step_possession,
)
from .engine_config import EngineConfig, InjuryModelDisabled, InjuryModelEnabled, build_engine_config
from .errors import EngineError, InvalidSubstitutionError, LineupInvariantError, RosterError
from .models import GameState, GameTactics, PbpLog, Player, ShotEvent, StepResult, Team
from .results import Foul, FreeThrow, Miss, PossessionResult, Score, Turnover
from .stats import box_score_frame

__all__ = [
    "create_game_state",
    "step_possession",
    "apply_manual_substitution",
    "call_timeout",
    "extract_sim_result",
    "simulate_full_game",
    "box_score_frame",
    "EngineConfig",
    "InjuryModelDisabled",
    "InjuryModelEnabled",
    "build_engine_config",
    "EngineError",
    "InvalidSubstitutionError",
    "LineupInvariantError",
    "RosterError",
    "GameState",
    "GameTactics",
    "PbpLog",
    "Player",
    "ShotEvent",
    "StepResult",
    "Team",
    "Score",
    "Miss",
    "Turnover",
    "Foul",
    "FreeThrow",
    "PossessionResult",
]
