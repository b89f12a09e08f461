from __future__ import annotations

import random

import pytest

from pbp_engine import GameTactics, create_game_state
from pbp_engine.demo import make_sample_team


@pytest.fixture
def new_game():
    """Factory for a fresh two-team GameState built from sample rosters."""

    def _make(seed=11, home_sliders=None, away_sliders=None, **kwargs):
        rng = random.Random(seed)
        home = make_sample_team(rng, "A", "Alpha")
        away = make_sample_team(rng, "B", "Beta")
        tactics = {}
        if home_sliders:
            tactics["A"] = GameTactics(sliders=dict(home_sliders))
        if away_sliders:
            tactics["B"] = GameTactics(sliders=dict(away_sliders))
        return create_game_state(home, away, tactics=tactics, rng=rng, **kwargs)

    return _make
