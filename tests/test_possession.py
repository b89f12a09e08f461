from collections import Counter

import pytest

from pbp_engine import LineupInvariantError
from pbp_engine.possession import (
    block_probability,
    clutch_context,
    resolve_possession,
    turnover_probability,
)
from pbp_engine.results import Foul, FreeThrow, Miss, Score, Turnover
from pbp_engine.stats import apply_possession_result

N = 1500


def _sample(state):
    plays = Counter()
    half_court_shots = Counter()
    for _ in range(N):
        result, elapsed = resolve_possession(state.rng, state)
        assert elapsed > 0
        plays[result.play_type] += 1
        zone = getattr(result, "zone", None)
        if zone and result.play_type != "Transition":
            half_court_shots[zone] += 1
    return plays, half_court_shots


def test_pace_drives_transition_and_threes(new_game):
    fast_plays, fast_shots = _sample(new_game(seed=9, home_sliders={"pace": 10}))
    slow_plays, slow_shots = _sample(new_game(seed=9, home_sliders={"pace": 1}))

    fast_tr = fast_plays["Transition"] / N
    slow_tr = slow_plays["Transition"] / N
    assert fast_tr > 0.22
    assert slow_tr < 0.07

    fast_3 = fast_shots["3PT"] / sum(fast_shots.values())
    slow_3 = slow_shots["3PT"] / sum(slow_shots.values())
    assert fast_3 > slow_3


def test_possession_outcomes_are_tagged(new_game):
    state = new_game(seed=4)
    kinds = set()
    for _ in range(400):
        result, _ = resolve_possession(state.rng, state)
        assert isinstance(result, (Score, Miss, Turnover, Foul, FreeThrow))
        kinds.add(result.kind)
        if isinstance(result, FreeThrow):
            assert 0 <= result.made <= result.attempts
            assert result.points == result.shot_points + result.made
        if isinstance(result, Score):
            assert result.points == (3 if result.zone == "3PT" else 2)
    assert {"score", "miss", "turnover"} <= kinds


def test_free_throw_trips_are_two_shots_unless_and_one(new_game):
    state = new_game(seed=6, home_sliders={"defIntensity": 10}, away_sliders={"defIntensity": 10})
    trips = Counter()
    for _ in range(3000):
        result, _ = resolve_possession(state.rng, state)
        if isinstance(result, FreeThrow):
            trips[(result.is_and_one, result.attempts)] += 1
    assert trips
    assert {attempts for (and_one, attempts) in trips if not and_one} == {2}
    assert {attempts for (and_one, attempts) in trips if and_one} <= {1}


def test_empty_lineup_is_an_error(new_game):
    state = new_game()
    state.home.on_court = []
    with pytest.raises(LineupInvariantError):
        resolve_possession(state.rng, state)


def test_unknown_result_rejected(new_game):
    state = new_game()
    with pytest.raises(TypeError):
        apply_possession_result(state.rng, state, object())


def test_probability_bounds(new_game):
    state = new_game()
    offense, defense = state.home, state.away
    for actor in offense.on_court:
        for defender in defense.on_court:
            assert 0.0 <= block_probability(actor, defender, "Rim") <= 0.25
        assert 0.02 <= turnover_probability(offense, defense, actor, "Iso") <= 0.25


def test_clutch_window(new_game):
    state = new_game()
    assert not clutch_context(state).is_clutch
    state.quarter = 4
    state.game_clock = 90
    state.home.score, state.away.score = 98, 100
    ctx = clutch_context(state)
    assert ctx.is_clutch and ctx.is_super_clutch
    assert ctx.trailing_side == "home"
