import random

import pytest

from pbp_engine import (
    EngineError,
    RosterError,
    build_engine_config,
    call_timeout,
    create_game_state,
    extract_sim_result,
    simulate_full_game,
    step_possession,
)
from pbp_engine.demo import make_sample_team
from pbp_engine.engine import SYSTEM_TEAM_ID, _ai_timeout_team, _finish_game
from pbp_engine.models import HOME, ActiveRun, Player, Team


def _logged_points(state, team_id):
    return sum(
        (log.points or 0)
        for log in state.logs
        if log.team_id == team_id and log.type in ("score", "freethrow")
    )


def test_full_game_invariants(new_game):
    state = new_game(seed=5)
    assert state.logs[0].team_id == SYSTEM_TEAM_ID
    assert state.logs[0].text == "Tip-off"

    quarter, clock = state.quarter, state.game_clock
    steps = 0
    while not state.is_game_over:
        res = step_possession(state)
        steps += 1
        for team in (state.home, state.away):
            ids = [p.player_id for p in team.on_court]
            assert len(ids) == 5
            assert len(set(ids)) == 5
            assert not set(ids) & {p.player_id for p in team.bench}
            for p in team.all_players():
                assert p.fgm <= p.fga
                assert p.p3m <= p.p3a
                assert p.ftm <= p.fta
        if state.quarter == quarter:
            assert state.game_clock <= clock
        quarter, clock = state.quarter, state.game_clock
        for log in res.new_logs:
            assert log.home_score == state.home.score
            assert log.away_score == state.away.score

    assert steps == state.possession_count
    assert state.quarter == 5
    assert state.home.score != state.away.score
    for team in (state.home, state.away):
        ghost = state.ghost_points.get(team.id, 0)
        assert team.score == _logged_points(state, team.id) + ghost
        assert team.score == sum(p.pts for p in team.all_players()) + ghost
    for stints in state.rotation_history.values():
        for stint in stints:
            assert stint["out"] is not None
            assert 0 <= stint["in"] <= stint["out"] <= 2880
    assert state.logs[-1].text.startswith("Final:")

    with pytest.raises(EngineError):
        step_possession(state)


def test_minutes_add_up_to_regulation(new_game):
    state = new_game(seed=8)
    while not state.is_game_over:
        step_possession(state)
    for team in (state.home, state.away):
        assert sum(p.mp for p in team.all_players()) == pytest.approx(5 * 48, abs=0.01)


def test_same_seed_same_game():
    def run(seed):
        rng = random.Random(seed)
        home = make_sample_team(rng, "A", "Alpha")
        away = make_sample_team(rng, "B", "Beta")
        return simulate_full_game(home, away, rng=rng)

    first, second = run(21), run(21)
    assert first["homeScore"] == second["homeScore"]
    assert first["pbpLogs"] == second["pbpLogs"]
    assert first["isFinal"] is True


def test_sim_result_shape():
    rng = random.Random(2)
    home = make_sample_team(rng, "A", "Alpha")
    away = make_sample_team(rng, "B", "Beta")
    res = simulate_full_game(home, away, rng=rng, config=build_engine_config({"injury_model": "enabled"}))
    for key in (
        "homeScore", "awayScore", "homeBox", "awayBox", "homeTactics", "awayTactics",
        "rosterUpdates", "pbpLogs", "rotationData", "shotEvents", "injuries", "ghostPoints",
    ):
        assert key in res
    assert len(res["homeBox"]) == 12
    assert set(res["rosterUpdates"]) == {p.id for p in home.roster} | {p.id for p in away.roster}
    shots = [ev for ev in res["shotEvents"] if ev["teamId"] == "A"]
    assert len(shots) == sum(row["fga"] for row in res["homeBox"])


def test_tie_is_always_broken(new_game):
    for seed in range(6):
        state = new_game(seed=seed)
        state.quarter = 4
        state.game_clock = 0
        state.home.score = state.away.score = 101
        _finish_game(state)
        assert state.is_game_over
        assert state.home.score != state.away.score
        assert abs(state.home.score - state.away.score) <= 3
        if state.ghost_points:
            assert sum(state.ghost_points.values()) == 1


def test_call_timeout(new_game):
    state = new_game()
    team = state.away
    state.momentum.home_epoch_pts = 9
    for p in team.all_players():
        p.hot_cold = 0.8
    log = call_timeout(state, team.id, is_user_call=True)
    assert log is not None
    assert team.timeouts == 6
    assert state.momentum.home_epoch_pts == 0
    assert all(p.hot_cold == pytest.approx(0.4) for p in team.all_players())

    team.timeouts = 0
    assert call_timeout(state, team.id) is None


def test_ai_timeout_only_for_cpu_victim(new_game):
    state = new_game()
    state.momentum.active_run = ActiveRun(side=HOME, start_total_sec=0)
    state.momentum.home_epoch_pts = 10
    assert _ai_timeout_team(state) is state.away

    state.user_team_id = state.away.id
    assert _ai_timeout_team(state) is None

    state.user_team_id = None
    state.away.timeouts = 0
    assert _ai_timeout_team(state) is None


def test_roster_needs_five_healthy_players():
    rng = random.Random(4)
    home = make_sample_team(rng, "A", "Alpha", size=6)
    for p in home.roster[:2]:
        p.health = "Injured"
    away = make_sample_team(rng, "B", "Beta")
    with pytest.raises(RosterError):
        create_game_state(home, away, rng=rng)

    dup = Team(id="C", name="Dup", roster=[Player(id="x", name=f"X{i}") for i in range(6)])
    with pytest.raises(RosterError):
        create_game_state(dup, away, rng=rng)


def test_extract_before_final(new_game):
    state = new_game()
    for _ in range(10):
        step_possession(state)
    res = extract_sim_result(state)
    assert res["isFinal"] is False
    assert res["homeScore"] == state.home.score
