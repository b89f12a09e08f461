import pytest

from pbp_engine import (
    InvalidSubstitutionError,
    LineupInvariantError,
    apply_manual_substitution,
    step_possession,
)
from pbp_engine.fatigue import apply_condition_delta
from pbp_engine.rotation import (
    bench_with_override,
    can_play,
    check_temporary_returns,
    force_substitution,
    process_substitutions,
)
from pbp_engine.schedule import RotationSchedule, clip_intervals
from pbp_engine.substitutions import foul_trouble_action, is_garbage_time, player_importance


@pytest.mark.parametrize(
    "quarter, fouls, importance, minute, expected",
    [
        (1, 1, "star", 4, None),
        (1, 2, "rotation", 5, (False, 11)),
        (1, 3, "star", 8, (False, 24)),
        (1, 3, "rotation", 8, (False, 24)),
        (1, 3, "bench", 8, (True, None)),
        (1, 4, "star", 9, (False, 24)),
        (1, 4, "rotation", 9, (True, None)),
        (2, 2, "star", 15, None),
        (2, 3, "rotation", 15, (False, 21)),
        (2, 3, "bench", 15, (True, None)),
        (2, 4, "bench", 16, (False, 24)),
        (2, 5, "star", 20, (False, 24)),
        (2, 5, "rotation", 20, (True, None)),
        (3, 4, "rotation", 28, (False, 34)),
        (3, 5, "star", 30, (False, 34)),
        (3, 5, "bench", 30, (True, None)),
        (4, 5, "star", 40, (False, 43)),
        (4, 5, "star", 44, None),
        (4, 5, "rotation", 40, None),
        (4, 5, "bench", 40, (True, None)),
    ],
)
def test_foul_trouble_matrix(quarter, fouls, importance, minute, expected):
    assert foul_trouble_action(quarter, fouls, importance, minute) == expected


def test_star_is_a_top_three_starter(new_game):
    state = new_game()
    team = state.home
    starters = [p for p in team.all_players() if p.is_starter]
    best = max(starters, key=lambda p: p.ovr)
    assert player_importance(team, best) == "star"
    reserve = next(p for p in team.bench if not p.is_starter)
    assert player_importance(team, reserve) == "bench"


def test_garbage_time_window(new_game):
    state = new_game()
    state.quarter = 4
    state.game_clock = 200
    state.home.score, state.away.score = 110, 85
    assert is_garbage_time(state)
    state.away.score = 95
    assert not is_garbage_time(state)


def test_foul_out_is_permanent(new_game):
    state = new_game()
    team = state.home
    victim = team.on_court[0]
    victim.pf = 6
    process_substitutions(state, team, 3)

    assert victim in team.bench
    assert victim.bench_reason == "foul_out"
    assert len(team.on_court) == 5
    assert any(log.text == f"{victim.name} fouled out" for log in state.logs)

    while not state.is_game_over:
        step_possession(state)
        assert victim not in team.on_court
    assert state.rotation_history[victim.player_id][-1]["out"] is not None


def test_exhausted_player_waits_until_condition_clears_seventy(new_game):
    state = new_game()
    team = state.home
    tired = team.on_court[1]
    apply_condition_delta(tired, -85)
    process_substitutions(state, team, 2)

    assert tired in team.bench
    assert tired.bench_reason == "shutdown"
    assert len(team.on_court) == 5

    apply_condition_delta(tired, 50)  # 65
    check_temporary_returns(state, 3)
    assert tired.bench_reason == "shutdown"

    apply_condition_delta(tired, 5)  # 70
    check_temporary_returns(state, 3)
    assert tired.bench_reason == "shutdown"

    apply_condition_delta(tired, 2)  # 72
    check_temporary_returns(state, 3)
    assert tired.bench_reason is None
    assert team.schedule.is_scheduled(tired.player_id, 3)


def test_manual_substitution_minutes_start_after_swap(new_game):
    state = new_game()
    team = state.home
    out_p = team.on_court[0]
    in_p = next(p for p in team.bench if p.bench_reason is None)

    log = apply_manual_substitution(state, team.id, out_p.player_id, in_p.player_id)
    assert log.text == f"SUB: {in_p.name} in, {out_p.name} out (manual)"
    assert in_p in team.on_court and out_p in team.bench
    assert team.schedule.is_scheduled(in_p.player_id, 0)
    assert not team.schedule.is_scheduled(out_p.player_id, 11)

    step_possession(state)
    assert out_p.mp == 0.0
    assert in_p.mp > 0.0
    assert state.rotation_history[out_p.player_id] == [{"in": 0, "out": 0}]
    assert state.rotation_history[in_p.player_id][0]["in"] == 0


def test_manual_substitution_rejects_illegal_pairs(new_game):
    state = new_game()
    team = state.home
    on = list(team.on_court)
    bench = list(team.bench)

    with pytest.raises(LineupInvariantError):
        apply_manual_substitution(state, team.id, on[0].player_id, on[1].player_id)
    with pytest.raises(LineupInvariantError):
        apply_manual_substitution(state, team.id, bench[0].player_id, bench[1].player_id)
    with pytest.raises(LineupInvariantError):
        apply_manual_substitution(state, "NOPE", on[0].player_id, bench[0].player_id)

    bench[0].pf = 6
    with pytest.raises(InvalidSubstitutionError):
        apply_manual_substitution(state, team.id, on[0].player_id, bench[0].player_id)
    bench[1].health = "Injured"
    with pytest.raises(InvalidSubstitutionError):
        apply_manual_substitution(state, team.id, on[0].player_id, bench[1].player_id)
    assert team.on_court == on


# -------------------------
# Succession and overrides
# -------------------------

def _three_deep(state):
    team = state.home
    starter, second, third = team.on_court[0], team.bench[0], team.bench[1]
    team.schedule = RotationSchedule({
        starter.player_id: [(0, 12), (18, 36)],
        second.player_id: [(12, 18)],
        third.player_id: [(40, 44)],
    })
    team.depth_chart = {"PG": [starter.player_id, second.player_id, third.player_id]}
    return team, starter, second, third


def test_starter_exit_cascades_down_the_depth_chart(new_game):
    state = new_game()
    team, starter, second, third = _three_deep(state)
    starter.health = "Injured"
    force_substitution(state, team, starter, "injury", 6)

    assert team.schedule.intervals(starter.player_id) == [(0, 6)]
    assert team.schedule.intervals(second.player_id) == [(6, 12), (18, 36)]
    assert team.schedule.intervals(third.player_id) == [(12, 18), (40, 44)]
    assert team.depth_chart["PG"] == [second.player_id, third.player_id, None]
    assert second in team.on_court and starter in team.bench


def test_second_string_exit_goes_to_third(new_game):
    state = new_game()
    team, starter, second, third = _three_deep(state)
    second.health = "Injured"
    force_substitution(state, team, second, "injury", 6)

    assert team.schedule.intervals(second.player_id) == []
    assert team.schedule.intervals(third.player_id) == [(12, 18), (40, 44)]
    assert team.depth_chart["PG"] == [starter.player_id, third.player_id, None]


def test_third_string_exit_falls_back_to_best_available(new_game):
    state = new_game()
    team, starter, second, third = _three_deep(state)
    third.health = "Injured"
    force_substitution(state, team, third, "injury", 6)

    assert team.schedule.intervals(third.player_id) == []
    heir = [pid for pid in team.schedule.scheduled_at(41) if pid != starter.player_id]
    assert len(heir) == 1 and heir[0] != third.player_id
    assert team.depth_chart["PG"] == [starter.player_id, second.player_id, None]


def test_exit_without_depth_chart_uses_best_bench_player(new_game):
    state = new_game()
    team = state.home
    starter = team.on_court[0]
    team.schedule = RotationSchedule({starter.player_id: [(0, 12), (18, 36)]})
    team.depth_chart = {}
    expected = max(team.bench, key=lambda p: p.ovr)

    starter.health = "Injured"
    force_substitution(state, team, starter, "injury", 6)
    assert team.schedule.intervals(expected.player_id) == [(6, 12), (18, 36)]
    assert expected in team.on_court


def test_filler_foul_out_keeps_every_minute_covered(new_game):
    state = new_game()
    team = state.home
    starter = team.on_court[0]
    original = state.original_schedules[team.id]

    starter.is_shutdown = True
    assert bench_with_override(state, team, starter, "shutdown", 2)
    override = state.active_overrides[-1]
    filler = team.find(override.filler_id)
    assert filler in team.on_court

    filler.pf = 6
    force_substitution(state, team, filler, "foul_out", 5)
    assert override.filler_id != filler.player_id
    assert not any(team.schedule.is_scheduled(filler.player_id, m) for m in range(5, 48))

    starter.is_shutdown = False
    check_temporary_returns(state, 8)
    assert starter.bench_reason is None
    assert clip_intervals(team.schedule.intervals(starter.player_id), 8, 48) == clip_intervals(
        original.intervals(starter.player_id), 8, 48
    )
    for minute in range(8, 48):
        playable = [pid for pid in team.schedule.scheduled_at(minute) if can_play(team.find(pid))]
        assert len(playable) == 5, (minute, playable)


def test_foul_trouble_return_restores_both_schedules(new_game):
    state = new_game()
    team = state.home
    starter = team.on_court[0]
    before = team.schedule.copy()

    assert bench_with_override(state, team, starter, "foul_trouble", 3, return_minute=24)
    filler_id = state.active_overrides[-1].filler_id
    assert team.schedule.is_scheduled(filler_id, 5)
    assert not team.schedule.is_scheduled(starter.player_id, 5)

    check_temporary_returns(state, 23)
    assert starter.bench_reason == "foul_trouble"
    check_temporary_returns(state, 24)
    assert starter.bench_reason is None
    for pid in (starter.player_id, filler_id):
        assert clip_intervals(team.schedule.intervals(pid), 24, 48) == clip_intervals(before.intervals(pid), 24, 48)


def test_manual_substitution_at_quarter_break_carries_into_next_quarter(new_game):
    state = new_game()
    team = state.home
    while not step_possession(state).is_quarter_end:
        pass
    assert state.quarter == 1 and state.game_clock == 0

    out_p = team.on_court[0]
    in_p = next(
        p for p in team.bench
        if p.bench_reason is None and p.pf <= 1 and not p.is_red_zone and can_play(p)
    )
    apply_manual_substitution(state, team.id, out_p.player_id, in_p.player_id)
    assert team.schedule.is_scheduled(in_p.player_id, 12)
    assert team.schedule.is_scheduled(in_p.player_id, 23)
    assert not team.schedule.is_scheduled(out_p.player_id, 12)

    step_possession(state)
    assert state.quarter == 2
    assert in_p in team.on_court
