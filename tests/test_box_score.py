import pytest

pytest.importorskip("pandas")

from pbp_engine import box_score_frame, step_possession  # noqa: E402
from pbp_engine.stats import player_box  # noqa: E402


def test_box_score_frame_matches_team_scores(new_game):
    state = new_game(seed=13)
    while not state.is_game_over:
        step_possession(state)

    df = box_score_frame(state)
    assert list(df.index.names) == ["teamId", "playerId"]
    assert len(df) == 24
    assert "zoneData" not in df.columns
    for team in (state.home, state.away):
        ghost = state.ghost_points.get(team.id, 0)
        assert int(df.loc[team.id]["pts"].sum()) + ghost == team.score
        assert int(df.loc[team.id]["gs"].sum()) == 5
    assert (df["fgm"] <= df["fga"]).all()


def test_player_box_zone_data_and_ace_block(new_game):
    state = new_game()
    p = state.home.on_court[0]
    p.zone_stats["zone_rim"] = {"m": 5, "a": 3}
    row = player_box(p)
    assert row["zoneData"]["zone_rim"] == {"m": 3, "a": 3}
    assert "aceMatchup" not in row

    p.is_ace_target = True
    p.sec_with_stopper = 120
    assert player_box(p)["aceMatchup"]["secWithStopper"] == 120
