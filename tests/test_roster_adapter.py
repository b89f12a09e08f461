import random

import pytest

pd = pytest.importorskip("pandas")

from pbp_engine import RosterError, create_game_state  # noqa: E402
from pbp_engine.demo import make_sample_team  # noqa: E402
from sim.roster_adapter import (  # noqa: E402
    parse_height_cm,
    parse_weight_kg,
    player_from_row,
    read_roster,
    team_from_frame,
)


def _frame(n=8, team="LAL"):
    rows = []
    for i in range(n):
        rows.append({
            "Team": team,
            "PlayerID": f"{team}_{i}",
            "Name": f"Player {i}",
            "POS": ["PG", "SG", "SF", "PF", "C"][i % 5],
            "HT": "6' 7\"",
            "WT": "220 lbs",
            "OVR": 70 + i,
            "Close Shot": 60 + i,
            "Three-Point Shot": 75,
            "Ball Handle": 65,
            "Stamina": 80,
        })
    return pd.DataFrame(rows)


def test_height_and_weight_parsing():
    assert parse_height_cm("6' 7\"") == pytest.approx(200.66)
    assert parse_height_cm(79) == pytest.approx(200.66)
    assert parse_height_cm(205.0) == 205.0
    assert parse_height_cm("tall") is None
    assert parse_weight_kg("220 lbs") == pytest.approx(99.79, abs=0.01)
    assert parse_weight_kg(None) is None


def test_player_from_row_clamps_and_maps_columns():
    row = pd.Series({
        "PlayerID": "p1",
        "Name": "Clamp",
        "Close Shot": 120,
        "Block": -4,
        "Free Throw": float("nan"),
        "Health": "Out",
        "Tend Rim": 40,
        "Tend Top 3": 60,
    })
    p = player_from_row(row)
    assert p.attrs["ins"] == 100.0
    assert p.attrs["blk"] == 0.0
    assert "ft" not in p.attrs
    assert p.health == "Injured"
    assert p.position == "SF"
    assert p.tendencies["zones"]["rim"] == 40.0
    assert p.tendencies["lateral_bias"] == 1


def test_row_without_id_rejected():
    with pytest.raises(RosterError):
        player_from_row(pd.Series({"Name": "Nobody"}))


def test_team_from_frame_plays_a_game():
    df = pd.concat([_frame(), _frame(team="BOS")], ignore_index=True)
    home = team_from_frame(df, "lal", name="Lakers")
    assert home.id == "LAL"
    assert len(home.roster) == 8
    assert home.roster[0].height == pytest.approx(200.66)

    rng = random.Random(1)
    state = create_game_state(home, make_sample_team(rng, "B", "Beta"), rng=rng)
    assert len(state.home.on_court) == 5

    with pytest.raises(RosterError):
        team_from_frame(df, "NYK")


def test_read_roster_csv(tmp_path):
    path = tmp_path / "roster.csv"
    _frame(n=5).to_csv(path, index=False)
    df = read_roster(str(path))
    assert len(team_from_frame(df, "LAL").roster) == 5
