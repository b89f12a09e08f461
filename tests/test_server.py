import pytest

pytest.importorskip("httpx")

from fastapi.testclient import TestClient  # noqa: E402

import server  # noqa: E402
from sim import live_session  # noqa: E402


@pytest.fixture
def client():
    live_session.clear_sessions()
    yield TestClient(server.app)
    live_session.clear_sessions()


def _create(client, **body):
    resp = client.post("/api/live-games", json={"seed": 17, **body})
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_create_and_step(client):
    game = _create(client)
    assert game["home_team_id"] == "HOME"
    assert game["logs"][0]["text"] == "Tip-off"
    assert len(game["state"]["onCourt"]["HOME"]) == 5

    resp = client.post(f"/api/live-games/{game['game_id']}/step", json={"count": 3})
    assert resp.status_code == 200
    body = resp.json()
    assert body["logs"]
    assert body["gameClock"] < 720 or body["quarter"] > 1


def test_unknown_game_is_404(client):
    assert client.post("/api/live-games/nope/step", json={}).status_code == 404
    assert client.get("/api/live-games/nope/result").status_code == 404
    assert client.delete("/api/live-games/nope").status_code == 404


def test_substitution_endpoint(client):
    game = _create(client)
    gid = game["game_id"]
    on_court = game["state"]["onCourt"]["HOME"]
    bench_id = next(f"HOME{i}" for i in range(1, 13) if f"HOME{i}" not in on_court)

    bad = client.post(
        f"/api/live-games/{gid}/substitution",
        json={"team_id": "HOME", "out_player_id": bench_id, "in_player_id": on_court[0]},
    )
    assert bad.status_code == 400

    ok = client.post(
        f"/api/live-games/{gid}/substitution",
        json={"team_id": "HOME", "out_player_id": on_court[0], "in_player_id": bench_id},
    )
    assert ok.status_code == 200, ok.text
    assert bench_id in ok.json()["onCourt"]["HOME"]
    assert ok.json()["log"]["text"].endswith("(manual)")


def test_timeouts_run_out(client):
    game = _create(client, config={"timeouts_per_team": 1})
    gid = game["game_id"]
    first = client.post(f"/api/live-games/{gid}/timeout", json={"team_id": "AWAY"})
    assert first.status_code == 200
    assert first.json()["timeouts"]["AWAY"] == 0
    second = client.post(f"/api/live-games/{gid}/timeout", json={"team_id": "AWAY"})
    assert second.status_code == 409


def test_play_to_the_end(client):
    gid = _create(client, user_team_id="HOME")["game_id"]
    for _ in range(300):
        body = client.post(f"/api/live-games/{gid}/step", json={"count": 500}).json()
        if body["isGameOver"]:
            break
    assert body["isGameOver"]
    assert "gameEnd" in body["events"]

    assert client.post(f"/api/live-games/{gid}/step", json={}).status_code == 409
    result = client.get(f"/api/live-games/{gid}/result").json()
    assert result["isFinal"] is True
    assert result["homeScore"] != result["awayScore"]


def test_bad_config_is_400(client):
    resp = client.post("/api/live-games", json={"config": {"warp_speed": 1}})
    assert resp.status_code == 400


def test_simulate_game(client):
    resp = client.post("/api/simulate-game", json={"seed": 3})
    assert resp.status_code == 200
    assert resp.json()["isFinal"] is True
