import random

import pytest

from pbp_engine.attributes import RATING_KEYS, build_live_player
from pbp_engine.defense import OpponentDefensiveMetrics
from pbp_engine.models import SUB_ZONES, Player
from pbp_engine.shot_model import (
    RATE_BOUNDS,
    attempt_distribution,
    calculate_hit_rate,
    draw_sub_zone,
    haste_malus,
)
from pbp_engine.stats import dampen_hot_cold, update_hot_cold

AVERAGE_D = OpponentDefensiveMetrics(int_def=50, per_def=50, block=50, pressure=50, help_def=50)


def _player(level):
    return build_live_player(Player(id=f"p{level}", name=f"L{level}", attrs={k: level for k in RATING_KEYS}))


def _rate(actor, zone, **kw):
    return calculate_hit_rate(
        actor, None, zone,
        offense_sliders={}, defense_sliders={}, metrics=kw.pop("metrics", AVERAGE_D), is_home=True, **kw
    ).rate


@pytest.mark.parametrize("zone", ["Rim", "Paint", "Mid", "3PT"])
def test_hit_rate_stays_inside_zone_bounds(zone):
    lo, hi = RATE_BOUNDS[zone]
    weak_d = OpponentDefensiveMetrics(int_def=0, per_def=0, block=0, pressure=0, help_def=0)
    strong_d = OpponentDefensiveMetrics(int_def=100, per_def=100, block=100, pressure=100, help_def=100)
    assert _rate(_player(100), zone, metrics=weak_d, play_bonus=0.2, modifier=0.3) == pytest.approx(hi)
    assert _rate(_player(1), zone, metrics=strong_d, modifier=-0.3) == pytest.approx(lo)


def test_better_shooter_makes_more():
    assert _rate(_player(80), "Mid") > _rate(_player(40), "Mid")


def test_min_hit_rate_floor():
    assert _rate(_player(1), "3PT", min_hit_rate=0.75) == pytest.approx(0.75)


def test_unknown_zone_rejected():
    with pytest.raises(ValueError):
        _rate(_player(50), "Corner")


def test_haste_only_past_threshold():
    p = _player(50)
    assert haste_malus({"pace": 5}, {"fullCourtPress": 1}, p) == 0.0
    assert haste_malus({"pace": 10}, {"fullCourtPress": 10}, p) > 0.0
    calm = _player(100)
    assert haste_malus({"pace": 10}, {"fullCourtPress": 10}, calm) < haste_malus(
        {"pace": 10}, {"fullCourtPress": 10}, p
    )


def test_attempt_distribution_is_normalized():
    dist = attempt_distribution(_player(60))
    assert set(dist) == set(SUB_ZONES)
    assert sum(dist.values()) == pytest.approx(1.0)


def test_tendency_data_overrides_archetypes():
    p = _player(60)
    p.tendencies = {"zones": {"rim": 0, "paint": 0, "mid": 0, "corner3": 50, "wing3": 0, "top3": 50}, "lateral_bias": 0}
    dist = attempt_distribution(p)
    assert dist["zone_rim"] == 0.0
    assert dist["zone_mid_c"] == 0.0
    assert dist["zone_c3_l"] > dist["zone_c3_r"]


def test_sub_zone_matches_zone():
    rng = random.Random(3)
    p = _player(60)
    for _ in range(50):
        assert draw_sub_zone(rng, p, "3PT").startswith(("zone_c3", "zone_atb3"))
        assert draw_sub_zone(rng, p, "Rim") == "zone_rim"


def test_hot_cold_streaks():
    p = _player(50)
    update_hot_cold(p, True)
    assert p.hot_cold == pytest.approx(0.3)
    for _ in range(20):
        update_hot_cold(p, True)
    assert p.hot_cold <= 1.0
    dampen_hot_cold([p])
    assert p.hot_cold <= 0.5
    update_hot_cold(p, False)
    assert p.hot_cold < 0.5
