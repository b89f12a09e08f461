import random

import pytest

from pbp_engine.attributes import build_live_player
from pbp_engine.engine_config import InjuryModelDisabled, InjuryModelEnabled
from pbp_engine.fatigue import (
    apply_condition_delta,
    bench_recovery,
    calculate_drain,
    pace_multiplier,
    roll_injury,
)
from pbp_engine.models import Player


def _player(**attrs):
    return build_live_player(Player(id="p1", name="Tester", attrs=attrs))


def test_shutdown_needs_more_than_seventy_to_clear():
    p = _player()
    apply_condition_delta(p, -85)  # 15
    assert p.is_shutdown
    assert p.is_red_zone
    apply_condition_delta(p, 55)  # 70
    assert p.is_shutdown
    assert p.is_red_zone is False
    apply_condition_delta(p, 1)  # 71
    assert not p.is_shutdown


def test_red_zone_clears_at_sixty_five():
    p = _player()
    apply_condition_delta(p, -71)  # 29
    assert p.is_red_zone
    assert not p.is_shutdown
    apply_condition_delta(p, 35)  # 64
    assert p.is_red_zone
    apply_condition_delta(p, 1)
    assert not p.is_red_zone


def test_condition_is_clamped():
    p = _player()
    apply_condition_delta(p, 50)
    assert p.current_condition == 100.0
    apply_condition_delta(p, -500)
    assert p.current_condition == 0.0


def test_drain_multipliers():
    p = _player(stamina=50)
    base = calculate_drain(p, 60, {"pace": 5})
    assert base == pytest.approx(3.5)
    assert calculate_drain(p, 60, {"pace": 5}, is_b2b=True) == pytest.approx(3.5 * 1.5)
    assert calculate_drain(p, 60, {"pace": 10}) > base
    assert calculate_drain(_player(stamina=90), 60, {"pace": 5}) < base
    assert pace_multiplier(3) == 1.0


def test_tired_players_drain_faster():
    fresh = _player()
    tired = _player()
    apply_condition_delta(tired, -50)
    assert calculate_drain(tired, 60, {}) > calculate_drain(fresh, 60, {})


def test_bench_recovery_scales_with_stamina():
    assert bench_recovery(_player(stamina=50), 60) == pytest.approx(1.2)
    assert bench_recovery(_player(stamina=80), 60) > 1.2


def test_injury_roll_respects_model():
    rng = random.Random(0)
    p = _player()
    apply_condition_delta(p, -95)
    assert not any(roll_injury(rng, p, InjuryModelDisabled()) for _ in range(200))
    always = InjuryModelEnabled(threshold=15.0, rate_per_point=1.0)
    assert roll_injury(rng, p, always)
    healthy = _player()
    assert not roll_injury(rng, healthy, always)
