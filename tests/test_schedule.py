from pbp_engine.schedule import RotationSchedule, merge_intervals, subtract_interval


def test_merge_intervals_joins_adjacent_and_drops_empty():
    assert merge_intervals([(5, 8), (0, 3), (3, 5), (9, 9)]) == [(0, 8)]


def test_subtract_interval_splits_span():
    assert subtract_interval([(0, 12)], 4, 6) == [(0, 4), (6, 12)]


def test_from_minute_map_builds_half_open_spans():
    flags = [True] * 6 + [False] * 36 + [True] * 6
    sched = RotationSchedule.from_minute_map({"p1": flags}, length=48)
    assert sched.intervals("p1") == [(0, 6), (42, 48)]
    assert sched.is_scheduled("p1", 5)
    assert not sched.is_scheduled("p1", 6)
    assert sched.is_scheduled("p1", 47)
    assert sched.minutes("p1") == 12
    assert sched.to_minute_map()["p1"] == flags


def test_transfer_moves_minutes_between_players():
    sched = RotationSchedule({"a": [(0, 12)], "b": [(12, 18)]})
    moved = sched.transfer("a", "b", 6, 12)
    assert moved == [(6, 12)]
    assert sched.intervals("a") == [(0, 6)]
    assert sched.intervals("b") == [(6, 18)]
    assert sched.scheduled_at(8) == ["b"]


def test_set_range_off_and_replace_from_restore():
    sched = RotationSchedule({"a": [(0, 24)]})
    snapshot = sched.intervals("a")
    sched.set_range("a", 10, None, on=False)
    assert sched.intervals("a") == [(0, 10)]
    sched.replace_from("a", 15, snapshot)
    assert sched.intervals("a") == [(0, 10), (15, 24)]


def test_spans_are_clipped_to_schedule_length():
    sched = RotationSchedule({"a": [(-4, 60)]}, length=48)
    assert sched.intervals("a") == [(0, 48)]
    copy = sched.copy()
    copy.set_range("a", 0, 48, on=False)
    assert sched.intervals("a") == [(0, 48)]
