import time

from matchengine.timeutil import epoch_nanos, wait_50_milli


def test_epoch_nanos_tracks_wall_clock():
    before = time.time_ns()
    now = epoch_nanos()
    after = time.time_ns()
    assert before <= now <= after


def test_epoch_nanos_does_not_go_backwards():
    first = epoch_nanos()
    second = epoch_nanos()
    assert second >= first


def test_wait_50_milli_sleeps_at_least_50ms():
    before = epoch_nanos()
    result = wait_50_milli()
    elapsed = epoch_nanos() - before
    assert result is None
    assert elapsed >= 49_000_000