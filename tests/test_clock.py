from datetime import datetime, timedelta, timezone

from metricsserver.clock import FakeClock, RealClock


def test_real_clock_is_utc_and_monotonic_enough():
    clock = RealClock()
    first = clock.now()
    assert first.tzinfo is not None
    assert first.utcoffset() == timedelta(0)
    elapsed = clock.since(first)
    assert timedelta(0) <= elapsed < timedelta(seconds=5)


def test_real_clock_since_past():
    clock = RealClock()
    earlier = clock.now() - timedelta(seconds=30)
    assert clock.since(earlier) >= timedelta(seconds=30)


def test_fake_clock_default_is_zero_time():
    clock = FakeClock()
    assert clock.now() == datetime(1, 1, 1, tzinfo=timezone.utc)


def test_fake_clock_advance_and_since():
    clock = FakeClock()
    start = clock.now()
    returned = clock.advance(10)
    assert returned == clock.now()
    assert clock.since(start) == timedelta(seconds=10)
    assert clock.now() - start == timedelta(seconds=10)


def test_fake_clock_is_frozen_without_advance():
    moment = datetime(2021, 10, 3, 9, 36, 49, tzinfo=timezone.utc)
    clock = FakeClock(current=moment)
    assert clock.now() == moment
    assert clock.now() == moment
    assert clock.since(moment) == timedelta(0)