from chassis_fan_controller.trend import Trend, TrendTracker, update


def test_stable():
    assert update(50.0, 50.0) == (50.0, Trend.STABLE)


def test_rising():
    assert update(50.0, 51.0) == (51.0, Trend.RISING)


def test_falling():
    assert update(50.0, 49.0) == (49.0, Trend.FALLING)


def test_first_observation_is_stable():
    assert update(None, 72.0) == (72.0, Trend.STABLE)


def test_within_margin_is_stable():
    assert update(50.0, 50.5)[1] is Trend.STABLE
    assert update(50.0, 49.5)[1] is Trend.STABLE
    assert update(50.0, 50.4, margin=0.2)[1] is Trend.RISING


def test_tracker_keeps_previous_reading():
    tracker = TrendTracker()
    assert tracker.observe(50.0) is Trend.STABLE
    assert tracker.observe(52.0) is Trend.RISING
    assert tracker.previous == 52.0
    assert tracker.observe(52.2) is Trend.STABLE
    assert tracker.observe(40.0) is Trend.FALLING
    assert tracker.direction is Trend.FALLING
