import pytest

from chassis_fan_controller.limiter import DutyCycleLimiter, FanBank

from .conftest import RecordingHardwareSink


class ErrorLog:
    def __init__(self):
        self.errors = []

    def error(self, message):
        self.errors.append(message)


@pytest.fixture
def sink():
    return RecordingHardwareSink()


@pytest.fixture
def limiter(sink):
    return DutyCycleLimiter(sink, min_temp_delta=1.0, min_duty=10)


def test_small_temperature_move_suppressed(limiter):
    bank = FanBank(1, 20, 50.0)
    assert limiter.should_apply(bank, 20, 50.3) is False
    assert limiter.update(bank, 20, 50.3) is None


def test_changed_duty_applied(limiter, sink):
    bank = FanBank(1, 20, 50.0)
    assert limiter.should_apply(bank, 25, 50.0) is True
    assert limiter.update(bank, 25, 50.0) is True
    assert sink.writes == [(1, 25)]
    assert (bank.duty_cycle, bank.reference_temp) == (25, 50.0)


def test_temperature_delta_at_threshold_applied(limiter, sink):
    bank = FanBank(1, 20, 50.0)
    assert limiter.should_apply(bank, 20, 49.0) is True
    limiter.apply(bank, 20, 49.0)
    assert sink.writes == [(1, 20)]


def test_never_written_bank_applies(limiter):
    assert limiter.should_apply(FanBank(2, 100), 100, 40.0) is True


def test_apply_clamps(limiter, sink):
    bank = FanBank(1, 50, 40.0)
    limiter.apply(bank, 3, 40.0)
    limiter.apply(bank, 130, 40.0)
    assert sink.writes == [(1, 10), (1, 100)]


def test_forced_update_bypasses_suppression(limiter, sink):
    bank = FanBank(1, 100, 91.0)
    assert limiter.update(bank, 100, 91.0, force=True) is True
    assert sink.writes == [(1, 100)]


def test_failed_write_keeps_tracked_state():
    log = ErrorLog()
    sink = RecordingHardwareSink(fail=True)
    limiter = DutyCycleLimiter(sink, logger=log)
    bank = FanBank(1, 20, 50.0)
    assert limiter.apply(bank, 35, 55.0) is False
    assert (bank.duty_cycle, bank.reference_temp) == (35, 55.0)
    assert sink.writes == [(1, 35)]
    assert 'bank 1' in log.errors[0]
