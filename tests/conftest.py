import pytest

from chassis_fan_controller.config import DEFAULTS, ControllerConfig, merge_config
from chassis_fan_controller.control import ControlLoop
from chassis_fan_controller.errors import HardwareWriteFailure, MetricsWriteFailure
from chassis_fan_controller.log import Logger
from chassis_fan_controller.sensors import TemperatureReading


IDLE = {'cpu1': 40, 'ram': 50, 'cpu2': 40}


class FakeSensorSource:
    """Returns queued readings, repeating the last set once the queue runs out"""

    def __init__(self, *ticks):
        self.ticks = list(ticks)
        self.last = {}

    def push(self, **temps):
        self.ticks.append(temps)

    def read(self):
        if self.ticks:
            self.last = self.ticks.pop(0)
        if isinstance(self.last, Exception):
            raise self.last
        return [TemperatureReading(name, value) for name, value in self.last.items()]


class RecordingHardwareSink:
    def __init__(self, fail=False):
        self.fail = fail
        self.manual_mode_calls = 0
        self.writes = []

    def set_manual_mode(self):
        self.manual_mode_calls += 1
        if self.fail:
            raise HardwareWriteFailure("manual mode failed")

    def set_duty_cycle(self, bank, percent):
        self.writes.append((bank, percent))
        if self.fail:
            raise HardwareWriteFailure("write failed")


class RecordingMetricsSink:
    def __init__(self, fail=False):
        self.fail = fail
        self.records = []

    def record(self, snapshot):
        if self.fail:
            raise MetricsWriteFailure("metrics unavailable")
        self.records.append(snapshot)


def make_config(**overrides):
    overrides.setdefault('metrics', {'host': 'test-host'})
    overrides.setdefault('logging', {'enabled': False})
    return ControllerConfig(merge_config(DEFAULTS, overrides))


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def logger():
    return Logger(enabled=False, verbose=True)


@pytest.fixture
def hardware():
    return RecordingHardwareSink()


@pytest.fixture
def metrics():
    return RecordingMetricsSink()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_loop(config, hardware, metrics, logger, sleeps):
    def factory(*ticks, cfg=None, sinks=None):
        return ControlLoop(cfg or config, FakeSensorSource(*ticks), hardware,
                           metrics_sinks=[metrics] if sinks is None else sinks,
                           logger=logger, sleep=sleeps.append)
    return factory
