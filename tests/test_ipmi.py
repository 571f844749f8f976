import subprocess

import pytest

from chassis_fan_controller.errors import HardwareWriteFailure, SensorUnavailable
from chassis_fan_controller.hardware import DryRunHardwareSink, IpmiHardwareSink
from chassis_fan_controller.sensors import (
    IpmiSensorSource,
    TemperatureReading,
    ipmitool_base,
    parse_sensor_table,
)

SENSOR_OUTPUT = """\
CPU1 Temp        | 41.000     | degrees C  | ok    | 0.000     | 0.000     | 0.000     | 85.000    | 90.000    | 90.000
CPU2 Temp        | 39.000     | degrees C  | ok    | 0.000     | 0.000     | 0.000     | 85.000    | 90.000    | 90.000
P1-DIMMA1 Temp   | na         | degrees C  | na    | na        | na        | na        | 80.000    | 85.000    | 90.000
P1-DIMMB1 Temp   | 48.000     | degrees C  | ok    | na        | na        | na        | 80.000    | 85.000    | 90.000
FAN1             | 1400.000   | RPM        | ok    | 300.000   | 500.000   | 700.000   | 25300.000 | 25400.000 | 25500.000
12V              | 12.126     | Volts      | ok    | 10.173    | 10.299    | 10.740    | 12.945    | 13.260    | 13.386
"""

LANPLUS = {'interface': 'lanplus', 'host': 'bmc.local', 'username': 'ADMIN', 'password': 'pw'}


class Recorder:
    def __init__(self, stdout="", exc=None):
        self.stdout = stdout
        self.exc = exc
        self.calls = []

    def __call__(self, cmd, **kwargs):
        self.calls.append(cmd)
        if self.exc:
            raise self.exc
        return subprocess.CompletedProcess(cmd, 0, stdout=self.stdout, stderr="")


def test_parse_sensor_table_keeps_numeric_temperatures():
    assert parse_sensor_table(SENSOR_OUTPUT) == {
        'CPU1 Temp': 41.0,
        'CPU2 Temp': 39.0,
        'P1-DIMMB1 Temp': 48.0,
    }


def test_ipmitool_base():
    assert ipmitool_base({'interface': 'open'}) == ['ipmitool']
    assert ipmitool_base(LANPLUS) == ['ipmitool', '-I', 'lanplus', '-H', 'bmc.local',
                                      '-U', 'ADMIN', '-P', 'pw']


def test_sensor_source_maps_logical_names(monkeypatch):
    recorder = Recorder(SENSOR_OUTPUT)
    monkeypatch.setattr(subprocess, 'run', recorder)
    source = IpmiSensorSource(LANPLUS, {'cpu1': 'CPU1 Temp', 'cpu2': 'CPU2 Temp',
                                        'ram': 'P1-DIMMA1 Temp'})
    assert source.read() == [TemperatureReading('cpu1', 41.0), TemperatureReading('cpu2', 39.0)]
    assert recorder.calls[0][-1] == 'sensor'


def test_sensor_source_failure(monkeypatch):
    monkeypatch.setattr(subprocess, 'run', Recorder(exc=subprocess.TimeoutExpired('ipmitool', 15)))
    with pytest.raises(SensorUnavailable):
        IpmiSensorSource({'interface': 'open'}, {'cpu1': 'CPU1 Temp'}).read()


def test_hardware_sink_commands(monkeypatch):
    recorder = Recorder()
    monkeypatch.setattr(subprocess, 'run', recorder)
    sink = IpmiHardwareSink({'interface': 'open'}, {1: 0, 2: 1})
    sink.set_manual_mode()
    sink.set_duty_cycle(2, 45)
    assert recorder.calls == [
        ['ipmitool', 'raw', '0x30', '0x45', '0x01', '0x01'],
        ['ipmitool', 'raw', '0x30', '0x70', '0x66', '0x01', '0x01', '0x2d'],
    ]


def test_hardware_sink_failure(monkeypatch):
    error = subprocess.CalledProcessError(1, 'ipmitool')
    monkeypatch.setattr(subprocess, 'run', Recorder(exc=error))
    sink = IpmiHardwareSink({'interface': 'open'}, {1: 0})
    with pytest.raises(HardwareWriteFailure):
        sink.set_duty_cycle(1, 50)


def test_hardware_sink_unknown_bank():
    with pytest.raises(HardwareWriteFailure):
        IpmiHardwareSink({'interface': 'open'}, {1: 0}).set_duty_cycle(3, 50)


def test_dry_run_sink_logs_only(monkeypatch, logger, capsys):
    monkeypatch.setattr(subprocess, 'run', Recorder(exc=AssertionError("must not run")))
    sink = DryRunHardwareSink(logger)
    sink.set_manual_mode()
    sink.set_duty_cycle(1, 30)
    assert 'would set fan bank 1 to 30%' in capsys.readouterr().out
