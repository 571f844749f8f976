"""
Temperature sensor source

Reads the BMC sensor table with ipmitool and returns the configured
temperature sensors under their logical names.
"""

import subprocess
from collections import namedtuple

from .errors import SensorUnavailable

TemperatureReading = namedtuple('TemperatureReading', ['name', 'value'])


def ipmitool_base(ipmi):
    """ipmitool command prefix for local or lanplus access"""
    cmd = ["ipmitool"]
    if ipmi.get('interface', 'open') == 'lanplus':
        cmd += ["-I", "lanplus",
                "-H", str(ipmi['host']),
                "-U", str(ipmi['username']),
                "-P", str(ipmi['password'])]
    return cmd


def parse_sensor_table(output):
    """
    Parse `ipmitool sensor` output into {ipmi name: temperature}

    Only rows reporting degrees C with a numeric value are kept; `na`
    and malformed rows are dropped.
    """
    temps = {}
    for line in output.split('\n'):
        if '|' not in line:
            continue
        parts = [p.strip() for p in line.split('|')]
        if len(parts) < 3 or 'degrees C' not in parts[2]:
            continue
        try:
            temps[parts[0]] = float(parts[1])
        except ValueError:
            continue
    return temps


class IpmiSensorSource:
    """Sensor source backed by `ipmitool sensor`"""

    def __init__(self, ipmi, sensors, timeout=15):
        self.ipmi = ipmi
        self.sensors = dict(sensors)
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(config.ipmi, config.sensors, timeout=config.ipmi['timeout'])

    def read(self):
        """Return a list of TemperatureReading for the configured sensors"""
        try:
            result = subprocess.run(
                ipmitool_base(self.ipmi) + ["sensor"],
                capture_output=True, text=True, timeout=self.timeout, check=True
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise SensorUnavailable(f"ipmitool sensor failed: {e}")

        table = parse_sensor_table(result.stdout)
        readings = []
        for name, ipmi_name in self.sensors.items():
            if ipmi_name in table:
                readings.append(TemperatureReading(name, table[ipmi_name]))
        return readings
