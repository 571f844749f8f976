"""
Fan hardware sinks

IpmiHardwareSink drives Supermicro fan zones through ipmitool raw
commands. DryRunHardwareSink only logs, for test mode.
"""

import subprocess

from .errors import HardwareWriteFailure
from .sensors import ipmitool_base

# Supermicro OEM raw commands
FAN_MODE_CMD = ["raw", "0x30", "0x45", "0x01"]
FAN_MODE_FULL = "0x01"
FAN_DUTY_CMD = ["raw", "0x30", "0x70", "0x66", "0x01"]


class IpmiHardwareSink:
    def __init__(self, ipmi, zones, timeout=10):
        """
        Args:
            ipmi: ipmi config section
            zones: dict of bank id -> IPMI zone number
            timeout: Per-command timeout in seconds
        """
        self.ipmi = ipmi
        self.zones = dict(zones)
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(config.ipmi, {bank.id: bank.zone for bank in config.banks},
                   timeout=config.ipmi['timeout'])

    def _run(self, args):
        try:
            subprocess.run(
                ipmitool_base(self.ipmi) + args,
                capture_output=True, timeout=self.timeout, check=True
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise HardwareWriteFailure(f"ipmitool {' '.join(args)} failed: {e}")

    def set_manual_mode(self):
        """Put the BMC in full fan mode so it stops overriding duty cycles"""
        self._run(FAN_MODE_CMD + [FAN_MODE_FULL])

    def set_duty_cycle(self, bank, percent):
        """Set fan speed via IPMI raw command"""
        if bank not in self.zones:
            raise HardwareWriteFailure(f"No IPMI zone configured for fan bank {bank}")
        self._run(FAN_DUTY_CMD + [f"0x{self.zones[bank]:02x}", f"0x{int(percent):02x}"])


class DryRunHardwareSink:
    """Logs fan commands instead of sending them"""

    def __init__(self, logger=None):
        self.logger = logger

    def set_manual_mode(self):
        if self.logger:
            self.logger.info("[test mode] would set manual fan mode")

    def set_duty_cycle(self, bank, percent):
        if self.logger:
            self.logger.info(f"[test mode] would set fan bank {bank} to {percent}%")
