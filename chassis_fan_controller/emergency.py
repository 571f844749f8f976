"""
Emergency mode state machine

NORMAL -> EMERGENCY when any monitored temperature is above critical_high.
EMERGENCY -> NORMAL only once every monitored temperature is at or below
critical_low. The gap between the two thresholds keeps the state from
flapping.
"""

from enum import Enum

from .errors import ConfigurationError


class EmergencyMode(Enum):
    NORMAL = 'normal'
    EMERGENCY = 'emergency'


class EmergencyState:
    """Emergency flag plus the reading that set it"""

    def __init__(self):
        self.mode = EmergencyMode.NORMAL
        self.trigger = None

    @property
    def active(self):
        return self.mode is EmergencyMode.EMERGENCY


class EmergencyGovernor:
    def __init__(self, critical_high=90, critical_low=75, logger=None):
        if critical_low >= critical_high:
            raise ConfigurationError(
                f"critical_low ({critical_low}) must be lower than critical_high ({critical_high})")
        self.critical_high = critical_high
        self.critical_low = critical_low
        self.logger = logger

    def _alert(self, message):
        if self.logger:
            self.logger.alert(message)

    def evaluate(self, state, temps, forced=False):
        """
        Update the emergency state from this tick's temperatures

        Args:
            state: EmergencyState, mutated in place
            temps: dict of sensor name -> temperature
            forced: Enter emergency regardless of temperatures

        Returns:
            True while emergency mode is active
        """
        if not state.active:
            hot = {name: t for name, t in temps.items() if t > self.critical_high}
            if hot or forced:
                if hot:
                    name = max(hot, key=hot.get)
                    state.trigger = (name, hot[name])
                    self._alert(f"EMERGENCY: {name} at {hot[name]}C exceeds "
                                f"{self.critical_high}C - all fans forced to 100%")
                else:
                    state.trigger = ('fallback', None)
                    self._alert("EMERGENCY: critical sensor unavailable - all fans forced to 100%")
                state.mode = EmergencyMode.EMERGENCY
            return state.active

        if not forced and temps and all(t <= self.critical_low for t in temps.values()):
            self._alert(f"Emergency cleared: all temperatures at or below {self.critical_low}C "
                        f"(max {max(temps.values())}C) - resuming curve control")
            state.mode = EmergencyMode.NORMAL
            state.trigger = None
        return state.active

    def override(self, duties):
        """Force every bank to 100%"""
        return {bank: 100 for bank in duties}
