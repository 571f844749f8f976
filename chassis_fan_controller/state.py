"""
Controller state carried between ticks
"""

from .emergency import EmergencyState
from .limiter import FanBank
from .trend import TrendTracker


class ControllerState:
    """Everything the control loop remembers from one tick to the next"""

    def __init__(self, bank_ids, startup_duty=100, trend_margin=0.5):
        self.banks = {bank_id: FanBank(bank_id, startup_duty) for bank_id in bank_ids}
        self.trend = TrendTracker(trend_margin)
        self.emergency = EmergencyState()
        self.fallback_ticks = 0
        self.fallback_escalated = False
        # Sensor feeding the trend tracker: the critical sensor or its fallback
        self.critical_source = None
        self.last_snapshot = None

    @classmethod
    def from_config(cls, config):
        return cls([bank.id for bank in config.banks],
                   startup_duty=config.startup_duty,
                   trend_margin=config.trend_margin)

    def duty_cycles(self):
        return {bank_id: bank.duty_cycle for bank_id, bank in sorted(self.banks.items())}
