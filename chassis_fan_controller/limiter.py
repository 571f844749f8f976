"""
Duty cycle write limiting

A new duty cycle goes to hardware when it differs from the tracked duty
cycle or when the reference temperature has moved by at least
min_temp_delta. Anything else is chatter and is suppressed.
"""

from .errors import HardwareWriteFailure

MAX_DUTY = 100


class FanBank:
    """Tracked state of one addressable fan bank"""

    def __init__(self, bank_id, duty_cycle, reference_temp=None):
        self.id = bank_id
        self.duty_cycle = duty_cycle
        self.reference_temp = reference_temp

    def __repr__(self):
        return (f"FanBank(id={self.id}, duty_cycle={self.duty_cycle}, "
                f"reference_temp={self.reference_temp})")


class DutyCycleLimiter:
    def __init__(self, sink, min_temp_delta=1.0, min_duty=10, logger=None):
        self.sink = sink
        self.min_temp_delta = min_temp_delta
        self.min_duty = min_duty
        self.logger = logger

    def clamp(self, duty):
        return max(self.min_duty, min(MAX_DUTY, int(duty)))

    def should_apply(self, bank, new_duty, new_ref_temp):
        """True when the request is a real change worth a hardware write"""
        if bank.reference_temp is None:
            return True
        if abs(new_ref_temp - bank.reference_temp) >= self.min_temp_delta:
            return True
        return self.clamp(new_duty) != bank.duty_cycle

    def apply(self, bank, new_duty, new_ref_temp):
        """
        Track and send a duty cycle

        The bank's tracked state is updated before the write and is not
        rolled back if the write fails; the next tick re-evaluates.

        Returns:
            True if the hardware write succeeded
        """
        duty = self.clamp(new_duty)
        bank.duty_cycle = duty
        bank.reference_temp = new_ref_temp
        try:
            self.sink.set_duty_cycle(bank.id, duty)
        except HardwareWriteFailure as e:
            if self.logger:
                self.logger.error(f"Error setting fan bank {bank.id} to {duty}%: {e}")
            return False
        return True

    def update(self, bank, new_duty, new_ref_temp, force=False):
        """Apply if warranted, or unconditionally when forced

        Returns:
            True if a write was attempted and succeeded, False if it failed,
            None if it was suppressed
        """
        if not force and not self.should_apply(bank, new_duty, new_ref_temp):
            return None
        return self.apply(bank, new_duty, new_ref_temp)
