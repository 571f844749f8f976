"""
Control loop

One tick: read sensors, track the critical sensor trend, interpolate a
base duty cycle per bank, apply boosts, apply the emergency override,
record metrics, then write whatever the limiter lets through.
"""

import math
import time

from .boost import apply_boosts
from .curve import interpolate
from .emergency import EmergencyGovernor
from .errors import HardwareWriteFailure, MetricsWriteFailure, SensorUnavailable
from .limiter import DutyCycleLimiter
from .metrics import make_snapshot
from .state import ControllerState
from .trend import Trend

# Watchdog support
try:
    import systemd.daemon
    SYSTEMD_WATCHDOG = True
except ImportError:
    SYSTEMD_WATCHDOG = False

MAX_DUTY = 100


class ControlLoop:
    def __init__(self, config, sensor_source, hardware_sink, metrics_sinks=(),
                 logger=None, sleep=time.sleep):
        self.config = config
        self.sensors = sensor_source
        self.hardware = hardware_sink
        self.metrics_sinks = list(metrics_sinks)
        self.logger = logger
        self.sleep = sleep
        self.running = False

        self.state = ControllerState.from_config(config)
        self.governor = EmergencyGovernor(config.critical_high, config.critical_low, logger)
        self.limiter = DutyCycleLimiter(hardware_sink, config.min_temp_delta,
                                        config.min_duty, logger)

    def _log(self, level, message):
        if self.logger:
            getattr(self.logger, level)(message)

    def notify_watchdog(self, message='WATCHDOG=1'):
        """Notify systemd watchdog that we're alive"""
        if SYSTEMD_WATCHDOG:
            systemd.daemon.notify(message)

    def read_temperatures(self):
        """Current readings as {name: temperature}, empty if the source failed"""
        try:
            readings = self.sensors.read()
        except SensorUnavailable as e:
            self._log('warning', f"No sensor readings this tick: {e}")
            return {}

        temps = {}
        for reading in readings:
            try:
                value = float(reading.value)
            except (TypeError, ValueError):
                continue
            if math.isfinite(value):
                temps[reading.name] = value
        return temps

    def resolve_critical(self, temps):
        """
        Critical sensor temperature, falling back to the hottest other sensor

        A missing or implausibly low critical reading is replaced by the
        maximum of this tick's other readings. Too many fallbacks in a row
        escalate to emergency mode until the sensor recovers.
        """
        state = self.state
        name = self.config.critical_sensor
        value = temps.get(name)
        if value is not None and value >= self.config.plausible_min:
            if state.fallback_escalated:
                self._log('alert', f"Critical sensor {name} recovered at {value}C")
            state.fallback_ticks = 0
            state.fallback_escalated = False
            return value

        state.fallback_ticks += 1
        others = [t for sensor, t in temps.items() if sensor != name]
        fallback = max(others) if others else value
        self._log('warning', f"Critical sensor {name} unavailable or implausible "
                             f"({value}), using {fallback} from other sensors")
        if state.fallback_ticks >= self.config.max_fallback_ticks and not state.fallback_escalated:
            state.fallback_escalated = True
            self._log('alert', f"Critical sensor {name} unavailable for "
                               f"{state.fallback_ticks} ticks - escalating to emergency mode")
        return fallback

    def base_duty_cycles(self, temps):
        """Curve duty cycle and reference temperature for each bank"""
        duties = {}
        refs = {}
        hottest = max(temps.values())
        for bank in self.config.banks:
            ref = temps.get(bank.sensor, hottest)
            refs[bank.id] = ref
            duties[bank.id] = interpolate(self.config.curve, ref, self.config.min_duty)
        return duties, refs

    def record_metrics(self, snapshot):
        self.state.last_snapshot = snapshot
        for sink in self.metrics_sinks:
            try:
                sink.record(snapshot)
            except MetricsWriteFailure as e:
                self._log('warning', str(e))

    def tick(self):
        """Run one control cycle and return its metrics snapshot"""
        state = self.state
        config = self.config

        temps = self.read_temperatures()
        if not temps:
            return self._tick_without_readings()

        critical = self.resolve_critical(temps)
        effective = dict(temps)
        effective[config.critical_sensor] = critical
        source = config.critical_sensor if state.fallback_ticks == 0 else 'fallback'
        if source != state.critical_source:
            state.trend.previous = None
            state.critical_source = source
        direction = state.trend.observe(critical)

        duties, refs = self.base_duty_cycles(temps)

        boosts = {}
        if critical > config.boost_min_temp:
            duties, boosts = apply_boosts(duties, critical, direction, config.boost_targets)
            if boosts:
                self._log('debug', f"Boost applied ({config.critical_sensor} {critical}C "
                                   f"{direction.value}): {boosts}")

        was_active = state.emergency.active
        emergency = self.governor.evaluate(state.emergency, effective,
                                           forced=state.fallback_escalated)
        if emergency:
            duties = self.governor.override(duties)
        if self.logger and config.logging['quiet_in_emergency']:
            self.logger.quiet = emergency

        snapshot = make_snapshot(config.metrics_host, effective, duties, emergency,
                                 direction, boosts)
        self.record_metrics(snapshot)

        for bank_id, duty in sorted(duties.items()):
            bank = state.banks[bank_id]
            previous = bank.duty_cycle
            result = self.limiter.update(bank, duty, refs[bank_id], force=emergency)
            if result is None:
                continue
            if emergency and (not was_active or previous != bank.duty_cycle):
                self._log('alert', f"Emergency: fan bank {bank_id} forced to {bank.duty_cycle}%")
            elif result and previous != bank.duty_cycle:
                self._log('info', f"Fan bank {bank_id} speed changed {previous}% -> "
                                  f"{bank.duty_cycle}% (ref {refs[bank_id]}C)")

        self.print_status(effective, direction, boosts, emergency)
        return snapshot

    def _tick_without_readings(self):
        """No temperatures at all: drive every bank to the error-safe duty"""
        duty = self.config.error_safe_duty
        duties = {bank_id: duty for bank_id in self.state.banks}
        self._log('warning', f"No valid temperature readings - fans to {duty}%")

        snapshot = make_snapshot(self.config.metrics_host, {}, duties,
                                 self.state.emergency.active, Trend.STABLE)
        self.record_metrics(snapshot)

        for bank_id, bank in sorted(self.state.banks.items()):
            self.limiter.update(bank, duty, bank.reference_temp, force=True)
        return snapshot

    def print_status(self, temps, direction, boosts, emergency):
        """Print current status summary"""
        if not self.logger:
            return
        temp_str = ", ".join(f"{s}: {t}C" for s, t in sorted(temps.items()))
        fan_str = ", ".join(f"{b}: {d}%" for b, d in self.state.duty_cycles().items())
        boost_str = ", ".join(f"{b}: +{v}%" for b, v in sorted(boosts.items())) or "none"
        mode = "EMERGENCY" if emergency else "normal"
        self.logger.status(f"Temps: {temp_str} | Fans: {fan_str} | Trend: {direction.value} "
                           f"| Boost: {boost_str} | Mode: {mode}")

    def start(self):
        """Take manual control, run all banks at full speed and let them settle"""
        self._log('info', "Fan controller starting")
        try:
            self.hardware.set_manual_mode()
        except HardwareWriteFailure as e:
            self._log('error', f"Could not set manual fan mode: {e}")

        for bank_id, bank in sorted(self.state.banks.items()):
            self.limiter.update(bank, MAX_DUTY, None, force=True)
        self._log('info', f"All fan banks at {MAX_DUTY}%, settling for {self.config.interval}s")
        self.sleep(self.config.interval)

        curve = self.config.curve
        self._log('info', f"Curve compiled: {len(curve)} segments from "
                          f"{curve[0].breakpoint}C to {curve[-1].breakpoint}C")
        self.notify_watchdog('READY=1')

    def stop(self):
        self.running = False

    def run(self):
        """Main control loop"""
        self.running = True
        self.start()
        if not self.running:
            return
        if SYSTEMD_WATCHDOG:
            self._log('info', "Systemd watchdog enabled")

        while self.running:
            try:
                self.tick()
            except Exception as e:
                self._log('error', f"Error in main loop: {e}")
            self.notify_watchdog()
            if self.running:
                self.sleep(self.config.interval)
