"""
Chassis Fan Controller

Temperature-driven fan bank control for Supermicro servers via IPMI.
"""

__version__ = '1.0.0'

from .boost import BoostRule, BoostTarget, apply_boosts, boost, build_boost_rules
from .config import ControllerConfig, load_config
from .control import ControlLoop
from .curve import CurveSegment, build_curve, interpolate
from .emergency import EmergencyGovernor, EmergencyMode, EmergencyState
from .errors import (
    ConfigurationError,
    FanControllerError,
    HardwareWriteFailure,
    MetricsWriteFailure,
    SensorUnavailable,
)
from .limiter import DutyCycleLimiter, FanBank
from .sensors import TemperatureReading
from .state import ControllerState
from .trend import Trend, TrendTracker

__all__ = [
    'BoostRule',
    'BoostTarget',
    'apply_boosts',
    'boost',
    'build_boost_rules',
    'ControllerConfig',
    'load_config',
    'ControlLoop',
    'CurveSegment',
    'build_curve',
    'interpolate',
    'EmergencyGovernor',
    'EmergencyMode',
    'EmergencyState',
    'ConfigurationError',
    'FanControllerError',
    'HardwareWriteFailure',
    'MetricsWriteFailure',
    'SensorUnavailable',
    'DutyCycleLimiter',
    'FanBank',
    'TemperatureReading',
    'ControllerState',
    'Trend',
    'TrendTracker',
]
