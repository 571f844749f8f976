"""
Exception types raised by the fan controller

Only ConfigurationError is fatal, and only at startup. Everything else
is recovered inside the control loop and logged.
"""


class FanControllerError(Exception):
    """Base class for fan controller errors"""


class ConfigurationError(FanControllerError):
    """Malformed configuration, curve or boost table"""


class SensorUnavailable(FanControllerError):
    """Sensor source could not produce readings"""


class HardwareWriteFailure(FanControllerError):
    """Fan hardware command failed"""


class MetricsWriteFailure(FanControllerError):
    """Metrics record could not be written"""
