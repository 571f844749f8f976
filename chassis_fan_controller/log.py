"""
Console and syslog logging

Every message is printed to the console and, when enabled, sent to syslog.
Routine output can be silenced with `quiet`. Alerts and errors are always
emitted so emergency transitions stay visible.
"""

import sys

# Syslog support
try:
    import syslog
    SYSLOG_AVAILABLE = True
except ImportError:
    SYSLOG_AVAILABLE = False

# Syslog facility mapping
SYSLOG_FACILITIES = {}
if SYSLOG_AVAILABLE:
    SYSLOG_FACILITIES = {
        'USER': syslog.LOG_USER,
        'DAEMON': syslog.LOG_DAEMON,
        'LOCAL0': syslog.LOG_LOCAL0,
        'LOCAL1': syslog.LOG_LOCAL1,
        'LOCAL2': syslog.LOG_LOCAL2,
        'LOCAL3': syslog.LOG_LOCAL3,
        'LOCAL4': syslog.LOG_LOCAL4,
        'LOCAL5': syslog.LOG_LOCAL5,
        'LOCAL6': syslog.LOG_LOCAL6,
        'LOCAL7': syslog.LOG_LOCAL7,
    }


# syslog priorities, usable without the syslog module
LOG_ALERT, LOG_ERR, LOG_WARNING, LOG_INFO, LOG_DEBUG = 1, 3, 4, 6, 7


class Logger:
    """Console plus syslog logger with an emergency-safe quiet switch"""

    def __init__(self, enabled=True, facility='DAEMON', verbose=False,
                 ident='fan-controller', stream=None):
        self.syslog_enabled = enabled and SYSLOG_AVAILABLE
        self.verbose = verbose
        self.quiet = False
        self.stream = stream
        if self.syslog_enabled:
            syslog.openlog(ident, syslog.LOG_PID,
                           SYSLOG_FACILITIES.get(facility, syslog.LOG_USER))

    @classmethod
    def from_config(cls, config):
        """Build a logger from the `logging` config section"""
        section = config.logging
        return cls(enabled=section['enabled'],
                   facility=section['facility'],
                   verbose=section['verbose'])

    def _emit(self, priority, prefix, message, stream=None):
        print(f"{prefix}{message}", file=stream or self.stream or sys.stdout, flush=True)
        if self.syslog_enabled:
            syslog.syslog(priority, message)

    def debug(self, message):
        """Log debug message, only when verbose"""
        if self.verbose and not self.quiet:
            self._emit(LOG_DEBUG, "", message)

    def info(self, message):
        """Log info message unless quieted"""
        if not self.quiet:
            self._emit(LOG_INFO, "", message)

    def status(self, message):
        """Print a per-tick status line to the console only"""
        if not self.quiet:
            print(message, file=self.stream or sys.stdout, flush=True)

    def warning(self, message):
        """Log warning message"""
        self._emit(LOG_WARNING, "Warning: ", message, sys.stderr)

    def error(self, message):
        """Log error message"""
        self._emit(LOG_ERR, "ERROR: ", message, sys.stderr)

    def alert(self, message):
        """Log alert message, never suppressed"""
        self._emit(LOG_ALERT, "ALERT: ", message)

    def close(self):
        if self.syslog_enabled:
            syslog.closelog()
