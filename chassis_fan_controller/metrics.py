"""
Per-tick metrics records

A snapshot is a plain dict:

    {
        'host': 'server01',
        'timestamp': '2026-01-01T12:00:00',
        'temperatures': {'cpu1': 41.0, 'ram': 50.0},
        'duty_cycles': {1: 15, 2: 15},
        'emergency': False,
        'trend': 'stable',
        'boosts': {1: 10},
    }
"""

import json
from collections import deque
from datetime import datetime

from .errors import MetricsWriteFailure


def make_snapshot(host, temps, duties, emergency, trend=None, boosts=None, timestamp=None):
    """Build the metrics record for one tick"""
    return {
        'host': host,
        'timestamp': (timestamp or datetime.now()).isoformat(timespec='seconds'),
        'temperatures': dict(temps),
        'duty_cycles': dict(duties),
        'emergency': bool(emergency),
        'trend': trend.value if trend is not None else None,
        'boosts': dict(boosts or {}),
    }


class RollingMetricsLog:
    """Keeps the most recent snapshots in memory"""

    def __init__(self, size=720):
        self.records = deque(maxlen=size)

    def record(self, snapshot):
        self.records.append(snapshot)

    def latest(self):
        return self.records[-1] if self.records else None


class JsonLinesMetricsSink:
    """Appends one JSON object per tick to a file"""

    def __init__(self, path):
        self.path = path

    def record(self, snapshot):
        try:
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(json.dumps(snapshot, sort_keys=True))
                f.write('\n')
        except (OSError, TypeError, ValueError) as e:
            raise MetricsWriteFailure(f"Failed to write metrics to {self.path}: {e}")
