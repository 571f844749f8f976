"""
Critical sensor trend detection
"""

from enum import Enum

DEFAULT_MARGIN = 0.5


class Trend(Enum):
    RISING = 'rising'
    FALLING = 'falling'
    STABLE = 'stable'


def update(previous, current, margin=DEFAULT_MARGIN):
    """
    Classify the move from previous to current

    Args:
        previous: Last reading, or None on the first observation
        current: New reading
        margin: Noise margin in degrees

    Returns:
        Tuple of (new_previous, Trend)
    """
    if previous is None:
        return current, Trend.STABLE
    if current > previous + margin:
        return current, Trend.RISING
    if current < previous - margin:
        return current, Trend.FALLING
    return current, Trend.STABLE


class TrendTracker:
    """Holds the previous critical reading between ticks"""

    def __init__(self, margin=DEFAULT_MARGIN):
        self.margin = margin
        self.previous = None
        self.direction = Trend.STABLE

    def observe(self, current):
        self.previous, self.direction = update(self.previous, current, self.margin)
        return self.direction
