"""
Temperature to duty cycle curve

A sparse table of (temperature, duty) points is compiled into sorted
linear segments. Each segment starts at a breakpoint and holds the slope
and intercept of the line to the next point.
"""

import bisect
import math
from collections import namedtuple

from .errors import ConfigurationError

CurveSegment = namedtuple('CurveSegment', ['breakpoint', 'slope', 'intercept'])

DEFAULT_MIN_DUTY = 10
MAX_DUTY = 100


def _points(points):
    items = points.items() if hasattr(points, 'items') else points
    try:
        return [(float(temp), float(duty)) for temp, duty in items]
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid curve point: {e}")


def build_curve(points):
    """
    Compile curve points into segments

    Args:
        points: mapping of temperature -> duty cycle, or iterable of pairs

    Returns:
        Tuple of CurveSegment sorted by breakpoint

    Raises:
        ConfigurationError: fewer than two distinct temperatures, duplicate
            temperatures, or a duty cycle outside 0-100
    """
    pairs = sorted(_points(points))
    temps = [temp for temp, _ in pairs]
    if len(set(temps)) != len(temps):
        raise ConfigurationError(f"Curve has duplicate temperatures: {temps}")
    if len(pairs) < 2:
        raise ConfigurationError("Curve needs at least two points")
    for temp, duty in pairs:
        if not 0 <= duty <= MAX_DUTY:
            raise ConfigurationError(f"Curve duty cycle at {temp}C out of range: {duty}")

    segments = []
    for (t1, d1), (t2, d2) in zip(pairs, pairs[1:]):
        slope = (d2 - d1) / (t2 - t1)
        segments.append(CurveSegment(t1, slope, d1 - slope * t1))
    return tuple(segments)


def round_half_up(value):
    return int(math.floor(value + 0.5))


def interpolate(segments, temp, minimum=DEFAULT_MIN_DUTY):
    """Duty cycle for a temperature, clamped to [minimum, 100]"""
    breakpoints = [segment.breakpoint for segment in segments]
    index = bisect.bisect_right(breakpoints, temp) - 1
    if index < 0:
        return minimum
    segment = segments[index]
    duty = round_half_up(segment.slope * temp + segment.intercept)
    return max(minimum, min(MAX_DUTY, duty))
