"""
Critical sensor boosts

A boost table maps temperature thresholds to an additive duty cycle. The
highest threshold at or below the critical temperature wins. Targets are
composed in priority order: the bank nearest the heat source first, then
any secondary bank that is still eligible.
"""

import bisect
from collections import namedtuple

from .errors import ConfigurationError
from .trend import Trend

BoostRule = namedtuple('BoostRule', ['threshold', 'boost'])
BoostTarget = namedtuple('BoostTarget', ['bank', 'min_temp', 'rules'])

MAX_DUTY = 100


def build_boost_rules(table):
    """Compile a threshold -> boost mapping into rules sorted by threshold"""
    items = table.items() if hasattr(table, 'items') else table
    try:
        rules = sorted(BoostRule(float(threshold), int(value)) for threshold, value in items)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid boost rule: {e}")
    if not rules:
        raise ConfigurationError("Boost table is empty")
    thresholds = [rule.threshold for rule in rules]
    if len(set(thresholds)) != len(thresholds):
        raise ConfigurationError(f"Boost table has duplicate thresholds: {thresholds}")
    for rule in rules:
        if not 0 <= rule.boost <= MAX_DUTY:
            raise ConfigurationError(f"Boost at {rule.threshold}C out of range: {rule.boost}")
    return tuple(rules)


def boost(critical_temp, direction, rules):
    """Additive boost for the critical temperature, 0 when falling"""
    if direction is Trend.FALLING:
        return 0
    if hasattr(rules, 'items'):
        rules = build_boost_rules(rules)
    thresholds = [rule.threshold for rule in rules]
    index = bisect.bisect_right(thresholds, critical_temp) - 1
    if index < 0:
        return 0
    return rules[index].boost


def apply_boosts(duties, critical_temp, direction, targets):
    """
    Apply boost targets in priority order

    The first target is the primary. Each later target is boosted only
    once the targets before it have been applied, and only while the
    critical temperature is above its own min_temp.

    Args:
        duties: dict of bank id -> base duty cycle
        critical_temp: Critical sensor temperature
        direction: Trend of the critical sensor
        targets: Sequence of BoostTarget, primary first

    Returns:
        Tuple of (new duties dict, dict of bank id -> boost applied)
    """
    boosted = dict(duties)
    applied = {}
    for target in targets:
        if critical_temp <= target.min_temp or target.bank not in boosted:
            continue
        amount = boost(critical_temp, direction, target.rules)
        if amount:
            boosted[target.bank] = min(MAX_DUTY, boosted[target.bank] + amount)
            applied[target.bank] = amount
    return boosted, applied
