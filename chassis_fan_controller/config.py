"""
Configuration loading

The YAML file is read once at startup, merged over DEFAULTS, validated
and frozen into a ControllerConfig. Curve and boost tables are compiled
here so a malformed table aborts before any fan is touched.
"""

import copy
import socket
from collections import namedtuple
from types import MappingProxyType

import yaml

from .boost import BoostTarget, build_boost_rules
from .curve import build_curve
from .errors import ConfigurationError

BankConfig = namedtuple('BankConfig', ['id', 'zone', 'sensor'])

DEFAULTS = {
    'ipmi': {
        'interface': 'open',
        'host': None,
        'username': None,
        'password': None,
        'timeout': 10,
    },
    # Logical sensor name -> IPMI sensor name
    'sensors': {
        'cpu1': 'CPU1 Temp',
        'cpu2': 'CPU2 Temp',
        'ram': 'P1-DIMMA1 Temp',
    },
    'critical_sensor': {
        'name': 'ram',
        'plausible_min': 30,
        'trend_margin': 0.5,
        'max_fallback_ticks': 3,
    },
    'fan_banks': [
        {'id': 1, 'zone': '0x00', 'sensor': 'cpu1'},
        {'id': 2, 'zone': '0x01', 'sensor': 'cpu2'},
    ],
    'curve': {30: 10, 40: 15, 50: 20, 60: 30, 70: 50, 80: 75, 90: 100},
    'boost': {
        'min_temp': 55,
        'targets': [
            {'bank': 1, 'min_temp': 55, 'rules': {70: 40, 65: 30, 60: 20, 55: 10}},
            {'bank': 2, 'min_temp': 65, 'rules': {75: 30, 70: 20, 65: 10}},
        ],
    },
    'thresholds': {
        'critical_high': 90,
        'critical_low': 75,
    },
    'fan_speeds': {
        'minimum': 10,
        'startup': 100,
        'error_safe': 100,
    },
    'hysteresis': {
        'min_temp_delta': 1.0,
    },
    'polling': {
        'interval': 5,
    },
    'logging': {
        'enabled': True,
        'facility': 'DAEMON',
        'quiet_in_emergency': True,
        'verbose': False,
    },
    'metrics': {
        'host': None,
        'history_size': 720,
        'jsonl_path': None,
    },
    'web_interface': {
        'enabled': False,
        'bind_address': '127.0.0.1',
        'port': 8080,
        'auth': {
            'username': 'admin',
            'password': 'changeme',
        },
    },
    'test_mode': False,
}

# Sections that replace the default wholesale instead of merging key by key
REPLACED_SECTIONS = ('sensors', 'fan_banks', 'curve')


def merge_config(defaults, overrides, top_level=True):
    """Recursively merge user settings over defaults"""
    merged = copy.deepcopy(defaults)
    for key, value in (overrides or {}).items():
        if isinstance(merged.get(key), dict):
            # An empty top-level section in YAML loads as None: keep the defaults.
            # A nested null switches the feature off, e.g. web_interface.auth
            if value is None:
                if not top_level:
                    merged[key] = None
                continue
            if not isinstance(value, dict):
                raise ConfigurationError(f"Section '{key}' must be a mapping, got {value!r}")
            if key in REPLACED_SECTIONS:
                merged[key] = copy.deepcopy(value)
            else:
                merged[key] = merge_config(merged[key], value, top_level=False)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _number(section, key, value, minimum=None, maximum=None):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{section}.{key} must be a number, got {value!r}")
    if minimum is not None and value < minimum:
        raise ConfigurationError(f"{section}.{key} must be >= {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise ConfigurationError(f"{section}.{key} must be <= {maximum}, got {value}")
    return value


def parse_zone(value):
    """Accept a zone as an int or a hex/decimal string and return an int"""
    try:
        zone = value if isinstance(value, int) else int(str(value), 0)
    except ValueError:
        raise ConfigurationError(f"Invalid fan zone: {value!r}")
    if not 0 <= zone <= 0xff:
        raise ConfigurationError(f"Fan zone out of range: {value!r}")
    return zone


class ControllerConfig:
    """Validated, read-only controller configuration"""

    def __init__(self, raw):
        self.raw = raw
        self.ipmi = MappingProxyType(dict(raw['ipmi']))
        self.sensors = MappingProxyType(dict(raw['sensors']))
        self.logging = MappingProxyType(dict(raw['logging']))
        web = dict(raw['web_interface'])
        if isinstance(web.get('auth'), dict):
            web['auth'] = MappingProxyType(dict(web['auth']))
        self.web_interface = MappingProxyType(web)
        self.test_mode = bool(raw['test_mode'])

        critical = raw['critical_sensor']
        self.critical_sensor = critical['name']
        if self.critical_sensor not in self.sensors:
            raise ConfigurationError(
                f"critical_sensor.name '{self.critical_sensor}' is not a configured sensor")
        self.plausible_min = _number('critical_sensor', 'plausible_min', critical['plausible_min'])
        self.trend_margin = _number('critical_sensor', 'trend_margin', critical['trend_margin'], 0)
        self.max_fallback_ticks = int(_number('critical_sensor', 'max_fallback_ticks',
                                              critical['max_fallback_ticks'], 1))

        speeds = raw['fan_speeds']
        self.min_duty = int(_number('fan_speeds', 'minimum', speeds['minimum'], 0, 100))
        self.startup_duty = int(_number('fan_speeds', 'startup', speeds['startup'], self.min_duty, 100))
        self.error_safe_duty = int(_number('fan_speeds', 'error_safe', speeds['error_safe'],
                                           self.min_duty, 100))

        thresholds = raw['thresholds']
        self.critical_high = _number('thresholds', 'critical_high', thresholds['critical_high'])
        self.critical_low = _number('thresholds', 'critical_low', thresholds['critical_low'])
        if self.critical_low >= self.critical_high:
            raise ConfigurationError(
                f"thresholds.critical_low ({self.critical_low}) must be lower than "
                f"thresholds.critical_high ({self.critical_high})")

        self.min_temp_delta = _number('hysteresis', 'min_temp_delta',
                                      raw['hysteresis']['min_temp_delta'], 0)
        self.interval = _number('polling', 'interval', raw['polling']['interval'], 0)

        self.banks = self._parse_banks(raw['fan_banks'])
        self.curve = build_curve(raw['curve'])

        boost = raw['boost']
        self.boost_min_temp = _number('boost', 'min_temp', boost['min_temp'])
        self.boost_targets = self._parse_boost_targets(boost.get('targets') or [])

        metrics = raw['metrics']
        self.metrics_host = metrics['host'] or socket.gethostname()
        self.metrics_history = int(_number('metrics', 'history_size', metrics['history_size'], 1))
        self.metrics_jsonl_path = metrics['jsonl_path']

    def _parse_banks(self, banks):
        if not banks:
            raise ConfigurationError("At least one fan bank must be configured")
        parsed = []
        for entry in banks:
            try:
                bank = BankConfig(int(entry['id']), parse_zone(entry['zone']), entry['sensor'])
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid fan bank entry {entry!r}: {e}")
            if bank.id < 1:
                raise ConfigurationError(f"Fan bank ids start at 1, got {bank.id}")
            if bank.sensor not in self.sensors:
                raise ConfigurationError(
                    f"Fan bank {bank.id} uses unknown sensor '{bank.sensor}'")
            parsed.append(bank)
        ids = [bank.id for bank in parsed]
        if len(set(ids)) != len(ids):
            raise ConfigurationError(f"Duplicate fan bank ids: {ids}")
        return tuple(sorted(parsed))

    def _parse_boost_targets(self, targets):
        bank_ids = {bank.id for bank in self.banks}
        parsed = []
        for entry in targets:
            try:
                bank = int(entry['bank'])
                rules = build_boost_rules(entry['rules'])
                min_temp = _number('boost', 'targets.min_temp',
                                   entry.get('min_temp', self.boost_min_temp))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid boost target {entry!r}: {e}")
            if bank not in bank_ids:
                raise ConfigurationError(f"Boost target refers to unknown fan bank {bank}")
            parsed.append(BoostTarget(bank, min_temp, rules))
        return tuple(parsed)

    def bank(self, bank_id):
        """Return the BankConfig for a bank id"""
        for bank in self.banks:
            if bank.id == bank_id:
                return bank
        raise KeyError(bank_id)

    def public_view(self):
        """Effective configuration without credentials"""
        view = copy.deepcopy(self.raw)
        view['ipmi']['password'] = '***' if view['ipmi'].get('password') else None
        view.pop('web_interface', None)
        return view


def load_config(config_path):
    """Load configuration from YAML file"""
    try:
        with open(config_path, 'r') as f:
            user_config = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(
            f"Configuration file not found: {config_path} "
            "(copy config.yaml.example to config.yaml and customize it)")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
    if user_config is not None and not isinstance(user_config, dict):
        raise ConfigurationError("Configuration file must contain a mapping")
    return ControllerConfig(merge_config(DEFAULTS, user_config))
