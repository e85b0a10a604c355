"""
Configuration loader for the Shelly Dimmer Bridge
Loads and validates configuration from YAML files
"""

import yaml
import logging
from typing import Dict, Any
from pathlib import Path
from datetime import datetime
import pytz

logger = logging.getLogger(__name__)

CONFIG_SECTIONS = ('discovery', 'device', 'api', 'logging')

def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation
    """
    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.error(f"Configuration file not found: {config_path}")
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}

        # Validate required sections
        _validate_config(config)

        # Apply defaults
        config = _apply_defaults(config)

        logger.info(f"Configuration loaded from {config_path}")
        return config

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def _validate_config(config: Dict) -> None:
    """Validate that required configuration sections exist"""
    if not isinstance(config, dict):
        raise ValueError("Configuration root must be a mapping")

    # A section written with no keys (e.g. "device:") loads as None
    for section in CONFIG_SECTIONS:
        if section in config and config[section] is None:
            config[section] = {}
        elif section in config and not isinstance(config[section], dict):
            raise ValueError(f"Configuration section '{section}' must be a mapping")

    if 'discovery' not in config:
        raise ValueError("Missing required configuration section: discovery")

    # Validate discovery section
    service_name = config['discovery'].get('service_name')
    if service_name is not None and not any(proto in service_name for proto in ('._tcp', '._udp')):
        raise ValueError(f"discovery.service_name is not an mDNS service type: {service_name}")

    # Validate ports
    for section in ('device', 'api'):
        port = config.get(section, {}).get('port')
        if port is not None and (not isinstance(port, int) or isinstance(port, bool) or not 0 < port < 65536):
            raise ValueError(f"{section}.port must be an integer between 1 and 65535")

    tz_name = config.get('logging', {}).get('timezone')
    if tz_name is not None and tz_name not in pytz.all_timezones_set:
        raise ValueError(f"Unknown logging.timezone: {tz_name}")

def _apply_defaults(config: Dict) -> Dict:
    """Apply default values to configuration"""

    # Discovery defaults
    discovery_defaults = {
        'service_name': '_shelly._tcp.local',
        'model': 'SNDM-0013US',
        'interface': '0.0.0.0',
        'request_timeout': 5
    }
    for key, default_value in discovery_defaults.items():
        if key not in config['discovery']:
            config['discovery'][key] = default_value

    # Device RPC defaults
    if 'device' not in config:
        config['device'] = {}
    device_defaults = {
        'port': 80,
        'request_timeout': 5
    }
    for key, default_value in device_defaults.items():
        if key not in config['device']:
            config['device'][key] = default_value

    # API defaults
    if 'api' not in config:
        config['api'] = {}
    api_defaults = {
        'host': '0.0.0.0',
        'port': 8000
    }
    for key, default_value in api_defaults.items():
        if key not in config['api']:
            config['api'][key] = default_value

    # Logging defaults
    if 'logging' not in config:
        config['logging'] = {}
    logging_defaults = {
        'level': 'INFO',
        'file': 'logs/dimmer_bridge.log',
        'console_output': True,
        'timezone': 'UTC'
    }
    for key, default_value in logging_defaults.items():
        if key not in config['logging']:
            config['logging'][key] = default_value

    return config


class TimezoneFormatter(logging.Formatter):
    """Formatter that renders timestamps in a configured timezone"""

    def __init__(self, fmt=None, tz_name: str = 'UTC'):
        super().__init__(fmt)
        self.tz = pytz.timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        else:
            # Default format: YYYY-MM-DD HH:MM:SS TZ
            return dt.strftime('%Y-%m-%d %H:%M:%S %Z')

def setup_logging(config: Dict) -> None:
    """Setup logging based on configuration with timezone-aware timestamps"""
    log_config = config.get('logging', {})
    level = log_config.get('level', 'INFO')
    tz_name = log_config.get('timezone', 'UTC')

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = TimezoneFormatter(log_format, tz_name)

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=log_format,
        handlers=[]
    )

    # Console handler
    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logging.getLogger().addHandler(console_handler)

    # File handler
    log_file = log_config.get('file')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logging.getLogger().addHandler(file_handler)

    logger.info(f"Logging configured: level={level}, timezone={tz_name}, console={log_config.get('console_output', True)}, file={log_file}")

def get_sample_config() -> Dict:
    """Return a sample configuration for reference"""
    return {
        "discovery": {
            "service_name": "_shelly._tcp.local",
            "model": "SNDM-0013US",       # Shelly Plus Wall Dimmer (US)
            "interface": "0.0.0.0",       # Join mDNS on all interfaces
            "request_timeout": 5
        },
        "device": {
            "port": 80,
            "request_timeout": 5
        },
        "api": {
            "host": "0.0.0.0",
            "port": 8000
        },
        "logging": {
            "level": "INFO",
            "file": "logs/dimmer_bridge.log",
            "console_output": True,
            "timezone": "America/New_York"
        }
    }
