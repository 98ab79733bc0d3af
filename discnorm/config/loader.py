"""Configuration loading and parsing."""

import copy
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

DEFAULT_CONFIG: Dict[str, Any] = {
    'paths': {
        'temp_dir': None,
    },
    'tools': {
        'chdman': 'chdman',
        'seven_zip': '7z',
        'unrar': 'unrar',
        'unecm': 'unecm',
        'mdf2iso': 'mdf2iso',
        'poweriso': 'poweriso',
        'timeout_seconds': 300,
    },
    'compress': {
        'overwrite': False,
        'remove_source': False,
    },
    'verify': {
        'allow_cue_mismatches': True,
        'accept_closest_matches': False,
    },
    'logging': {
        'level': 'INFO',
        'console': True,
        'file': None,
    },
}


class ConfigError(Exception):
    """Configuration-related errors."""
    pass


def merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration, layering an optional YAML file over the defaults.

    Args:
        config_path: Path to a YAML file. If None, ``discnorm.yaml`` in the
            current directory is used when present, else defaults only.

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: If an explicit file is missing or cannot be parsed
    """
    if config_path is None:
        candidate = Path.cwd() / "discnorm.yaml"
        if not candidate.exists():
            return copy.deepcopy(DEFAULT_CONFIG)
        path = candidate
    else:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            user_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {e}")

    if user_config is None:
        user_config = {}
    if not isinstance(user_config, dict):
        raise ConfigError("Configuration file must contain a YAML dictionary")

    return merge_dicts(DEFAULT_CONFIG, user_config)


def get_config_value(config: Dict[str, Any], path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation.

    Example:
        >>> get_config_value(config, 'tools.chdman')
        'chdman'
    """
    value = config
    for key in path.split('.'):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default
    return value
