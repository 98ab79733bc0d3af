"""Configuration validation."""

import logging
from typing import Dict, Any, List

logger = logging.getLogger(__name__)

TOOL_KEYS = ('chdman', 'seven_zip', 'unrar', 'unecm', 'mdf2iso', 'poweriso')
VALID_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class ValidationError(Exception):
    """Configuration validation errors."""
    pass


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary from loader

    Raises:
        ValidationError: Listing every problem found
    """
    errors = []

    errors.extend(_validate_paths(config.get('paths', {})))
    errors.extend(_validate_tools(config.get('tools', {})))
    errors.extend(_validate_flags('compress', config.get('compress', {}), ('overwrite', 'remove_source')))
    errors.extend(_validate_flags(
        'verify', config.get('verify', {}), ('allow_cue_mismatches', 'accept_closest_matches')
    ))
    errors.extend(_validate_logging(config.get('logging', {})))

    if errors:
        raise ValidationError(
            "Configuration validation failed:\n  - " + "\n  - ".join(errors)
        )


def _validate_paths(section: Dict[str, Any]) -> List[str]:
    errors = []
    temp_dir = section.get('temp_dir')
    if temp_dir is not None and not isinstance(temp_dir, str):
        errors.append("paths.temp_dir must be a string path")
    return errors


def _validate_tools(section: Dict[str, Any]) -> List[str]:
    """Validate external tool names and the command timeout."""
    errors = []

    for key in TOOL_KEYS:
        value = section.get(key)
        if not isinstance(value, str) or not value.strip():
            errors.append(f"tools.{key} must be a non-empty string")

    timeout = section.get('timeout_seconds', 300)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        errors.append("tools.timeout_seconds must be a positive number")

    return errors


def _validate_flags(section_name: str, section: Dict[str, Any], keys) -> List[str]:
    errors = []
    for key in keys:
        if key in section and not isinstance(section[key], bool):
            errors.append(f"{section_name}.{key} must be a boolean")
    return errors


def _validate_logging(section: Dict[str, Any]) -> List[str]:
    errors = []

    level = section.get('level', 'INFO')
    if not isinstance(level, str) or level.upper() not in VALID_LOG_LEVELS:
        errors.append(f"logging.level must be one of: {', '.join(VALID_LOG_LEVELS)}")

    console = section.get('console', True)
    if not isinstance(console, bool):
        errors.append("logging.console must be a boolean")

    log_file = section.get('file')
    if log_file is not None and not isinstance(log_file, str):
        errors.append("logging.file must be a string path")

    return errors
