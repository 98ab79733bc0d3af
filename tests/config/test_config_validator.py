import pytest

from discnorm.config.validator import ValidationError, validate_config


@pytest.mark.unit
def test_defaults_are_valid(valid_config):
    validate_config(valid_config)


@pytest.mark.unit
@pytest.mark.parametrize("section, key, value, message", [
    ("tools", "timeout_seconds", 0, "timeout_seconds must be a positive number"),
    ("tools", "timeout_seconds", True, "timeout_seconds must be a positive number"),
    ("tools", "timeout_seconds", "fast", "timeout_seconds must be a positive number"),
    ("tools", "chdman", "", "tools.chdman must be a non-empty string"),
    ("paths", "temp_dir", 5, "paths.temp_dir must be a string path"),
    ("compress", "overwrite", "yes", "compress.overwrite must be a boolean"),
    ("verify", "allow_cue_mismatches", 1, "verify.allow_cue_mismatches must be a boolean"),
    ("logging", "level", "LOUD", "logging.level must be one of"),
    ("logging", "console", "no", "logging.console must be a boolean"),
])
def test_invalid_values_are_reported(valid_config, section, key, value, message):
    valid_config[section][key] = value

    with pytest.raises(ValidationError, match=message):
        validate_config(valid_config)


@pytest.mark.unit
def test_every_problem_is_listed(valid_config):
    valid_config["tools"]["timeout_seconds"] = -1
    valid_config["logging"]["level"] = "LOUD"

    with pytest.raises(ValidationError) as exc_info:
        validate_config(valid_config)

    message = str(exc_info.value)
    assert message.startswith("Configuration validation failed:")
    assert message.count("\n  - ") == 2


@pytest.mark.unit
def test_float_timeout_and_lowercase_level_are_valid(valid_config):
    valid_config["tools"]["timeout_seconds"] = 12.5
    valid_config["logging"]["level"] = "debug"

    validate_config(valid_config)
