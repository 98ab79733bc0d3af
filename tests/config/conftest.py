"""
Shared fixtures for config module tests.
"""
import copy

import pytest

from discnorm.config.loader import DEFAULT_CONFIG


@pytest.fixture
def valid_config():
    """Complete valid configuration."""
    return copy.deepcopy(DEFAULT_CONFIG)
