"""
Logging setup tests.
"""

import logging

import pytest

from reportflow.exceptions import ConfigurationError
from reportflow.logging_config import resolve_level


@pytest.mark.parametrize("name, expected", [
    ("DEBUG", logging.DEBUG),
    ("info", logging.INFO),
    ("Warning", logging.WARNING),
])
def test_resolve_level(name, expected):
    assert resolve_level(name) == expected


def test_unknown_level_is_configuration_error():
    with pytest.raises(ConfigurationError, match="LOUD"):
        resolve_level("LOUD")
