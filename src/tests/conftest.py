"""Shared fixtures for the relay tests."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from doh_relay.config.schema import LoggingConfig
from doh_relay.dns_logging import setup_logging


@pytest.fixture(autouse=True)
def configured_logging():
    """Structured logging must be configured before web components are built."""
    setup_logging(LoggingConfig(level="DEBUG"))
    yield
