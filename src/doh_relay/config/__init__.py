"""
DoH Relay Configuration Module
"""

from .loader import ConfigLoader, load_config_from_file
from .schema import (
    DohRelayConfig,
    LoggingConfig,
    SecurityConfig,
    ServerConfig,
    UpstreamConfig,
    WebConfig,
    create_default_config,
)

__all__ = [
    "ConfigLoader",
    "load_config_from_file",
    "DohRelayConfig",
    "ServerConfig",
    "UpstreamConfig",
    "SecurityConfig",
    "LoggingConfig",
    "WebConfig",
    "create_default_config",
]
