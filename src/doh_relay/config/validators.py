"""
Configuration Validators

This module provides validation functions for relay configuration parameters.
"""

import ipaddress
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import urlparse


def validate_bind_address(address: str) -> bool:
    """Validate bind address format."""
    if not address:
        return False

    try:
        ipaddress.ip_address(address)
        return True
    except ValueError:
        return False


def validate_boolean(value) -> bool:
    """Validate boolean value."""
    return isinstance(value, bool)


def validate_file_path(path: Optional[str]) -> bool:
    """Validate optional file path format."""
    if path is None:
        return True
    if not isinstance(path, str) or not path:
        return False

    try:
        Path(path)
        return True
    except (TypeError, ValueError):
        return False


def validate_log_level(level: str) -> bool:
    """Validate log level."""
    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    return isinstance(level, str) and level.upper() in valid_levels


def validate_positive_int(value: int) -> bool:
    """Validate positive integer."""
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_port(port: int) -> bool:
    """Validate port number."""
    return validate_positive_int(port) and port <= 65535


def validate_upstream_url(url: str) -> bool:
    """Validate a DoH endpoint URL (http or https with a host)."""
    if not isinstance(url, str) or not url:
        return False

    parsed = urlparse(url)
    return parsed.scheme in ("https", "http") and bool(parsed.netloc)


def validate_upstream_servers(servers: Iterable[str]) -> bool:
    """Validate list of upstream DoH endpoints."""
    servers = list(servers)
    if not servers:
        return False

    return all(validate_upstream_url(server) for server in servers)
