"""
DoH Relay Logging Module

This module provides structured logging for the relay with per-request
tracking and timing.
"""

from .dns_logger import DNSRequestLogger, RequestContext
from .logger import (
    StructuredLogger,
    get_logger,
    log_exception,
    setup_logging,
)

__all__ = [
    # Core logging
    "StructuredLogger",
    "setup_logging",
    "get_logger",
    "log_exception",
    # Request logging
    "DNSRequestLogger",
    "RequestContext",
]
