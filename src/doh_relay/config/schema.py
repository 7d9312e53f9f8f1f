"""
DoH Relay Configuration Schema

Immutable configuration sections for the relay. Each section validates
itself on construction and raises ValueError on bad values.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from .validators import (
    validate_bind_address,
    validate_boolean,
    validate_file_path,
    validate_log_level,
    validate_port,
    validate_positive_int,
    validate_upstream_servers,
)

STRATEGY_FALLBACK = "fallback"
STRATEGY_RACE = "race"

DEFAULT_UPSTREAM_SERVERS = (
    "https://cloudflare-dns.com/dns-query",
    "https://dns.google/dns-query",
)


@dataclass(frozen=True)
class ServerConfig:
    """HTTP listener configuration section."""

    bind_address: str = "127.0.0.1"
    port: int = 8053

    def __post_init__(self) -> None:
        """Validate server configuration."""
        if not validate_bind_address(self.bind_address):
            raise ValueError(f"Invalid bind address: {self.bind_address}")

        if not validate_port(self.port):
            raise ValueError(f"Invalid port: {self.port}")


@dataclass(frozen=True)
class UpstreamConfig:
    """Upstream DoH resolver configuration section."""

    servers: Tuple[str, ...] = DEFAULT_UPSTREAM_SERVERS
    timeout_ms: int = 500
    strategy: str = STRATEGY_FALLBACK
    min_ttl: int = 60
    max_ttl: int = 300

    def __post_init__(self) -> None:
        """Validate upstream configuration."""
        # YAML and JSON hand us lists
        object.__setattr__(self, "servers", tuple(self.servers))

        if not validate_upstream_servers(self.servers):
            raise ValueError(f"Invalid upstream servers: {list(self.servers)}")

        if not validate_positive_int(self.timeout_ms):
            raise ValueError(f"Timeout must be positive: {self.timeout_ms}")

        if self.strategy not in (STRATEGY_FALLBACK, STRATEGY_RACE):
            raise ValueError(f"Invalid upstream strategy: {self.strategy}")

        if not validate_positive_int(self.min_ttl):
            raise ValueError(f"Min TTL must be positive: {self.min_ttl}")

        if not validate_positive_int(self.max_ttl):
            raise ValueError(f"Max TTL must be positive: {self.max_ttl}")

        if self.min_ttl > self.max_ttl:
            raise ValueError(
                f"Min TTL {self.min_ttl} cannot exceed max TTL {self.max_ttl}"
            )

    @property
    def timeout(self) -> float:
        """Per-attempt timeout in seconds."""
        return self.timeout_ms / 1000.0


@dataclass(frozen=True)
class SecurityConfig:
    """Security configuration section."""

    auth_token: str = ""
    max_query_length: int = 512
    allow_server_override: bool = True

    def __post_init__(self) -> None:
        """Validate security configuration."""
        if not isinstance(self.auth_token, str):
            raise ValueError("Auth token must be a string")

        if not validate_positive_int(self.max_query_length):
            raise ValueError(
                f"Max query length must be positive: {self.max_query_length}"
            )

        if not validate_boolean(self.allow_server_override):
            raise ValueError(
                f"Allow server override must be boolean: {self.allow_server_override}"
            )


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration section."""

    level: str = "INFO"
    format: str = "console"
    file: Optional[str] = None
    max_size_mb: int = 100
    backup_count: int = 5
    enable_request_logging: bool = True

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        if not validate_log_level(self.level):
            raise ValueError(f"Invalid log level: {self.level}")

        if self.format not in ["console", "json"]:
            raise ValueError(f"Invalid log format: {self.format}")

        if not validate_file_path(self.file):
            raise ValueError(f"Invalid log file path: {self.file}")

        if not validate_positive_int(self.max_size_mb):
            raise ValueError(f"Max size MB must be positive: {self.max_size_mb}")

        if not validate_positive_int(self.backup_count):
            raise ValueError(f"Backup count must be positive: {self.backup_count}")

        if not validate_boolean(self.enable_request_logging):
            raise ValueError(
                f"Enable request logging must be boolean: {self.enable_request_logging}"
            )


@dataclass(frozen=True)
class WebConfig:
    """HTTP front end configuration section."""

    debug: bool = False
    cors_enabled: bool = True
    cors_origin: str = "*"

    def __post_init__(self) -> None:
        """Validate web configuration."""
        if not validate_boolean(self.debug):
            raise ValueError(f"Web debug must be boolean: {self.debug}")

        if not validate_boolean(self.cors_enabled):
            raise ValueError(f"CORS enabled must be boolean: {self.cors_enabled}")

        if not isinstance(self.cors_origin, str) or not self.cors_origin:
            raise ValueError(f"Invalid CORS origin: {self.cors_origin}")


@dataclass(frozen=True)
class DohRelayConfig:
    """Main relay configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    web: WebConfig = field(default_factory=WebConfig)


def create_default_config() -> DohRelayConfig:
    """Create a default configuration instance."""
    return DohRelayConfig()
