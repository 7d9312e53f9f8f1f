"""
DNS Request Logging

One structured event per relayed query, with request id and timing.
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union

from .logger import get_logger


@dataclass(frozen=True)
class RequestContext:
    """Timing handle for one in-flight request"""

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started: float = field(default_factory=time.perf_counter)

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started) * 1000


class DNSRequestLogger:
    """DNS request/response logger with structured output."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.logger = get_logger("dns_requests")

    def start_request(self) -> RequestContext:
        """Begin timing a request."""
        return RequestContext()

    def log_dns_request(
        self,
        context: RequestContext,
        client_ip: Optional[str],
        endpoint: str,
        status: str,
        domain: Optional[str] = None,
        query_type: Optional[Union[str, int]] = None,
        upstream_server: Optional[str] = None,
        ttl: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        """Log a finished request.

        Args:
            context: Handle returned by start_request
            client_ip: Client IP address
            endpoint: Route that served the request
            status: Outcome (success, no_records, error, failed, ...)
            domain: Domain name, when known
            query_type: Requested record type, when known
            upstream_server: Upstream that answered
            ttl: Cache TTL handed downstream
            error: Error message (if any)
        """
        if not self.enabled:
            return

        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "request_id": context.request_id,
            "client_ip": client_ip,
            "endpoint": endpoint,
            "domain": domain,
            "query_type": query_type,
            "status": status,
            "response_time_ms": round(context.elapsed_ms(), 2),
            "upstream_server": upstream_server,
        }
        if ttl is not None:
            log_entry["ttl"] = ttl

        if error:
            log_entry["error"] = error
            self.logger.warning("DNS request failed", **log_entry)
        else:
            self.logger.info("DNS request processed", **log_entry)
