"""
DoH Relay HTTP API

Provides the HTTP endpoints:
- /dns-query: RFC 8484 wire-format relay (GET ?dns= and POST)
- /resolve: JSON view of a name/type lookup
- /: usage banner
"""

import base64
import binascii
import functools
import json
from typing import Any, Dict, Optional

from aiohttp import web
from aiohttp.web import Request, Response

from ..config.schema import DohRelayConfig
from ..core.errors import AllUpstreamsFailed, DNSCodecError
from ..core.message import HEADER_SIZE
from ..core.resolver import ResolutionService
from ..core.upstream import DNS_MESSAGE_CONTENT_TYPE
from ..dns_logging import DNSRequestLogger

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

USAGE_TEXT = """DNS over HTTPS relay

Endpoints:
  /dns-query  RFC 8484 DNS over HTTPS (GET ?dns=<base64url> or POST application/dns-message)
  /resolve    JSON lookup, e.g. /resolve?name=example.com&type=A
"""


def setup_api_routes(
    app: web.Application, config: DohRelayConfig, service: ResolutionService
) -> "APIHandler":
    """Setup API routes."""
    api = APIHandler(config, service)

    app.router.add_get("/", api.index)
    app.router.add_get("/dns-query", api.dns_query)
    app.router.add_post("/dns-query", api.dns_query)
    app.router.add_get("/resolve", api.resolve)

    return api


def decode_base64url(value: str) -> Optional[bytes]:
    """Decode unpadded base64url, None if malformed"""
    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, ValueError):
        return None


def json_response(data: Dict[str, Any], status: int = 200) -> Response:
    return web.json_response(
        data, status=status, dumps=functools.partial(json.dumps, indent=2)
    )


class APIHandler:
    """Handles all relay endpoints."""

    def __init__(self, config: DohRelayConfig, service: ResolutionService):
        self.config = config
        self.service = service
        self.request_logger = DNSRequestLogger(
            enabled=config.logging.enable_request_logging
        )

    async def index(self, request: Request) -> Response:
        """Plain-text usage banner."""
        return web.Response(text=USAGE_TEXT, content_type="text/plain", charset="utf-8")

    async def _extract_query(self, request: Request) -> Optional[bytes]:
        """Pull the wire-format query out of a GET or POST request."""
        if request.method == "POST":
            content_type = request.content_type
            if content_type == DNS_MESSAGE_CONTENT_TYPE:
                return await request.read()
            if content_type == FORM_CONTENT_TYPE:
                form = await request.post()
                dns_param = form.get("dns")
                return decode_base64url(dns_param) if isinstance(dns_param, str) else None
            return None

        dns_param = request.query.get("dns")
        return decode_base64url(dns_param) if dns_param else None

    async def dns_query(self, request: Request) -> Response:
        """Relay a wire-format DNS query upstream."""
        context = self.request_logger.start_request()
        query = await self._extract_query(request)

        if not query or len(query) < HEADER_SIZE:
            self.request_logger.log_dns_request(
                context, request.remote, "dns-query", "rejected",
                error="Invalid DNS query",
            )
            return web.Response(text="Invalid DNS query", status=400)

        if len(query) > self.config.security.max_query_length:
            self.request_logger.log_dns_request(
                context, request.remote, "dns-query", "rejected",
                error=f"Query too large: {len(query)} bytes",
            )
            return web.Response(text="DNS query too large", status=413)

        try:
            upstream = await self.service.forward(query)
        except AllUpstreamsFailed as e:
            self.request_logger.log_dns_request(
                context, request.remote, "dns-query", "failed", error=str(e)
            )
            return web.Response(text="DNS query failed", status=502)

        self.request_logger.log_dns_request(
            context,
            request.remote,
            "dns-query",
            "success",
            upstream_server=upstream.server,
            ttl=upstream.ttl,
        )
        return web.Response(
            body=upstream.data,
            content_type=DNS_MESSAGE_CONTENT_TYPE,
            headers={"Cache-Control": f"public, max-age={upstream.ttl}"},
        )

    async def resolve(self, request: Request) -> Response:
        """JSON name/type lookup; no type means A and AAAA together."""
        context = self.request_logger.start_request()
        domain = request.query.get("name")
        if not domain:
            return json_response({"error": "Missing name parameter"}, status=400)

        record_type = request.query.get("type") or "all"
        server = request.query.get("server")
        if server and not self.config.security.allow_server_override:
            return json_response(
                {"error": "Server override is disabled", "domain": domain},
                status=403,
            )

        try:
            if record_type.lower() == "all":
                results = await self.service.resolve_all(domain, server)
                payload = {
                    "domain": domain,
                    "type": "all",
                    "status": "success",
                    "a_records": self._half(results["A"]),
                    "aaaa_records": self._half(results["AAAA"]),
                }
                self.request_logger.log_dns_request(
                    context, request.remote, "resolve", "success",
                    domain=domain, query_type="all",
                )
                return json_response(payload)

            outcome = await self.service.resolve(domain, record_type, server)
        except (DNSCodecError, ValueError) as e:
            self.request_logger.log_dns_request(
                context, request.remote, "resolve", "rejected",
                domain=domain, query_type=record_type, error=str(e),
            )
            return json_response(
                {"error": str(e), "domain": domain, "type": record_type}, status=400
            )
        except AllUpstreamsFailed as e:
            self.request_logger.log_dns_request(
                context, request.remote, "resolve", "failed",
                domain=domain, query_type=record_type, error=str(e),
            )
            return json_response(
                {"error": "DNS query failed", "domain": domain, "type": record_type},
                status=502,
            )

        self.request_logger.log_dns_request(
            context, request.remote, "resolve", outcome.status.value,
            domain=domain, query_type=record_type, error=outcome.error,
        )
        return json_response(outcome.to_dict())

    @staticmethod
    def _half(outcome) -> Dict[str, Any]:
        return outcome.to_dict() if outcome is not None else {"status": "failed"}
