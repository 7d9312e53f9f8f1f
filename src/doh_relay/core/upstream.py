"""
Upstream DoH Resolver Pool

This module sends encoded queries to the configured DNS-over-HTTPS
upstreams:
- Ordered fallback or first-success racing, chosen once per pool
- Per-attempt timeout
- Cache-Control max-age extraction and clamping
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import aiohttp

from ..config.schema import STRATEGY_RACE, UpstreamConfig
from .errors import (
    AllUpstreamsFailed,
    UpstreamError,
    UpstreamHTTPError,
    UpstreamTimeout,
)

logger = logging.getLogger(__name__)

DNS_MESSAGE_CONTENT_TYPE = "application/dns-message"

_MAX_AGE_RE = re.compile(r"max-age=(\d+)")


@dataclass(frozen=True)
class UpstreamResponse:
    """Raw answer from the upstream that won"""

    data: bytes
    ttl: int
    server: str


def extract_ttl(cache_control: Optional[str], min_ttl: int, max_ttl: int) -> int:
    """Clamp the upstream max-age into [min_ttl, max_ttl].

    A missing directive yields ``max_ttl``.
    """
    match = _MAX_AGE_RE.search(cache_control or "")
    if not match:
        return max_ttl
    return max(min_ttl, min(int(match.group(1)), max_ttl))


class UpstreamPool:
    """Relays raw queries to a list of DoH upstreams"""

    def __init__(
        self,
        config: UpstreamConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.config = config
        self._session = session
        self._owns_session = session is None

    async def start(self) -> None:
        """Open the HTTP session"""
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

    async def close(self) -> None:
        """Close the HTTP session if this pool opened it"""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "UpstreamPool":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def resolve(
        self, query: bytes, servers: Optional[Sequence[str]] = None
    ) -> UpstreamResponse:
        """Send ``query`` upstream and return the first successful answer.

        Raises:
            AllUpstreamsFailed: If no upstream produced a 2xx answer in time
        """
        if self._session is None:
            await self.start()

        servers = list(servers) if servers is not None else list(self.config.servers)
        if not servers:
            raise AllUpstreamsFailed()

        if self.config.strategy == STRATEGY_RACE:
            return await self._resolve_race(query, servers)
        return await self._resolve_fallback(query, servers)

    async def _resolve_fallback(
        self, query: bytes, servers: Sequence[str]
    ) -> UpstreamResponse:
        """Try servers in order, one at a time"""
        errors: Dict[str, Exception] = {}

        for server in servers:
            try:
                return await self._query_server(server, query)
            except UpstreamError as e:
                logger.debug(f"Upstream server {server} failed: {e}")
                errors[server] = e

        logger.warning(f"All {len(servers)} upstream servers failed")
        raise AllUpstreamsFailed(errors)

    async def _resolve_race(
        self, query: bytes, servers: Sequence[str]
    ) -> UpstreamResponse:
        """Query every server at once and keep the first success"""
        errors: Dict[str, Exception] = {}
        tasks = [
            asyncio.create_task(self._query_server(server, query))
            for server in servers
        ]

        try:
            for next_done in asyncio.as_completed(tasks):
                try:
                    return await next_done
                except UpstreamError as e:
                    logger.debug(f"Upstream server {e.server} lost the race: {e}")
                    errors[e.server] = e
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            # Late answers from cancelled attempts are discarded here
            await asyncio.gather(*tasks, return_exceptions=True)

        logger.warning(f"All {len(servers)} upstream servers failed")
        raise AllUpstreamsFailed(errors)

    async def _query_server(self, server: str, query: bytes) -> UpstreamResponse:
        """POST one query to one upstream within the timeout"""
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        headers = {
            "Content-Type": DNS_MESSAGE_CONTENT_TYPE,
            "Accept": DNS_MESSAGE_CONTENT_TYPE,
        }

        try:
            async with self._session.post(
                server, data=query, headers=headers, timeout=timeout
            ) as response:
                if not 200 <= response.status < 300:
                    raise UpstreamHTTPError(server, response.status)
                data = await response.read()
                cache_control = response.headers.get("Cache-Control")
        except asyncio.TimeoutError:
            raise UpstreamTimeout(
                server, f"timed out after {self.config.timeout_ms}ms"
            )
        except aiohttp.ClientError as e:
            raise UpstreamError(server, f"{type(e).__name__}: {e}")

        ttl = extract_ttl(cache_control, self.config.min_ttl, self.config.max_ttl)
        logger.debug(f"Upstream {server} answered {len(data)} bytes, ttl {ttl}")
        return UpstreamResponse(data=data, ttl=ttl, server=server)
