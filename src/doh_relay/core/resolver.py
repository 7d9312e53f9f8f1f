"""
Resolution Service

Facade over the codec and the upstream pool:
- Name/type lookups decoded into ResolutionOutcome
- Combined A/AAAA lookups run concurrently
- Raw wire-format relaying
"""

import asyncio
import logging
from typing import Dict, List, Optional, Union

from ..config.schema import UpstreamConfig
from ..config.validators import validate_upstream_url
from .errors import BufferUnderrun, DNSRelayError
from .message import HEADER_SIZE, encode_name, encode_query
from .response import ResolutionOutcome, decode_response
from .upstream import UpstreamPool, UpstreamResponse

logger = logging.getLogger(__name__)


class ResolutionService:
    """Resolves names through the configured DoH upstreams"""

    def __init__(self, config: UpstreamConfig, pool: Optional[UpstreamPool] = None):
        self.config = config
        self.pool = pool or UpstreamPool(config)

    async def start(self) -> None:
        await self.pool.start()

    async def close(self) -> None:
        await self.pool.close()

    async def resolve(
        self,
        domain: str,
        record_type: Union[str, int] = "A",
        server: Optional[str] = None,
    ) -> ResolutionOutcome:
        """Look up one (domain, type) pair.

        Args:
            domain: Dotted domain name
            record_type: Mnemonic (``"MX"``) or numeric type code
            server: Explicit upstream URL to use instead of the configured list

        Raises:
            UnknownRecordType: If ``record_type`` is an unknown mnemonic
            LabelTooLong: If a label of ``domain`` is empty or over 63 octets
            ValueError: If ``server`` is not an http(s) URL
            AllUpstreamsFailed: If no upstream answered
        """
        query = encode_query(domain, record_type)
        servers = self._explicit_servers(server)

        upstream = await self.pool.resolve(query, servers)
        outcome = decode_response(upstream.data, domain, record_type)
        logger.debug(
            f"Resolved {domain} {record_type} via {upstream.server}: {outcome.status.value}"
        )
        return outcome

    async def resolve_all(
        self, domain: str, server: Optional[str] = None
    ) -> Dict[str, Optional[ResolutionOutcome]]:
        """Look up A and AAAA concurrently.

        The name and ``server`` are validated once up front, so invalid input
        raises as it does for :meth:`resolve`. After that, a half whose lookup
        fails is reported as ``None`` without affecting the other.
        """
        encode_name(domain)
        self._explicit_servers(server)

        results = await asyncio.gather(
            self.resolve(domain, "A", server),
            self.resolve(domain, "AAAA", server),
            return_exceptions=True,
        )

        combined: Dict[str, Optional[ResolutionOutcome]] = {}
        for key, result in zip(("A", "AAAA"), results):
            if isinstance(result, BaseException):
                if not isinstance(result, DNSRelayError):
                    raise result
                logger.debug(f"{key} lookup for {domain} failed: {result}")
                combined[key] = None
            else:
                combined[key] = result
        return combined

    @staticmethod
    def _explicit_servers(server: Optional[str]) -> Optional[List[str]]:
        """Single-server list for an override URL, None to use the pool's list"""
        if server is None:
            return None
        if not validate_upstream_url(server):
            raise ValueError(f"Invalid upstream server: {server}")
        return [server]

    async def forward(self, query: bytes) -> UpstreamResponse:
        """Relay a raw wire-format query unchanged.

        Raises:
            BufferUnderrun: If ``query`` is shorter than a DNS header
            AllUpstreamsFailed: If no upstream answered
        """
        if len(query) < HEADER_SIZE:
            raise BufferUnderrun(f"DNS query too short: {len(query)} bytes")
        return await self.pool.resolve(bytes(query))
