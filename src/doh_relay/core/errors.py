"""
DNS Relay Errors

Exception hierarchy shared by the codec, the upstream pool and the
resolution service.
"""

from typing import Dict, Optional


class DNSRelayError(Exception):
    """Base class for all relay errors"""


class DNSCodecError(DNSRelayError, ValueError):
    """Raised when a DNS message cannot be encoded or decoded"""


class MalformedPointer(DNSCodecError):
    """Compression pointer that does not point strictly backwards"""


class LabelTooLong(DNSCodecError):
    """Label longer than 63 octets (or empty where one is required)"""


class NameTooLong(LabelTooLong):
    """Decoded name longer than 255 octets in wire form"""


class BufferUnderrun(DNSCodecError):
    """Read past the end of the message buffer"""


class UnknownRecordType(DNSCodecError):
    """Record type mnemonic that is not in the type table"""


class NonZeroRcode(DNSCodecError):
    """Upstream answered with a non-zero response code"""

    def __init__(self, rcode: int):
        super().__init__(f"DNS error code: {rcode}")
        self.rcode = rcode


class UpstreamError(DNSRelayError):
    """Base class for upstream transport failures"""

    def __init__(self, server: str, message: str):
        super().__init__(f"{server}: {message}")
        self.server = server


class UpstreamTimeout(UpstreamError):
    """Upstream did not answer within the configured timeout"""


class UpstreamHTTPError(UpstreamError):
    """Upstream answered with a non-2xx status"""

    def __init__(self, server: str, status: int):
        super().__init__(server, f"HTTP {status}")
        self.status = status


class AllUpstreamsFailed(DNSRelayError):
    """Every upstream attempt failed"""

    def __init__(self, errors: Optional[Dict[str, Exception]] = None):
        self.errors = errors or {}
        if self.errors:
            detail = "; ".join(str(e) for e in self.errors.values())
            message = f"All upstream servers failed: {detail}"
        else:
            message = "All upstream servers failed: no upstream servers configured"
        super().__init__(message)
