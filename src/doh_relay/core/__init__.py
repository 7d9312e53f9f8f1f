"""
DoH Relay Core Module

This module exports the DNS codec, the upstream pool and the resolution
service.
"""

from .errors import (
    AllUpstreamsFailed,
    BufferUnderrun,
    DNSCodecError,
    DNSRelayError,
    LabelTooLong,
    MalformedPointer,
    NameTooLong,
    NonZeroRcode,
    UnknownRecordType,
    UpstreamError,
    UpstreamHTTPError,
    UpstreamTimeout,
)
from .message import (
    DNSClass,
    DNSHeader,
    DNSQuestion,
    DNSRecordType,
    encode_query,
    read_name,
    resolve_record_type,
)
from .rdata import (
    AAAARecord,
    ARecord,
    CNAMERecord,
    MXRecord,
    NSRecord,
    SRVRecord,
    TXTRecord,
    UnsupportedRecord,
    canonicalize_ipv6,
)
from .resolver import ResolutionService
from .response import (
    OutcomeStatus,
    ResolutionOutcome,
    ResourceRecord,
    decode_response,
)
from .upstream import UpstreamPool, UpstreamResponse, extract_ttl

__all__ = [
    # Service
    "ResolutionService",
    "UpstreamPool",
    "UpstreamResponse",
    "extract_ttl",
    # Codec
    "encode_query",
    "decode_response",
    "read_name",
    "resolve_record_type",
    "canonicalize_ipv6",
    # Message components
    "DNSHeader",
    "DNSQuestion",
    "ResourceRecord",
    "ResolutionOutcome",
    "OutcomeStatus",
    # RDATA
    "ARecord",
    "AAAARecord",
    "CNAMERecord",
    "NSRecord",
    "MXRecord",
    "TXTRecord",
    "SRVRecord",
    "UnsupportedRecord",
    # Enums
    "DNSRecordType",
    "DNSClass",
    # Errors
    "DNSRelayError",
    "DNSCodecError",
    "MalformedPointer",
    "NameTooLong",
    "LabelTooLong",
    "BufferUnderrun",
    "UnknownRecordType",
    "NonZeroRcode",
    "UpstreamError",
    "UpstreamTimeout",
    "UpstreamHTTPError",
    "AllUpstreamsFailed",
]
