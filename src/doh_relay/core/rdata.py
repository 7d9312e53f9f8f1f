"""
Resource Record Data

Typed RDATA variants for the record types the relay understands, the
RFC 5952 IPv6 formatter, and the per-type parser table.
"""

import struct
from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple, Union

from .errors import BufferUnderrun, DNSCodecError
from .message import DNSRecordType, read_name


@dataclass(frozen=True)
class ARecord:
    address: str

    def to_json(self) -> Any:
        return self.address


@dataclass(frozen=True)
class AAAARecord:
    address: str

    def to_json(self) -> Any:
        return self.address


@dataclass(frozen=True)
class CNAMERecord:
    target: str

    def to_json(self) -> Any:
        return self.target


@dataclass(frozen=True)
class NSRecord:
    nameserver: str

    def to_json(self) -> Any:
        return self.nameserver


@dataclass(frozen=True)
class MXRecord:
    preference: int
    exchange: str

    def to_json(self) -> Any:
        return {"preference": self.preference, "exchange": self.exchange}


@dataclass(frozen=True)
class TXTRecord:
    strings: Tuple[str, ...]

    @property
    def text(self) -> str:
        return "".join(self.strings)

    def to_json(self) -> Any:
        return self.text


@dataclass(frozen=True)
class SRVRecord:
    priority: int
    weight: int
    port: int
    target: str

    def to_json(self) -> Any:
        return {
            "priority": self.priority,
            "weight": self.weight,
            "port": self.port,
            "target": self.target,
        }


@dataclass(frozen=True)
class UnsupportedRecord:
    """Record of a type this relay does not interpret"""

    rtype: int
    raw: str

    def to_json(self) -> Any:
        return {"unsupported_type": self.rtype, "rdata": self.raw}


RData = Union[
    ARecord,
    AAAARecord,
    CNAMERecord,
    NSRecord,
    MXRecord,
    TXTRecord,
    SRVRecord,
    UnsupportedRecord,
]


def canonicalize_ipv6(packed: bytes) -> str:
    """Format a 16 byte IPv6 address as RFC 5952 text"""
    if len(packed) != 16:
        raise BufferUnderrun(f"IPv6 address must be 16 bytes, got {len(packed)}")

    groups = struct.unpack("!8H", packed)
    fields = [format(group, "x") for group in groups]

    best_start, best_len = -1, 0
    run_start, run_len = -1, 0
    for i, group in enumerate(groups):
        if group == 0:
            if run_len == 0:
                run_start = i
            run_len += 1
            if run_len > best_len:
                best_start, best_len = run_start, run_len
        else:
            run_len = 0

    if best_len < 2:
        return ":".join(fields)

    head = fields[:best_start]
    tail = fields[best_start + best_len :]
    if not head:
        head = [""]
    if not tail:
        tail = [""]
    return ":".join(head + [""] + tail)


def _name_within(data: bytes, offset: int, end: int) -> Tuple[str, int]:
    name, next_offset = read_name(data, offset)
    if next_offset > end:
        raise BufferUnderrun(f"Name at offset {offset} overruns RDATA")
    return name, next_offset


def _parse_a(data: bytes, offset: int, length: int) -> ARecord:
    if length != 4:
        raise DNSCodecError(f"Invalid A record length: {length}")
    return ARecord(".".join(str(b) for b in data[offset : offset + 4]))


def _parse_aaaa(data: bytes, offset: int, length: int) -> AAAARecord:
    if length != 16:
        raise DNSCodecError(f"Invalid AAAA record length: {length}")
    return AAAARecord(canonicalize_ipv6(bytes(data[offset : offset + 16])))


def _parse_cname(data: bytes, offset: int, length: int) -> CNAMERecord:
    name, _ = _name_within(data, offset, offset + length)
    return CNAMERecord(name)


def _parse_ns(data: bytes, offset: int, length: int) -> NSRecord:
    name, _ = _name_within(data, offset, offset + length)
    return NSRecord(name)


def _parse_mx(data: bytes, offset: int, length: int) -> MXRecord:
    if length < 3:
        raise BufferUnderrun(f"MX record too short: {length}")
    (preference,) = struct.unpack("!H", data[offset : offset + 2])
    exchange, _ = _name_within(data, offset + 2, offset + length)
    return MXRecord(preference=preference, exchange=exchange)


def _parse_txt(data: bytes, offset: int, length: int) -> TXTRecord:
    # TXT records can have multiple strings
    strings = []
    cursor = offset
    end = offset + length
    while cursor < end:
        size = data[cursor]
        if cursor + 1 + size > end:
            raise BufferUnderrun(f"TXT string at offset {cursor} overruns RDATA")
        strings.append(
            data[cursor + 1 : cursor + 1 + size].decode("utf-8", errors="replace")
        )
        cursor += size + 1
    return TXTRecord(tuple(strings))


def _parse_srv(data: bytes, offset: int, length: int) -> SRVRecord:
    if length < 7:
        raise BufferUnderrun(f"SRV record too short: {length}")
    priority, weight, port = struct.unpack("!HHH", data[offset : offset + 6])
    target, _ = _name_within(data, offset + 6, offset + length)
    return SRVRecord(priority=priority, weight=weight, port=port, target=target)


RDATA_PARSERS: Dict[int, Callable[[bytes, int, int], RData]] = {
    DNSRecordType.A: _parse_a,
    DNSRecordType.AAAA: _parse_aaaa,
    DNSRecordType.CNAME: _parse_cname,
    DNSRecordType.NS: _parse_ns,
    DNSRecordType.MX: _parse_mx,
    DNSRecordType.TXT: _parse_txt,
    DNSRecordType.SRV: _parse_srv,
}


def parse_rdata(data: bytes, offset: int, rtype: int, length: int) -> RData:
    """Interpret ``length`` bytes of RDATA at ``offset`` according to ``rtype``.

    ``data`` is the whole message so that compressed names inside RDATA can
    be followed. The caller guarantees the RDATA lies within ``data``.
    """
    parser = RDATA_PARSERS.get(rtype)
    if parser is None:
        return UnsupportedRecord(rtype=rtype, raw=data[offset : offset + length].hex())
    return parser(data, offset, length)
