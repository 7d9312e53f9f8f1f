"""
DNS Message Module

This module implements the RFC 1035 pieces needed to talk to a DoH upstream:
- DNS header parsing/construction
- Question section encoding
- Compressed name decoding
- Record type table and query encoding
"""

import logging
import random
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple, Union

from .errors import (
    BufferUnderrun,
    LabelTooLong,
    MalformedPointer,
    NameTooLong,
    UnknownRecordType,
)

logger = logging.getLogger(__name__)

HEADER_SIZE = 12
MAX_LABEL_LENGTH = 63
MAX_NAME_LENGTH = 255
# Upper bound on compression pointers followed for a single name
MAX_POINTER_JUMPS = 128

QUERY_FLAGS = 0x0100


class DNSRecordType(IntEnum):
    """DNS Record Types"""

    A = 1
    NS = 2
    CNAME = 5
    MX = 15
    TXT = 16
    AAAA = 28
    SRV = 33


class DNSClass(IntEnum):
    """DNS Classes"""

    IN = 1


@dataclass(frozen=True)
class DNSHeader:
    """DNS Message Header"""

    transaction_id: int
    flags: int
    question_count: int = 0
    answer_count: int = 0
    authority_count: int = 0
    additional_count: int = 0

    @property
    def qr(self) -> bool:
        return bool(self.flags & 0x8000)

    @property
    def rd(self) -> bool:
        return bool(self.flags & 0x0100)

    @property
    def rcode(self) -> int:
        return self.flags & 0x000F

    def to_bytes(self) -> bytes:
        """Convert header to bytes"""
        return struct.pack(
            "!HHHHHH",
            self.transaction_id,
            self.flags,
            self.question_count,
            self.answer_count,
            self.authority_count,
            self.additional_count,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "DNSHeader":
        """Parse header from bytes"""
        if len(data) < HEADER_SIZE:
            raise BufferUnderrun("Invalid DNS header: too short")

        tid, flags, qcount, acount, authcount, addcount = struct.unpack(
            "!HHHHHH", data[:HEADER_SIZE]
        )
        return cls(
            transaction_id=tid,
            flags=flags,
            question_count=qcount,
            answer_count=acount,
            authority_count=authcount,
            additional_count=addcount,
        )


@dataclass(frozen=True)
class DNSQuestion:
    """DNS Question Section"""

    name: str
    qtype: int
    qclass: int = DNSClass.IN

    def to_bytes(self) -> bytes:
        """Convert question to bytes"""
        return encode_name(self.name) + struct.pack("!HH", self.qtype, self.qclass)


def encode_name(name: str) -> bytes:
    """Encode domain name using DNS label encoding"""
    if name.endswith("."):
        name = name[:-1]
    if not name:
        return b"\x00"

    result = b""
    for label in name.split("."):
        label_bytes = label.encode("utf-8")
        if not label_bytes:
            raise LabelTooLong(f"Empty label in {name!r}")
        if len(label_bytes) > MAX_LABEL_LENGTH:
            raise LabelTooLong(f"Label too long: {label}")
        result += struct.pack("!B", len(label_bytes)) + label_bytes
    return result + b"\x00"


def read_name(data: bytes, offset: int) -> Tuple[str, int]:
    """Decode a possibly compressed name starting at ``offset``.

    Returns the dotted name (no trailing dot, ``""`` for the root) and the
    offset of the first byte after the name as it appears at ``offset``.
    A pointer must target an offset strictly below where the current run
    of labels started, so every jump moves backwards and the walk ends.
    Pointer jumps are capped at MAX_POINTER_JUMPS and the decoded name at
    MAX_NAME_LENGTH octets in wire form.
    """
    labels = []
    cursor = offset
    segment_start = offset
    resume = None
    jumps = 0
    # Wire length of the decoded name, terminating zero octet included
    name_length = 1

    while True:
        if cursor >= len(data):
            raise BufferUnderrun(f"Name at offset {offset} runs past end of message")

        length = data[cursor]

        if length == 0:
            cursor += 1
            break

        if (length & 0xC0) == 0xC0:
            if cursor + 1 >= len(data):
                raise BufferUnderrun("Truncated compression pointer")
            target = ((length & 0x3F) << 8) | data[cursor + 1]
            if target >= segment_start:
                raise MalformedPointer(
                    f"Pointer at offset {cursor} targets {target}, not before {segment_start}"
                )
            jumps += 1
            if jumps > MAX_POINTER_JUMPS:
                raise MalformedPointer(
                    f"Name at offset {offset} follows more than {MAX_POINTER_JUMPS} pointers"
                )
            if resume is None:
                resume = cursor + 2
            cursor = target
            segment_start = target
            continue

        if length > MAX_LABEL_LENGTH:
            raise LabelTooLong(f"Label length {length} at offset {cursor}")
        if cursor + 1 + length > len(data):
            raise BufferUnderrun(f"Label at offset {cursor} exceeds message")

        name_length += length + 1
        if name_length > MAX_NAME_LENGTH:
            raise NameTooLong(f"Name at offset {offset} exceeds {MAX_NAME_LENGTH} octets")

        labels.append(data[cursor + 1 : cursor + 1 + length].decode("utf-8", errors="replace"))
        cursor += length + 1

    return ".".join(labels), resume if resume is not None else cursor


def resolve_record_type(record_type: Union[str, int]) -> int:
    """Map a mnemonic or numeric record type to its type code"""
    if isinstance(record_type, int) and not isinstance(record_type, bool):
        code = record_type
    else:
        text = str(record_type).strip()
        if text.isascii() and text.isdigit():
            code = int(text)
        else:
            try:
                code = DNSRecordType[text.upper()]
            except KeyError:
                raise UnknownRecordType(f"Unknown record type: {record_type}")

    if not 0 < code <= 0xFFFF:
        raise UnknownRecordType(f"Unknown record type: {record_type}")
    return int(code)


def get_record_type_name(rtype: int) -> Union[str, int]:
    """Mnemonic for known types, the numeric code otherwise"""
    try:
        return DNSRecordType(rtype).name
    except ValueError:
        return rtype


def encode_query(domain: str, record_type: Union[str, int]) -> bytes:
    """Build a recursion-desired query with a single IN question"""
    qtype = resolve_record_type(record_type)
    header = DNSHeader(
        transaction_id=random.getrandbits(16),
        flags=QUERY_FLAGS,
        question_count=1,
    )
    question = DNSQuestion(name=domain, qtype=qtype)
    query = header.to_bytes() + question.to_bytes()
    logger.debug(f"Encoded {len(query)} byte query for {domain} type {qtype}")
    return query
