"""
DNS Response Decoding

Turns an upstream answer into a ResolutionOutcome. Decoding never raises:
malformed input becomes an error outcome, and a record that fails to parse
ends the answer list without discarding the records before it.
"""

import logging
import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import BufferUnderrun, DNSCodecError, NonZeroRcode
from .message import HEADER_SIZE, DNSHeader, get_record_type_name, read_name
from .rdata import RData, parse_rdata

logger = logging.getLogger(__name__)


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    NO_RECORDS = "no_records"
    ERROR = "error"


@dataclass(frozen=True)
class ResourceRecord:
    """Decoded answer record"""

    name: str
    rtype: int
    rclass: int
    ttl: int
    data: RData

    @property
    def type_name(self) -> Union[str, int]:
        return get_record_type_name(self.rtype)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type_name,
            "ttl": self.ttl,
            "data": self.data.to_json(),
        }


@dataclass(frozen=True)
class ResolutionOutcome:
    """Result of resolving one (domain, type) pair"""

    domain: str
    type: Union[str, int]
    status: OutcomeStatus
    answers: Tuple[ResourceRecord, ...] = field(default_factory=tuple)
    count: int = 0
    rcode: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "domain": self.domain,
            "type": self.type,
            "status": self.status.value,
        }
        if self.status == OutcomeStatus.ERROR:
            result["error"] = self.error
            if self.rcode is not None:
                result["rcode"] = self.rcode
        elif self.status == OutcomeStatus.SUCCESS:
            result["count"] = self.count
            result["answers"] = [answer.to_dict() for answer in self.answers]
        else:
            result["answers"] = []
        return result


def parse_record(data: bytes, offset: int) -> Tuple[ResourceRecord, int]:
    """Parse one resource record at ``offset``"""
    name, offset = read_name(data, offset)

    if offset + 10 > len(data):
        raise BufferUnderrun("Invalid resource record: not enough data for header")

    rtype, rclass, ttl, rdlength = struct.unpack("!HHIH", data[offset : offset + 10])
    offset += 10

    if offset + rdlength > len(data):
        raise BufferUnderrun("Invalid resource record: not enough data for rdata")

    record = ResourceRecord(
        name=name,
        rtype=rtype,
        rclass=rclass,
        ttl=ttl,
        data=parse_rdata(data, offset, rtype, rdlength),
    )
    return record, offset + rdlength


def skip_questions(data: bytes, offset: int, count: int) -> int:
    """Advance past ``count`` questions"""
    for _ in range(count):
        _, offset = read_name(data, offset)
        if offset + 4 > len(data):
            raise BufferUnderrun("Invalid question: not enough data for type and class")
        offset += 4
    return offset


def decode_response(
    data: bytes, domain: str, requested_type: Union[str, int]
) -> ResolutionOutcome:
    """Decode an upstream response into an outcome for ``domain``"""
    data = bytes(data)

    def error(message: str, rcode: Optional[int] = None) -> ResolutionOutcome:
        return ResolutionOutcome(
            domain=domain,
            type=requested_type,
            status=OutcomeStatus.ERROR,
            rcode=rcode,
            error=message,
        )

    try:
        header = DNSHeader.from_bytes(data)
    except BufferUnderrun:
        return error("Invalid DNS response")

    if header.rcode != 0:
        return error(str(NonZeroRcode(header.rcode)), rcode=header.rcode)

    if header.answer_count == 0:
        return ResolutionOutcome(
            domain=domain,
            type=requested_type,
            status=OutcomeStatus.NO_RECORDS,
            rcode=header.rcode,
        )

    try:
        offset = skip_questions(data, HEADER_SIZE, header.question_count)
    except DNSCodecError as e:
        return error(f"Invalid question section: {e}")

    answers: List[ResourceRecord] = []
    for index in range(header.answer_count):
        try:
            record, offset = parse_record(data, offset)
        except DNSCodecError as e:
            logger.debug(
                f"Stopped decoding {domain} at answer {index} of {header.answer_count}: {e}"
            )
            break
        answers.append(record)

    return ResolutionOutcome(
        domain=domain,
        type=requested_type,
        status=OutcomeStatus.SUCCESS,
        answers=tuple(answers),
        count=header.answer_count,
        rcode=header.rcode,
    )
