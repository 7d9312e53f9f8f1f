"""
Message Encoding Tests

Tests for query encoding, the record type table and compressed name decoding.
"""

import struct

import pytest

from doh_relay.core.errors import (
    BufferUnderrun,
    LabelTooLong,
    MalformedPointer,
    NameTooLong,
    UnknownRecordType,
)
from doh_relay.core.message import (
    DNSHeader,
    DNSQuestion,
    DNSRecordType,
    MAX_POINTER_JUMPS,
    encode_query,
    get_record_type_name,
    read_name,
    resolve_record_type,
)


def expected_length(domain: str) -> int:
    labels = [label for label in domain.rstrip(".").split(".") if label]
    return 12 + sum(len(label.encode("utf-8")) + 1 for label in labels) + 1 + 4


class TestEncodeQuery:
    """Test query encoding"""

    @pytest.mark.parametrize(
        "domain",
        ["example.com", "a.b.c.d.e.f", "x" * 63 + ".com", "www.example.com.", "localhost"],
    )
    def test_query_length(self, domain):
        """Query length is header + labels + terminator + type/class"""
        assert len(encode_query(domain, "A")) == expected_length(domain)

    def test_query_header(self):
        """Header carries RD, one question and no other records"""
        query = encode_query("example.com", "AAAA")
        header = DNSHeader.from_bytes(query)

        assert header.flags == 0x0100
        assert header.rd
        assert not header.qr
        assert header.question_count == 1
        assert header.answer_count == 0
        assert header.authority_count == 0
        assert header.additional_count == 0

    def test_query_question(self):
        """Question section encodes labels, type and class IN"""
        query = encode_query("example.com", "MX")

        assert query[12:] == b"\x07example\x03com\x00" + struct.pack("!HH", 15, 1)

    def test_query_matches_question_encoding(self):
        """encode_query uses the same question encoding as DNSQuestion"""
        query = encode_query("mail.example.org", "TXT")
        question = DNSQuestion("mail.example.org", DNSRecordType.TXT)

        assert query[12:] == question.to_bytes()

    def test_root_name(self):
        """The root name encodes as a single zero octet"""
        query = encode_query(".", "NS")

        assert len(query) == 17
        assert query[12:] == b"\x00\x00\x02\x00\x01"

    def test_label_too_long(self):
        """Labels over 63 octets are rejected"""
        with pytest.raises(LabelTooLong):
            encode_query("x" * 64 + ".com", "A")

    def test_empty_label(self):
        """Empty interior labels are rejected"""
        with pytest.raises(LabelTooLong):
            encode_query("bad..example.com", "A")

    def test_unknown_type(self):
        """Unknown mnemonics are rejected"""
        with pytest.raises(UnknownRecordType):
            encode_query("example.com", "BOGUS")

    def test_non_ascii_digit_type(self):
        """Unicode digits are not numeric type codes"""
        with pytest.raises(UnknownRecordType):
            encode_query("example.com", "²")

    def test_numeric_type_passthrough(self):
        """Numeric types outside the table go on the wire as-is"""
        query = encode_query("example.com", 99)

        assert struct.unpack("!H", query[-4:-2])[0] == 99


class TestRecordTypes:
    """Test record type resolution"""

    def test_mnemonics(self):
        assert resolve_record_type("A") == 1
        assert resolve_record_type("aaaa") == 28
        assert resolve_record_type("CNAME") == 5
        assert resolve_record_type("NS") == 2
        assert resolve_record_type("TXT") == 16
        assert resolve_record_type("MX") == 15
        assert resolve_record_type("SRV") == 33

    def test_numeric(self):
        assert resolve_record_type(65) == 65
        assert resolve_record_type("257") == 257

    @pytest.mark.parametrize("value", [0, "0", 70000, "", "ANY?", "²", "١٢"])
    def test_invalid(self, value):
        with pytest.raises(UnknownRecordType):
            resolve_record_type(value)

    def test_type_names(self):
        assert get_record_type_name(1) == "A"
        assert get_record_type_name(33) == "SRV"
        assert get_record_type_name(999) == 999


class TestReadName:
    """Test compressed name decoding"""

    def test_plain_name(self):
        data = b"\x03www\x07example\x03com\x00"

        assert read_name(data, 0) == ("www.example.com", len(data))

    def test_root(self):
        assert read_name(b"\x00", 0) == ("", 1)

    def test_compressed_name(self):
        """First pointer fixes the resume offset"""
        data = b"\x07example\x03com\x00" + b"\x03www\xc0\x00" + b"\xff"

        name, next_offset = read_name(data, 13)

        assert name == "www.example.com"
        assert next_offset == 19

    def test_pointer_chain(self):
        """Chained pointers are followed, resume offset stays at the first"""
        data = (
            b"\x03com\x00"          # 0: com
            + b"\x07example\xc0\x00"  # 5: example.com
            + b"\x04mail\xc0\x05"    # 15: mail.example.com
            + b"\xc0\x0f"            # 22: pointer to mail.example.com
        )

        assert read_name(data, 22) == ("mail.example.com", 24)

    def test_self_pointer(self):
        """A pointer to its own position is rejected"""
        with pytest.raises(MalformedPointer):
            read_name(b"\xc0\x00", 0)

    def test_forward_pointer(self):
        """A pointer to a later offset is rejected"""
        data = b"\xc0\x04\x00\x00\x03www\x00"

        with pytest.raises(MalformedPointer):
            read_name(data, 0)

    def test_pointer_loop(self):
        """A backwards pointer that leads back to itself does not loop"""
        # 0: label "a", then at 2 a pointer back to 0
        data = b"\x01a\xc0\x00"

        with pytest.raises(MalformedPointer):
            read_name(data, 0)

    def test_deep_backwards_chain_is_bounded(self):
        """A long chain of strictly decreasing pointers hits the pointer cap"""
        # Each pointer points two bytes back, ending at the root name at offset 0
        data = b"\x00\x00" + b"".join(
            struct.pack("!H", 0xC000 | (offset - 2)) for offset in range(2, 400, 2)
        )

        with pytest.raises(MalformedPointer):
            read_name(data, len(data) - 2)

    def test_pointer_jump_cap(self):
        """Exactly MAX_POINTER_JUMPS backwards pointers decode, one more does not"""
        data = b"\x00\x00" + b"".join(
            struct.pack("!H", 0xC000 | (offset - 2))
            for offset in range(2, 2 * (MAX_POINTER_JUMPS + 2), 2)
        )
        last_pointer = len(data) - 2

        assert read_name(data, last_pointer - 2) == ("", last_pointer)
        with pytest.raises(MalformedPointer):
            read_name(data, last_pointer)

    def test_maximum_length_name(self):
        """127 one-octet labels plus a pointer to the root fill 255 octets"""
        data = b"\x00" + b"\x01a" * 127 + b"\xc0\x00"

        name, next_offset = read_name(data, 1)

        assert name == ".".join(["a"] * 127)
        assert next_offset == len(data)

    def test_long_ip6_arpa_name(self):
        """A 34-label reverse IPv6 name is well within the limits"""
        name = ".".join("0123456789abcdef0123456789abcdef") + ".ip6.arpa"
        data = b"".join(bytes([len(label)]) + label.encode() for label in name.split(".")) + b"\x00"

        assert read_name(data, 0) == (name, len(data))

    def test_name_too_long(self):
        """A 256 octet name is rejected even when every label is valid"""
        data = b"\x00" + b"\x01a" * 128 + b"\xc0\x00"

        with pytest.raises(NameTooLong):
            read_name(data, 1)

    def test_offset_past_end(self):
        with pytest.raises(BufferUnderrun):
            read_name(b"\x03www", 10)

    def test_truncated_label(self):
        with pytest.raises(BufferUnderrun):
            read_name(b"\x05ab", 0)

    def test_missing_terminator(self):
        with pytest.raises(BufferUnderrun):
            read_name(b"\x03www", 0)

    def test_truncated_pointer(self):
        with pytest.raises(BufferUnderrun):
            read_name(b"\x03www\xc0", 0)

    def test_reserved_label_type(self):
        """0x40 and 0x80 length prefixes are not valid labels"""
        with pytest.raises(LabelTooLong):
            read_name(b"\x40" + b"x" * 64 + b"\x00", 0)
