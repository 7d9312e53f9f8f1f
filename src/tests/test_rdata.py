"""
RDATA Tests

Tests for per-type record data parsing and IPv6 canonicalization.
"""

import ipaddress
import struct

import pytest

from doh_relay.core.errors import BufferUnderrun, DNSCodecError
from doh_relay.core.rdata import (
    AAAARecord,
    ARecord,
    CNAMERecord,
    MXRecord,
    NSRecord,
    SRVRecord,
    TXTRecord,
    UnsupportedRecord,
    canonicalize_ipv6,
    parse_rdata,
)


def packed(address: str) -> bytes:
    return ipaddress.IPv6Address(address).packed


class TestCanonicalizeIPv6:
    """Test RFC 5952 formatting"""

    def test_all_zero(self):
        assert canonicalize_ipv6(bytes(16)) == "::"

    def test_documentation_prefix(self):
        assert canonicalize_ipv6(packed("2001:0db8:0000:0000:0000:0000:0000:0001")) == "2001:db8::1"

    def test_single_zero_group_not_elided(self):
        assert canonicalize_ipv6(packed("fe80:0:1:2:3:4:5:6")) == "fe80:0:1:2:3:4:5:6"

    def test_leading_run(self):
        assert canonicalize_ipv6(packed("::1")) == "::1"

    def test_trailing_run(self):
        assert canonicalize_ipv6(packed("fe80::")) == "fe80::"

    def test_longest_run_wins(self):
        assert canonicalize_ipv6(packed("2001:0:0:1:0:0:0:1")) == "2001:0:0:1::1"

    def test_first_run_wins_on_tie(self):
        assert canonicalize_ipv6(packed("2001:db8:0:0:1:0:0:1")) == "2001:db8::1:0:0:1"

    def test_lowercase_without_leading_zeros(self):
        assert canonicalize_ipv6(packed("2001:0DB8:00AB:0CDE:1:2:3:4")) == "2001:db8:ab:cde:1:2:3:4"

    def test_matches_stdlib(self):
        """Agrees with ipaddress, which also follows RFC 5952"""
        for address in ["2606:4700:4700::1111", "2001:db8:0:1:1:1:1:1", "1::", "0:1::"]:
            assert canonicalize_ipv6(packed(address)) == str(ipaddress.IPv6Address(address))

    def test_wrong_length(self):
        with pytest.raises(BufferUnderrun):
            canonicalize_ipv6(b"\x00" * 15)


class TestParseRData:
    """Test per-type RDATA parsing"""

    def test_a(self):
        assert parse_rdata(b"\x5d\xb8\xd8\x22", 0, 1, 4) == ARecord("93.184.216.34")

    def test_a_bad_length(self):
        with pytest.raises(DNSCodecError):
            parse_rdata(b"\x01\x02\x03", 0, 1, 3)

    def test_aaaa(self):
        record = parse_rdata(packed("2001:db8::1"), 0, 28, 16)

        assert record == AAAARecord("2001:db8::1")

    def test_cname_with_pointer(self):
        """Names inside RDATA may point back into the message"""
        message = b"\x07example\x03com\x00" + b"\x03www\xc0\x00"

        assert parse_rdata(message, 13, 5, 6) == CNAMERecord("www.example.com")

    def test_ns(self):
        data = b"\x03ns1\x07example\x03com\x00"

        assert parse_rdata(data, 0, 2, len(data)) == NSRecord("ns1.example.com")

    def test_name_overruns_rdata(self):
        data = b"\x03ns1\x07example\x03com\x00"

        with pytest.raises(BufferUnderrun):
            parse_rdata(data, 0, 2, 5)

    def test_mx(self):
        data = struct.pack("!H", 10) + b"\x04mail\x07example\x03com\x00"

        record = parse_rdata(data, 0, 15, len(data))

        assert record == MXRecord(preference=10, exchange="mail.example.com")
        assert record.to_json() == {"preference": 10, "exchange": "mail.example.com"}

    def test_txt_multiple_strings(self):
        data = b"\x05hello\x06 world"

        record = parse_rdata(data, 0, 16, len(data))

        assert record == TXTRecord(("hello", " world"))
        assert record.to_json() == "hello world"

    def test_txt_overrun(self):
        with pytest.raises(BufferUnderrun):
            parse_rdata(b"\x09short", 0, 16, 6)

    def test_srv(self):
        data = struct.pack("!HHH", 0, 5, 5060) + b"\x03sip\x07example\x03com\x00"

        record = parse_rdata(data, 0, 33, len(data))

        assert record == SRVRecord(priority=0, weight=5, port=5060, target="sip.example.com")
        assert record.to_json() == {
            "priority": 0,
            "weight": 5,
            "port": 5060,
            "target": "sip.example.com",
        }

    def test_unsupported(self):
        record = parse_rdata(b"\xde\xad\xbe\xef", 0, 99, 4)

        assert record == UnsupportedRecord(rtype=99, raw="deadbeef")
        assert record.to_json() == {"unsupported_type": 99, "rdata": "deadbeef"}
