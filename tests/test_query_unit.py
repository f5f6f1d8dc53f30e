# tests/test_query_unit.py
import ipaddress
import struct

import pytest

from nodeinfo.protocol.query import InvalidQueryType, build_query, make_query, pack_address
from nodeinfo.schemas import QueryType

SRC = "fe80::1"
DST = "2001:db8::1"
NONCE = bytes(range(1, 9))


def _icmp_payload(datagram):
    # 40-byte IPv6 header, 4-byte ICMPv6 header
    return datagram[44:]


@pytest.mark.parametrize("qtype, flags", [
    (QueryType.NODE_NAME, 0x0000),
    (QueryType.NODE_ADDRESSES, 0x003E),
    (QueryType.NODE_IPV4_ADDRESSES, 0x0002),
])
def test_payload_starts_with_qtype_and_flags(qtype, flags):
    payload = _icmp_payload(build_query(SRC, DST, qtype))
    assert struct.unpack("!HH", payload[:4]) == (qtype, flags)
    assert len(payload[4:12]) == 8


def test_query_layout():
    """IPv6 header, ICMPv6 type 139 code 0, nonce, then the destination as subject."""
    datagram = build_query(SRC, DST, QueryType.NODE_NAME, nonce=NONCE)
    assert len(datagram) == 40 + 4 + 4 + 8 + 16
    assert datagram[0] >> 4 == 6
    assert struct.unpack("!H", datagram[4:6])[0] == len(datagram) - 40
    assert datagram[6] == 58
    assert datagram[7] == 64
    assert datagram[8:24] == ipaddress.IPv6Address(SRC).packed
    assert datagram[24:40] == ipaddress.IPv6Address(DST).packed
    assert datagram[40:44] == bytes([139, 0, 0, 0])
    payload = _icmp_payload(datagram)
    assert payload[4:12] == NONCE
    assert payload[12:28] == ipaddress.IPv6Address(DST).packed


def test_packed_addresses_accepted():
    src = ipaddress.IPv6Address(SRC).packed
    dst = ipaddress.IPv6Address(DST).packed
    assert build_query(src, dst, QueryType.NODE_ADDRESSES, nonce=NONCE) == \
        build_query(SRC, DST, QueryType.NODE_ADDRESSES, nonce=NONCE)


def test_fresh_nonce_per_query():
    queries = {make_query(DST, QueryType.NODE_NAME).nonce for _ in range(20)}
    assert all(len(n) == 8 for n in queries)
    assert len(queries) > 1


@pytest.mark.parametrize("qtype", [QueryType.NOOP, 1, 5, 99])
def test_invalid_qtype_rejected(qtype):
    with pytest.raises(InvalidQueryType):
        build_query(SRC, DST, qtype)


def test_invalid_qtype_is_value_error():
    with pytest.raises(ValueError):
        build_query(SRC, DST, QueryType.NOOP)


def test_bad_address_length():
    with pytest.raises(ValueError):
        pack_address(b"\x00" * 4)


def test_bad_nonce_length():
    with pytest.raises(ValueError):
        make_query(DST, QueryType.NODE_NAME, nonce=b"\x00" * 4)
