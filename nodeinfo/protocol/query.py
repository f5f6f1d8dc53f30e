# nodeinfo/protocol/query.py
import ipaddress
import random
import struct
from typing import Optional, Union

from nodeinfo.schemas import (
    ICMPV6_NI_QUERY,
    NEXT_HEADER_ICMPV6,
    NI_QUERY_CODE_IPV6_SUBJECT,
    QUERY_FLAGS,
    Query,
    QueryType,
)

IPV6_VERSION = 6
NONCE_LEN = 8

Address = Union[bytes, str, ipaddress.IPv6Address]


class InvalidQueryType(ValueError):
    """Raised when asked to build a query for a type we never send."""


def new_nonce() -> bytes:
    return random.getrandbits(NONCE_LEN * 8).to_bytes(NONCE_LEN, "big")


def pack_address(addr: Address) -> bytes:
    """Return the 16-byte packed form of an IPv6 address (bytes or text)."""
    if isinstance(addr, (bytes, bytearray)):
        if len(addr) != 16:
            raise ValueError(f"IPv6 address must be 16 bytes, got {len(addr)}")
        return bytes(addr)
    return ipaddress.IPv6Address(addr).packed


def make_query(dest_addr: Address, qtype, nonce: Optional[bytes] = None) -> Query:
    try:
        qtype = QueryType(qtype)
    except ValueError:
        raise InvalidQueryType(f"cannot build a query for qtype {qtype!r}") from None
    if qtype not in QUERY_FLAGS:
        raise InvalidQueryType(f"cannot build a query for qtype {qtype.name}")
    if nonce is None:
        nonce = new_nonce()
    if len(nonce) != NONCE_LEN:
        raise ValueError(f"nonce must be {NONCE_LEN} bytes, got {len(nonce)}")
    return Query(qtype=qtype, nonce=bytes(nonce), subject=pack_address(dest_addr))


def query_payload(query: Query) -> bytes:
    """qtype | flags | nonce | subject, the part after the ICMPv6 header."""
    return struct.pack("!HH", query.qtype, query.flags) + query.nonce + query.subject


def icmpv6_message(query: Query) -> bytes:
    # checksum left zero; the transport fills it using the pseudo-header
    header = struct.pack("!BBH", ICMPV6_NI_QUERY, NI_QUERY_CODE_IPV6_SUBJECT, 0)
    return header + query_payload(query)


def ipv6_datagram(source: bytes, dest: bytes, payload: bytes, hop_limit: int = 64) -> bytes:
    first_word = IPV6_VERSION << 28  # traffic class and flow label are zero
    header = struct.pack("!IHBB", first_word, len(payload), NEXT_HEADER_ICMPV6, hop_limit)
    return header + source + dest + payload


def build_query(source_addr: Address, dest_addr: Address, qtype,
                nonce: Optional[bytes] = None, hop_limit: int = 64) -> bytes:
    """
    Serialize a Node Information query for ``qtype`` as an IPv6 datagram.

    The subject of the query is the destination itself ("tell me about
    yourself"). A fresh nonce is drawn unless one is given.
    """
    source = pack_address(source_addr)
    query = make_query(dest_addr, qtype, nonce)
    return ipv6_datagram(source, query.subject, icmpv6_message(query), hop_limit)
