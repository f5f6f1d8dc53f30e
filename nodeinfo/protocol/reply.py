# nodeinfo/protocol/reply.py
"""
Decoding of ICMPv6 Node Information replies (RFC 4620).

A reply carries the qtype and flags of the query it answers, the echoed
nonce, and a data region whose layout depends on the qtype. The echoed nonce
is skipped and never compared with the one that was sent.
"""
import ipaddress
import logging
import re
import struct
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from nodeinfo.protocol.labels import decode_label
from nodeinfo.schemas import (
    FLAG_TRUNCATED,
    ICMPV6_NI_REPLY,
    MORE_OMITTED,
    PARSING_ERROR,
    DecodedResult,
    QueryType,
    ReplyCode,
)

logger = logging.getLogger(__name__)

NI_HEADER_LEN = 16   # type, code, cksum, qtype, flags, nonce
TTL_LEN = 4

_HOSTNAME_RE = re.compile(r"^[\w-]+(\.[\w-]+)*$")


class NameParse(NamedTuple):
    names: List[str]
    clean: bool      # False if a name failed to decode (or no room for the TTL)


def parse_names(data: bytes) -> NameParse:
    """TTL followed by DNS names until the data runs out. Empty names are dropped."""
    if len(data) < TTL_LEN:
        return NameParse([], False)
    names = []
    offset = TTL_LEN
    while offset < len(data):
        decoded = decode_label(data, offset)
        if decoded is None:
            return NameParse(names, False)
        offset, name = decoded
        if name:
            names.append(name)
    return NameParse(names, True)


def parse_addresses(flags: int, data: bytes, addr_len: int) -> List[str]:
    """Repeated (TTL, address) records; a short trailing record ends the list."""
    record_len = TTL_LEN + addr_len
    addresses = []
    for offset in range(0, len(data) - record_len + 1, record_len):
        packed = data[offset + TTL_LEN:offset + record_len]
        addresses.append(str(ipaddress.ip_address(packed)))
    if addresses and flags & FLAG_TRUNCATED:
        addresses.append(MORE_OMITTED)
    return addresses


def decode_noop(flags: int, data: bytes) -> Optional[DecodedResult]:
    return "replied"


def decode_node_name(flags: int, data: bytes) -> Optional[DecodedResult]:
    parsed = parse_names(data)
    if not parsed.names:
        return None
    names = list(parsed.names)
    if not parsed.clean:
        names.append(PARSING_ERROR)
    return names


def decode_node_addresses(flags: int, data: bytes) -> Optional[DecodedResult]:
    return parse_addresses(flags, data, 16) or None


def _looks_like_hostnames(names: List[str]) -> bool:
    return all(_HOSTNAME_RE.match(name) for name in names)


def decode_node_ipv4_addresses(flags: int, data: bytes) -> Optional[DecodedResult]:
    """
    Some systems answer an IPv4 addresses query with their DNS names, laid out
    like a Node Name reply minus the two trailing empty labels. Whether the
    data holds names or addresses is guessed, not signalled: if the data
    (with the terminators put back) parses cleanly as hostnames they win,
    otherwise it is read as (TTL, IPv4 address) records. A real address list
    that happens to parse as hostnames will be misread.
    """
    as_names = parse_names(data + b"\x00\x00")
    if as_names.clean and _looks_like_hostnames(as_names.names):
        logger.debug("IPv4 addresses reply holds %d DNS name(s)", len(as_names.names))
        return as_names.names
    return parse_addresses(flags, data, 4) or None


DECODERS: Dict[QueryType, Callable[[int, bytes], Optional[DecodedResult]]] = {
    QueryType.NOOP: decode_noop,
    QueryType.NODE_NAME: decode_node_name,
    QueryType.NODE_ADDRESSES: decode_node_addresses,
    QueryType.NODE_IPV4_ADDRESSES: decode_node_ipv4_addresses,
}


def decode(message: bytes) -> Optional[Tuple[QueryType, DecodedResult]]:
    """
    Decode a received ICMPv6 message.

    Returns ``(qtype, result)`` for a Node Information reply we know how to
    read, None for anything else (other ICMPv6 types, unknown qtypes, or a
    successful reply with nothing usable in it).
    """
    if len(message) < NI_HEADER_LEN or message[0] != ICMPV6_NI_REPLY:
        return None
    code = message[1]
    raw_qtype, flags = struct.unpack_from("!HH", message, 4)
    data = message[NI_HEADER_LEN:]

    try:
        qtype = QueryType(raw_qtype)
    except ValueError:
        logger.debug("Don't know how to decode qtype %d", raw_qtype)
        return None

    if code == ReplyCode.SUCCESS:
        result = DECODERS[qtype](flags, data)
        if result is None:
            return None
    elif code == ReplyCode.REFUSED:
        result = "refused"
    elif code == ReplyCode.UNKNOWN_QTYPE:
        result = f"target said qtype {raw_qtype} is unknown"
    else:
        result = f"unknown ICMPv6 code {code} for qtype {raw_qtype}"
    return qtype, result
