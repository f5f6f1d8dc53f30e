# nodeinfo/schemas.py
from dataclasses import dataclass
from enum import IntEnum
from typing import List, Union

ICMPV6_NI_QUERY = 139
ICMPV6_NI_REPLY = 140
NI_QUERY_CODE_IPV6_SUBJECT = 0
NEXT_HEADER_ICMPV6 = 58


class QueryType(IntEnum):
    NOOP = 0
    NODE_NAME = 2
    NODE_ADDRESSES = 3
    NODE_IPV4_ADDRESSES = 4


class ReplyCode(IntEnum):
    SUCCESS = 0
    REFUSED = 1
    UNKNOWN_QTYPE = 2


# RFC 4620 flag bits
FLAG_TRUNCATED = 0x0001
FLAG_A = 0x0002
FLAG_C = 0x0004
FLAG_L = 0x0008
FLAG_S = 0x0010
FLAG_G = 0x0020

QUERY_FLAGS = {
    QueryType.NODE_NAME: 0x0000,
    QueryType.NODE_ADDRESSES: FLAG_G | FLAG_S | FLAG_L | FLAG_C | FLAG_A,
    QueryType.NODE_IPV4_ADDRESSES: FLAG_A,
}

# the order queries go out in; has no effect on what comes back
SEND_ORDER = (
    QueryType.NODE_ADDRESSES,
    QueryType.NODE_NAME,
    QueryType.NODE_IPV4_ADDRESSES,
)

# canonical output order and labels
RESULT_LABELS = {
    QueryType.NODE_NAME: "Hostnames",
    QueryType.NODE_ADDRESSES: "IPv6 addresses",
    QueryType.NODE_IPV4_ADDRESSES: "IPv4 addresses",
}

PARSING_ERROR = "(parsing error)"
MORE_OMITTED = "(more omitted for space reasons)"

# list of names/addresses (maybe ending in a sentinel) or a status string
DecodedResult = Union[List[str], str]


@dataclass(frozen=True)
class Query:
    qtype: QueryType
    nonce: bytes       # 8 opaque bytes
    subject: bytes     # packed 16-byte IPv6 address being asked about

    @property
    def flags(self) -> int:
        return QUERY_FLAGS[self.qtype]
