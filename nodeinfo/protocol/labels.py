# nodeinfo/protocol/labels.py
from typing import Optional, Tuple

import dns.exception
import dns.name


def decode_label(buffer: bytes, offset: int) -> Optional[Tuple[int, str]]:
    """
    Decode one length-prefixed DNS name starting at ``offset``.

    Returns ``(next_offset, name)`` with the name in dotted form and no
    trailing dot; the root name (a bare terminator) decodes to "". IDNA
    ("xn--") labels come back as unicode, other non-printable bytes stay
    escaped as ``\\DDD``. Returns None if the bytes at ``offset`` are not a
    well-formed name.
    """
    try:
        name, used = dns.name.from_wire(buffer, offset)
        if name == dns.name.root:
            return offset + used, ""
        return offset + used, name.to_unicode(omit_final_dot=True)
    except dns.exception.DNSException:
        return None
