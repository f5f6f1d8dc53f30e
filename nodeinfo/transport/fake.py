# nodeinfo/transport/fake.py
import struct
from collections import deque
from typing import Optional

from nodeinfo.schemas import ICMPV6_NI_REPLY, QueryType, ReplyCode
from nodeinfo.transport.base import Capture, Transport


class FakeClock:
    """Stands in for time.monotonic; only moves when told to."""
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def node_info_reply(qtype, data: bytes = b"", code=ReplyCode.SUCCESS, flags: int = 0,
                    nonce: bytes = b"\x00" * 8) -> bytes:
    """Build the ICMPv6 bytes of a Node Information reply."""
    return struct.pack("!BBHHH", ICMPV6_NI_REPLY, code, 0, qtype, flags) + nonce + data


class FakeCapture(Capture):
    def __init__(self, transport: "FakeTransport", peer: str):
        self.transport = transport
        self.peer = peer
        self.closed = False

    def receive(self, timeout: float) -> Optional[bytes]:
        """
        script entries are either raw bytes (arrive immediately) or
        (delay_s, bytes) pairs. An entry that would arrive after ``timeout``
        stays queued and the clock moves by ``timeout``.
        """
        clock = self.transport.clock
        self.transport.receive_calls += 1
        if not self.transport.script:
            clock.advance(timeout)
            return None
        entry = self.transport.script[0]
        delay, raw = entry if isinstance(entry, tuple) else (0.0, entry)
        if delay > timeout:
            clock.advance(timeout)
            self.transport.script[0] = (delay - timeout, raw)
            return None
        clock.advance(delay)
        self.transport.script.popleft()
        return raw

    def close(self):
        self.closed = True


class FakeTransport(Transport):
    """
    script: list of replies handed out by the capture, in order.
    Sent datagrams are kept in ``sent`` as (datagram, destination).
    """
    def __init__(self, script=None, clock: Optional[FakeClock] = None, source: str = "fe80::1"):
        self.script = deque(script or [])
        self.clock = clock or FakeClock()
        self.source = source
        self.sent = []
        self.captures = []
        self.receive_calls = 0

    def source_for(self, dest: str) -> str:
        return self.source

    def listen(self, peer: str) -> FakeCapture:
        capture = FakeCapture(self, peer)
        self.captures.append(capture)
        return capture

    def send(self, datagram: bytes, destination: str) -> None:
        self.sent.append((datagram, destination))


def scripted_replies():
    """A target that answers every query; used by ``tools/run_probe.py fake``."""
    hostname = b"\x00\x00\x00\x3c" + b"\x04host\x07example\x03com\x00\x00"
    v6 = (b"\x00\x00\x00\x3c" + bytes.fromhex("20010db8000000000000000000000001")
          + b"\x00\x00\x00\x3c" + bytes.fromhex("fe800000000000000000000000000001"))
    v4 = b"\x00\x00\x00\x3c" + bytes([192, 0, 2, 1])
    return [
        (0.01, node_info_reply(QueryType.NODE_ADDRESSES, v6)),
        (0.01, node_info_reply(QueryType.NODE_NAME, hostname)),
        (0.02, node_info_reply(QueryType.NODE_IPV4_ADDRESSES, v4)),
    ]
