# tests/test_raw_transport_unit.py
import threading

import pytest
from scapy.all import IPv6, Ether
from scapy.layers.inet6 import in6_chksum

from nodeinfo.protocol.query import build_query
from nodeinfo.schemas import QueryType
from nodeinfo.transport import raw
from nodeinfo.transport.raw import RawTransport, SnifferCapture

TARGET = "fe80::2"
SOURCE = "fe80::1"


class SlowSniffer:
    """Opens its socket on a background thread a little after start(), like AsyncSniffer."""
    instances = []

    def __init__(self, started_callback=None, delay=0.05, **kwargs):
        self.kwargs = kwargs
        self.started_callback = started_callback
        self.delay = delay
        self.running = False
        SlowSniffer.instances.append(self)

    def start(self):
        threading.Timer(self.delay, self._open).start()

    def _open(self):
        self.running = True
        self.started_callback()

    def stop(self):
        self.running = False


class DeadSniffer(SlowSniffer):
    def start(self):
        pass


@pytest.fixture
def sent(monkeypatch):
    calls = []
    monkeypatch.setattr(raw, "send", lambda pkt, **kw: calls.append(("send", pkt, kw)))
    monkeypatch.setattr(raw, "sendp", lambda pkt, **kw: calls.append(("sendp", pkt, kw)))
    return calls


def test_capture_ready_before_returning(monkeypatch):
    """listen() must not return until the sniffer socket is open."""
    monkeypatch.setattr(raw, "AsyncSniffer", SlowSniffer)
    capture = SnifferCapture(TARGET, iface="eth0")
    assert capture.started.is_set()
    assert capture.sniffer.running
    assert capture.sniffer.kwargs["filter"] == f"ip6 and src host {TARGET}"
    capture.close()
    assert not capture.sniffer.running


def test_capture_that_never_starts(monkeypatch):
    monkeypatch.setattr(raw, "AsyncSniffer", DeadSniffer)
    with pytest.raises(OSError):
        SnifferCapture(TARGET, iface="eth0", start_timeout=0.05)


def test_send_on_explicit_iface_uses_layer2(sent):
    """Link-local targets need the query to leave on the chosen interface."""
    t = RawTransport(iface="eth0")
    t.send(build_query(SOURCE, TARGET, QueryType.NODE_NAME), TARGET)

    assert len(sent) == 1
    kind, pkt, kw = sent[0]
    assert kind == "sendp"
    assert kw["iface"] == "eth0"
    assert Ether in pkt and IPv6 in pkt
    assert pkt[IPv6].dst == TARGET


def test_send_without_iface_is_routed(sent):
    t = RawTransport()
    t.send(build_query(SOURCE, "2001:db8::1", QueryType.NODE_ADDRESSES), "2001:db8::1")

    kind, pkt, kw = sent[0]
    assert kind == "send"
    assert "iface" not in kw


def test_send_fills_icmpv6_checksum(sent):
    t = RawTransport()
    t.send(build_query(SOURCE, TARGET, QueryType.NODE_IPV4_ADDRESSES), TARGET)

    pkt = sent[0][1]
    icmp = bytes(pkt[IPv6])[40:]
    assert icmp[2:4] != b"\x00\x00"
    # summing over a message that carries its own checksum gives zero
    assert in6_chksum(58, pkt[IPv6], icmp) == 0
