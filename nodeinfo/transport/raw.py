# nodeinfo/transport/raw.py
import logging
import queue
import struct
import threading
from typing import Optional

from scapy.all import IPv6, AsyncSniffer, Ether, conf, send, sendp
from scapy.layers.inet6 import in6_chksum

from nodeinfo.schemas import NEXT_HEADER_ICMPV6
from nodeinfo.transport.base import Capture, Transport

logger = logging.getLogger(__name__)

# Suppress scapy's verbose output
conf.verb = 0

IPV6_HEADER_LEN = 40
CHECKSUM_OFFSET = IPV6_HEADER_LEN + 2
START_TIMEOUT_S = 5.0


class SnifferCapture(Capture):
    """
    Background sniffer on one peer address. Packets are queued as they
    arrive so nothing is missed between receive() calls. The constructor
    returns only once the capture socket is open.
    """

    def __init__(self, peer: str, iface: Optional[str] = None, start_timeout: float = START_TIMEOUT_S):
        self.peer = peer
        self.packets = queue.Queue()
        self.started = threading.Event()
        self.sniffer = AsyncSniffer(
            iface=iface,
            filter=f"ip6 and src host {peer}",
            prn=self.packets.put,
            store=False,
            started_callback=self.started.set,
        )
        self.sniffer.start()
        if not self.started.wait(start_timeout):
            self.close()
            raise OSError(f"capture on {iface or 'default interface'} did not start")

    def receive(self, timeout: float) -> Optional[bytes]:
        try:
            pkt = self.packets.get(timeout=max(0.0, timeout))
        except queue.Empty:
            return None
        if IPv6 not in pkt or pkt[IPv6].nh != NEXT_HEADER_ICMPV6:
            return None
        return bytes(pkt[IPv6].payload)

    def close(self) -> None:
        if self.sniffer.running:
            self.sniffer.stop()


class RawTransport(Transport):
    """
    Sends and captures raw IPv6 through scapy. Needs root (or CAP_NET_RAW).

    With an explicit ``iface`` queries go out at layer 2 on that interface
    (needed for link-local targets); otherwise scapy's IPv6 routing picks it.
    """

    def __init__(self, iface: Optional[str] = None):
        self.iface = iface
        self.capture_iface = iface

    def source_for(self, dest: str) -> str:
        iface, source, _nexthop = conf.route6.route(dest)
        if self.capture_iface is None:
            self.capture_iface = iface
        return source

    def listen(self, peer: str) -> SnifferCapture:
        return SnifferCapture(peer, iface=self.capture_iface)

    def send(self, datagram: bytes, destination: str) -> None:
        packet = IPv6(datagram)
        cksum = in6_chksum(NEXT_HEADER_ICMPV6, packet, datagram[IPV6_HEADER_LEN:])
        datagram = datagram[:CHECKSUM_OFFSET] + struct.pack("!H", cksum) + datagram[CHECKSUM_OFFSET + 2:]
        logger.debug("Sending %d bytes to %s via %s", len(datagram), destination, self.iface or "route")
        if self.iface:
            sendp(Ether() / IPv6(datagram), iface=self.iface, verbose=0)
        else:
            send(IPv6(datagram), verbose=0)
