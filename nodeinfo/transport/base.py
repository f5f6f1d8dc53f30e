# nodeinfo/transport/base.py
from abc import ABC, abstractmethod
from typing import Optional


class Capture(ABC):
    """A listening handle on the traffic coming back from one target."""

    @abstractmethod
    def receive(self, timeout: float) -> Optional[bytes]:
        """Wait up to ``timeout`` seconds for one packet; return its ICMPv6 message bytes or None."""
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError


class Transport(ABC):
    @abstractmethod
    def source_for(self, dest: str) -> str:
        """Local IPv6 address that traffic to ``dest`` leaves from."""
        raise NotImplementedError

    @abstractmethod
    def listen(self, peer: str) -> Capture:
        """Start capturing IPv6 packets sent by ``peer``."""
        raise NotImplementedError

    @abstractmethod
    def send(self, datagram: bytes, destination: str) -> None:
        """Send a complete IPv6 datagram whose ICMPv6 checksum is still zero."""
        raise NotImplementedError
