from dataclasses import dataclass
from typing import Optional

@dataclass
class Settings:
    per_host_timeout: float = 1.0      # seconds
    timeout_multiplier: int = 10       # total wait = per_host_timeout * multiplier
    iface: Optional[str] = None        # None -> let the IPv6 routing table pick
    source: Optional[str] = None       # local IPv6 address; None -> route lookup
    hop_limit: int = 64

    @property
    def wait_s(self) -> float:
        return self.per_host_timeout * self.timeout_multiplier
