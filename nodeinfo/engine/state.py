# nodeinfo/engine/state.py
from dataclasses import dataclass, field
from typing import Dict, Optional, Set

from nodeinfo.schemas import SEND_ORDER, DecodedResult, QueryType


@dataclass
class ProbeState:
    target: str
    source: Optional[str] = None
    # query types still waiting for an answer
    pending: Set[QueryType] = field(default_factory=lambda: set(SEND_ORDER))
    results: Dict[QueryType, DecodedResult] = field(default_factory=dict)
    queries_sent: int = 0
    packets_seen: int = 0
    stop_reason: Optional[str] = None

    def record(self, qtype: QueryType, result: DecodedResult) -> bool:
        """Keep the first answer per query type. Returns True if recorded."""
        if qtype not in self.pending:
            return False
        self.results[qtype] = result
        self.pending.discard(qtype)
        return True

    @property
    def done(self) -> bool:
        return not self.pending

    def summary(self) -> dict:
        return {
            "target": self.target,
            "source": self.source,
            "queries_sent": self.queries_sent,
            "packets_seen": self.packets_seen,
            "answered": sorted(q.name for q in self.results),
            "unanswered": sorted(q.name for q in self.pending),
            "stop_reason": self.stop_reason,
        }
