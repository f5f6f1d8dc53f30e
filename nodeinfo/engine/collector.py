# nodeinfo/engine/collector.py

import logging
import time
from typing import Optional

from nodeinfo.engine.state import ProbeState
from nodeinfo.protocol.query import build_query
from nodeinfo.protocol.reply import decode
from nodeinfo.schemas import SEND_ORDER

logger = logging.getLogger(__name__)


class NodeInfoCollector:
    def __init__(self, transport, settings, clock=time.monotonic):
        self.transport = transport
        self.s = settings
        self.clock = clock

    def run(self, target: str, source: Optional[str] = None) -> ProbeState:
        source = source or self.s.source or self.transport.source_for(target)
        state = ProbeState(target=target, source=source)
        logger.info("Node Information probe of %s from %s", target, source)

        capture = self.transport.listen(target)
        try:
            # -------------------------------
            # 1) Fire all queries, no retries
            # -------------------------------
            for qtype in SEND_ORDER:
                datagram = build_query(source, target, qtype, hop_limit=self.s.hop_limit)
                self.transport.send(datagram, target)
                state.queries_sent += 1

            # -------------------------------
            # 2) Collect replies until answered or out of time
            # -------------------------------
            deadline = self.clock() + self.s.wait_s
            while not state.done:
                remaining = deadline - self.clock()
                if remaining <= 0:
                    break
                message = capture.receive(remaining)
                if message is None:
                    continue
                state.packets_seen += 1

                decoded = decode(message)
                if decoded is None:
                    continue
                qtype, result = decoded
                if state.record(qtype, result):
                    logger.debug("%s answered %s: %s", target, qtype.name, result)
        finally:
            capture.close()

        state.stop_reason = "all_answered" if state.done else "deadline"
        logger.info(
            "Probe of %s finished (%s): %d of %d answered",
            target, state.stop_reason, len(state.results), state.queries_sent,
        )
        return state
