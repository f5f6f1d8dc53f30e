# nodeinfo/engine/formatter.py
from typing import Dict, Mapping, Optional

from nodeinfo.schemas import RESULT_LABELS, DecodedResult, QueryType


def format_results(results: Mapping[QueryType, DecodedResult]) -> Optional[Dict[str, DecodedResult]]:
    """
    Labeled results in the order Hostnames, IPv6 addresses, IPv4 addresses.
    Types without a result are left out; an empty table gives None.
    """
    if not results:
        return None
    output = {}
    for qtype, label in RESULT_LABELS.items():
        if qtype in results:
            output[label] = results[qtype]
    return output or None
