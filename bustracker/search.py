# bustracker/search.py
from typing import Iterable, List

ACTIVE = "active"


def _matches(query: str, value) -> bool:
    return query in (value or "").casefold()


def search_routes(source_query: str, destination_query: str, fleet: Iterable) -> List:
    """
    Active buses whose source contains ``source_query`` and destination
    contains ``destination_query`` (case-insensitive), shortest ETA first.

    Ties keep the order of ``fleet``. No match gives an empty list.
    """
    src = source_query.strip().casefold()
    dst = destination_query.strip().casefold()
    results = [
        bus for bus in fleet
        if bus.status == ACTIVE and _matches(src, bus.source) and _matches(dst, bus.destination)
    ]
    # sorted() is stable, so equal ETAs stay in storage order
    return sorted(results, key=lambda b: b.estimated_time)
