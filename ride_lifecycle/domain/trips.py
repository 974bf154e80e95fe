"""
Trip Correlation
================

An outbound ride and its return ride share a ``trip_id`` and differ in
``is_return_trip``.  Nothing in storage enforces that pairing, so groups
are checked here and malformed ones reported as ``TripAnomaly``.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .entities import Ride

logger = logging.getLogger(__name__)

ORPHANED = "orphaned"
OVERSIZED = "oversized"
SAME_DIRECTION = "same_direction"


@dataclass(frozen=True)
class TripPair:
    trip_id: str
    outbound: Ride
    return_ride: Ride


@dataclass(frozen=True)
class TripAnomaly:
    trip_id: str
    ride_ids: tuple
    reason: str


@dataclass
class TripIndex:
    pairs: dict[str, TripPair] = field(default_factory=dict)
    anomalies: list[TripAnomaly] = field(default_factory=list)

    def pair_for(self, ride: Ride) -> Optional[TripPair]:
        if ride.trip_id is None:
            return None
        return self.pairs.get(ride.trip_id)


def find_linked_ride(ride: Ride, all_rides: Iterable[Ride]) -> Optional[Ride]:
    """The other leg of *ride*'s trip, or ``None``."""
    if ride.trip_id is None:
        return None
    matches = [
        other
        for other in all_rides
        if other.trip_id == ride.trip_id
        and other.is_return_trip != ride.is_return_trip
        and (other.id is None or other.id != ride.id)
    ]
    if len(matches) > 1:
        logger.warning(
            "Trip %s has %d candidate %s legs; using ride %s",
            ride.trip_id,
            len(matches),
            "outbound" if ride.is_return_trip else "return",
            matches[0].id,
        )
    return matches[0] if matches else None


def correlate_trips(rides: Iterable[Ride]) -> TripIndex:
    groups: dict[str, list[Ride]] = defaultdict(list)
    for ride in rides:
        if ride.trip_id is not None:
            groups[ride.trip_id].append(ride)

    index = TripIndex()
    for trip_id, members in groups.items():
        ids = tuple(r.id for r in members)
        if len(members) == 1:
            index.anomalies.append(TripAnomaly(trip_id, ids, ORPHANED))
        elif len(members) > 2:
            index.anomalies.append(TripAnomaly(trip_id, ids, OVERSIZED))
        elif members[0].is_return_trip == members[1].is_return_trip:
            index.anomalies.append(TripAnomaly(trip_id, ids, SAME_DIRECTION))
        else:
            outbound, back = sorted(members, key=lambda r: r.is_return_trip)
            index.pairs[trip_id] = TripPair(trip_id, outbound, back)

    if index.anomalies:
        logger.warning("%d malformed trip group(s)", len(index.anomalies))
    return index


_DIGITS = re.compile(r"\D")


def next_trip_id(existing: Iterable[Optional[str]], width: int = 7) -> str:
    """Next sequential trip id: highest numeric part plus one, zero-padded."""
    highest = 0
    for trip_id in existing:
        if not trip_id:
            continue
        digits = _DIGITS.sub("", trip_id)
        if digits:
            highest = max(highest, int(digits))
    return str(highest + 1).zfill(width)
