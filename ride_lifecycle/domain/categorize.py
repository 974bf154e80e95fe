"""
Ride Categorizer
================

Pure mapping from a ride set to display buckets, shared by every dashboard:

* ``active``    -- started / picked_up / return_started / return_picked_up
* ``upcoming``  -- pending / assigned / return_pending
* ``completed`` -- completed / return_completed
* ``todays``    -- scheduled pickup on the reference calendar day

The first three are disjoint and exhaustive over ``RideStatus``; anything
else lands in ``uncategorized`` so corrupt rows stay visible.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Iterable, Optional

from .enums import (
    ACTIVE_STATUSES,
    COMPLETED_STATUSES,
    IN_PROGRESS,
    UPCOMING_STATUSES,
    RideStatus,
)

logger = logging.getLogger(__name__)


@dataclass
class RideBuckets:
    active: list = field(default_factory=list)
    upcoming: list = field(default_factory=list)
    completed: list = field(default_factory=list)
    todays: list = field(default_factory=list)
    uncategorized: list = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "active": len(self.active),
            "upcoming": len(self.upcoming),
            "completed": len(self.completed),
            "todays": len(self.todays),
            "uncategorized": len(self.uncategorized),
        }


def status_class(status) -> Optional[str]:
    """Bucket name for *status*, or ``None`` if it is not a known status."""
    if status == IN_PROGRESS:
        return "active"
    known = RideStatus.parse(status)
    if known in ACTIVE_STATUSES:
        return "active"
    if known in UPCOMING_STATUSES:
        return "upcoming"
    if known in COMPLETED_STATUSES:
        return "completed"
    return None


def local_day(moment: Optional[datetime], tz: tzinfo = timezone.utc) -> Optional[date]:
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).date()


def categorize(
    rides: Iterable[Any],
    reference_date,
    tz: tzinfo = timezone.utc,
) -> RideBuckets:
    """Sort *rides* into buckets relative to *reference_date*.

    *reference_date* may be a ``date`` or a ``datetime``; datetimes are
    converted to *tz* before their calendar day is taken.
    """
    if isinstance(reference_date, datetime):
        day = local_day(reference_date, tz)
    else:
        day = reference_date

    buckets = RideBuckets()
    for ride in rides:
        bucket = status_class(ride.status)
        if bucket is None:
            buckets.uncategorized.append(ride)
        else:
            getattr(buckets, bucket).append(ride)
        if local_day(ride.scheduled_pickup_time, tz) == day:
            buckets.todays.append(ride)

    if buckets.uncategorized:
        logger.warning(
            "%d ride(s) with unrecognised status: %s",
            len(buckets.uncategorized),
            sorted({str(r.status) for r in buckets.uncategorized}),
        )
    return buckets
