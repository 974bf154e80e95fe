"""Per-driver daily totals shown on the driver dashboard."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timezone, tzinfo
from typing import Iterable

from .categorize import local_day
from .entities import Ride
from .enums import CAPTURE_FIELDS


@dataclass(frozen=True)
class DriverDaySummary:
    driver_id: int
    day: date
    scheduled: int
    finished: int
    total_miles: float
    hours_worked: float


def _leg_times(ride: Ride) -> list:
    return [
        getattr(ride, time_field)
        for _, time_field in CAPTURE_FIELDS.values()
        if getattr(ride, time_field) is not None
    ]


def summarize_driver_day(
    rides: Iterable[Ride],
    driver_id: int,
    day: date,
    tz: tzinfo = timezone.utc,
) -> DriverDaySummary:
    todays = [
        r
        for r in rides
        if r.driver_id == driver_id
        and local_day(r.scheduled_pickup_time, tz) == day
    ]
    finished = [r for r in todays if r.is_finished]

    miles = sum(r.total_miles or 0.0 for r in finished)
    seconds = 0.0
    for ride in finished:
        times = _leg_times(ride)
        if len(times) >= 2:
            seconds += (max(times) - min(times)).total_seconds()

    return DriverDaySummary(
        driver_id=driver_id,
        day=day,
        scheduled=len(todays),
        finished=len(finished),
        total_miles=round(miles, 1),
        hours_worked=round(seconds / 3600, 2),
    )
