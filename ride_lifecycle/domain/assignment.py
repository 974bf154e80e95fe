"""Driver assignment rules."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional

from .entities import Ride, next_version, utcnow
from .enums import RideStatus
from .errors import InvalidTransition


def assign_driver(
    ride: Ride,
    driver_id: Optional[int],
    *,
    now: Optional[datetime] = None,
) -> Ride:
    """Attach, replace or clear the driver of a ride that has not started.

    Assigning moves ``pending`` to ``assigned``; clearing moves ``assigned``
    back to ``pending``.  Return-leg rows inherit the outbound driver and
    are never assigned on their own.
    """
    status = ride.known_status
    if ride.is_return_trip or status not in (RideStatus.PENDING, RideStatus.ASSIGNED):
        raise InvalidTransition(
            f"Cannot change the driver of a ride in status {ride.status}",
            ride_id=ride.id,
            attempted_status=RideStatus.PENDING if driver_id is None else RideStatus.ASSIGNED,
            current_status=ride.status,
        )

    if driver_id is None:
        target = RideStatus.PENDING
    else:
        target = RideStatus.ASSIGNED
    return replace(
        ride,
        driver_id=driver_id,
        status=target,
        updated_at=next_version(ride.updated_at, now or utcnow()),
    )


def inherit_driver(return_ride: Ride, driver_id: Optional[int], *, now=None) -> Ride:
    """Copy the outbound driver onto a return row that has not started."""
    if return_ride.known_status != RideStatus.RETURN_PENDING:
        raise InvalidTransition(
            "Return leg already under way; its driver is fixed",
            ride_id=return_ride.id,
            current_status=return_ride.status,
        )
    return replace(
        return_ride,
        driver_id=driver_id,
        updated_at=next_version(return_ride.updated_at, now or utcnow()),
    )


def partition_by_assignment(rides: Iterable) -> tuple[list, list]:
    """Split into ``(assigned, unassigned)`` on whether a driver is attached."""
    assigned, unassigned = [], []
    for ride in rides:
        (unassigned if ride.driver_id is None else assigned).append(ride)
    return assigned, unassigned
