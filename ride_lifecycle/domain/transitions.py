"""
Status Transition Engine
========================

A ride moves along the lifecycle given by ``Ride.lifecycle``::

    pending -> assigned -> started -> picked_up -> completed
        [-> return_pending -> return_started -> return_picked_up -> return_completed]

From its current status a ride may go

* **forward** to the next status,
* **replay** the current status (timestamps already set are kept), or
* **roll back** to any earlier status (operator correction).

Every forward step after ``assigned`` (except ``return_pending``) captures
an odometer reading, which must not be lower than any live reading at or
before that step.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from .entities import Ride, next_version, utcnow
from .enums import CAPTURE_FIELDS, RideStatus
from .errors import InvalidMileage, InvalidTransition, MissingDriver
from .mileage import mileage_floor, parse_reading


def allowed_targets(ride: Ride) -> list[RideStatus]:
    """Statuses reachable from the ride's current status in one call."""
    current = ride.known_status
    path = ride.lifecycle
    if current not in path:
        return []
    return list(path[: path.index(current) + 2])


def apply_transition(
    ride: Ride,
    target,
    mileage=None,
    *,
    now: Optional[datetime] = None,
    clear_history: bool = True,
) -> Ride:
    """Return a copy of *ride* moved to *target*, or raise.

    *clear_history* decides what a rollback does with readings and
    timestamps of the steps after the new status: cleared when true, kept
    as history when false.
    """
    now = now or utcnow()
    new_status = RideStatus.parse(target)
    current = ride.known_status
    path = ride.lifecycle

    if current is None or current not in path:
        raise InvalidTransition(
            f"Ride is in status {ride.status!r}, which is not on its lifecycle",
            ride_id=ride.id,
            attempted_status=target,
            current_status=ride.status,
        )
    if new_status is None or new_status not in path:
        raise InvalidTransition(
            f"Cannot transition from {current.value} to {target!r}",
            ride_id=ride.id,
            attempted_status=target,
            current_status=current,
        )

    here, there = path.index(current), path.index(new_status)
    if there < here:
        return _rollback(ride, new_status, mileage, now, clear_history)
    if there > here + 1:
        raise InvalidTransition(
            f"Cannot transition from {current.value} to {new_status.value}",
            ride_id=ride.id,
            attempted_status=new_status,
            current_status=current,
        )
    return _advance(ride, new_status, mileage, now)


def _advance(ride: Ride, target: RideStatus, mileage, now: datetime) -> Ride:
    if target != RideStatus.PENDING and ride.driver_id is None:
        raise MissingDriver(
            f"Ride needs a driver before it can be {target.value}",
            ride_id=ride.id,
            attempted_status=target,
            current_status=ride.status,
        )

    changes: dict = {"status": target}
    fields = CAPTURE_FIELDS.get(target)
    if fields is None:
        if mileage is not None:
            raise InvalidMileage(
                f"{target.value} does not record an odometer reading",
                ride_id=ride.id,
                attempted_status=target,
                current_status=ride.status,
            )
    else:
        reading = parse_reading(mileage, ride_id=ride.id, step=target)
        floor = mileage_floor(ride, target)
        if floor is not None and reading < floor:
            raise InvalidMileage(
                f"Reading {reading:g} is below the last recorded {floor:g}",
                ride_id=ride.id,
                attempted_status=target,
                current_status=ride.status,
            )
        miles_field, time_field = fields
        changes[miles_field] = reading
        if getattr(ride, time_field) is None:
            changes[time_field] = now

    changes["updated_at"] = next_version(ride.updated_at, now)
    return replace(ride, **changes)


def _rollback(
    ride: Ride,
    target: RideStatus,
    mileage,
    now: datetime,
    clear_history: bool,
) -> Ride:
    if mileage is not None:
        raise InvalidMileage(
            "A rollback does not take an odometer reading",
            ride_id=ride.id,
            attempted_status=target,
            current_status=ride.status,
        )

    changes: dict = {"status": target}
    if clear_history:
        path = ride.lifecycle
        for step in path[path.index(target) + 1 :]:
            if step in CAPTURE_FIELDS:
                miles_field, time_field = CAPTURE_FIELDS[step]
                changes[miles_field] = None
                changes[time_field] = None

    changes["updated_at"] = next_version(ride.updated_at, now)
    return replace(ride, **changes)
