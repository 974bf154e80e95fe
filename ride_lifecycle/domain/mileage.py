"""
Mileage Ledger
==============

Odometer readings are captured by forward transitions (see
``transitions``) and corrected here, one field at a time, without touching
status or timestamps.

Ordering rule
-------------
Readings are non-decreasing in capture order::

    start <= pickup <= end <= return_start <= return_pickup <= return_end

Only *live* readings (steps the ride has reached) take part in the check;
values left on later steps by a history-retaining rollback are ignored.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

from .entities import Ride, next_version, utcnow
from .enums import CAPTURE_FIELDS, CAPTURE_STEPS, RideStatus
from .errors import InvalidMileage


def parse_reading(value, *, ride_id: Optional[int] = None, step=None) -> float:
    """Coerce *value* to a finite, non-negative float or raise ``InvalidMileage``."""
    if value is None or isinstance(value, bool):
        raise InvalidMileage(
            f"A numeric odometer reading is required, got {value!r}",
            ride_id=ride_id,
            attempted_status=step,
        )
    try:
        reading = float(value)
    except (TypeError, ValueError):
        raise InvalidMileage(
            f"Odometer reading {value!r} is not a number",
            ride_id=ride_id,
            attempted_status=step,
        ) from None
    if not math.isfinite(reading) or reading < 0:
        raise InvalidMileage(
            f"Odometer reading must be finite and non-negative, got {value!r}",
            ride_id=ride_id,
            attempted_status=step,
        )
    return reading


def mileage_floor(ride: Ride, step: RideStatus) -> Optional[float]:
    """Highest live reading recorded at or before *step*."""
    order = CAPTURE_STEPS.index(step)
    values = [
        v
        for s, v in ride.readings(live_only=True).items()
        if CAPTURE_STEPS.index(s) <= order
    ]
    return max(values) if values else None


def _bounds(ride: Ride, step: RideStatus) -> tuple[Optional[float], Optional[float]]:
    order = CAPTURE_STEPS.index(step)
    lower: Optional[float] = None
    upper: Optional[float] = None
    for s, v in ride.readings(live_only=True).items():
        i = CAPTURE_STEPS.index(s)
        if i < order:
            lower = v if lower is None else max(lower, v)
        elif i > order:
            upper = v if upper is None else min(upper, v)
    return lower, upper


def edit_mileage(
    ride: Ride,
    step,
    value,
    *,
    now: Optional[datetime] = None,
) -> Ride:
    """Return a copy of *ride* with the reading for *step* corrected."""
    leg_step = RideStatus.parse(step)
    if leg_step not in CAPTURE_FIELDS or leg_step not in ride.lifecycle:
        raise InvalidMileage(
            f"{step!r} is not a mileage step of this ride",
            ride_id=ride.id,
            attempted_status=step,
            current_status=ride.status,
        )
    if not ride.has_reached(leg_step):
        raise InvalidMileage(
            f"Ride has not reached {leg_step.value}; nothing to correct",
            ride_id=ride.id,
            attempted_status=leg_step,
            current_status=ride.status,
        )

    reading = parse_reading(value, ride_id=ride.id, step=leg_step)
    lower, upper = _bounds(ride, leg_step)
    if (lower is not None and reading < lower) or (
        upper is not None and reading > upper
    ):
        raise InvalidMileage(
            f"Reading {reading:g} for {leg_step.value} must lie between "
            f"{lower if lower is not None else '-'} and "
            f"{upper if upper is not None else '-'}",
            ride_id=ride.id,
            attempted_status=leg_step,
            current_status=ride.status,
        )

    miles_field, _ = CAPTURE_FIELDS[leg_step]
    return replace(
        ride,
        **{miles_field: reading},
        updated_at=next_version(ride.updated_at, now or utcnow()),
    )


@dataclass
class MileageDraft:
    """Corrections staged against a snapshot, written only on explicit save.

    Each staged value is validated on its own against the snapshot when it
    is staged, and again, in staging order, when the draft is saved.
    """

    ride: Ride
    staged: dict[RideStatus, float] = field(default_factory=dict)

    @property
    def ride_id(self) -> Optional[int]:
        return self.ride.id

    @property
    def base_version(self) -> Optional[datetime]:
        return self.ride.updated_at

    def stage(self, step, value) -> float:
        preview = edit_mileage(self.ride, step, value)
        leg_step = RideStatus(step)
        miles_field, _ = CAPTURE_FIELDS[leg_step]
        self.staged[leg_step] = getattr(preview, miles_field)
        return self.staged[leg_step]

    def discard(self, step) -> None:
        leg_step = RideStatus.parse(step)
        if leg_step is not None:
            self.staged.pop(leg_step, None)

    @property
    def is_empty(self) -> bool:
        return not self.staged

    def apply(self, ride: Ride, *, now: Optional[datetime] = None) -> Ride:
        """Apply every staged edit to *ride*, one field at a time."""
        for step, value in self.staged.items():
            ride = edit_mileage(ride, step, value, now=now)
        return ride
