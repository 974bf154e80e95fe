"""Domain enumerations, leg ordering and per-step field tables."""

from __future__ import annotations

import enum
from typing import Optional


class RideStatus(str, enum.Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    STARTED = "started"
    PICKED_UP = "picked_up"
    COMPLETED = "completed"
    RETURN_PENDING = "return_pending"
    RETURN_STARTED = "return_started"
    RETURN_PICKED_UP = "return_picked_up"
    RETURN_COMPLETED = "return_completed"

    @classmethod
    def parse(cls, value) -> Optional["RideStatus"]:
        """Return the member for *value*, or ``None`` for unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


# Ordered legs. A ride moves along exactly one of the lifecycles below.
OUTBOUND_LEG: tuple[RideStatus, ...] = (
    RideStatus.PENDING,
    RideStatus.ASSIGNED,
    RideStatus.STARTED,
    RideStatus.PICKED_UP,
    RideStatus.COMPLETED,
)
RETURN_LEG: tuple[RideStatus, ...] = (
    RideStatus.RETURN_PENDING,
    RideStatus.RETURN_STARTED,
    RideStatus.RETURN_PICKED_UP,
    RideStatus.RETURN_COMPLETED,
)
ROUND_TRIP: tuple[RideStatus, ...] = OUTBOUND_LEG + RETURN_LEG


# Capture steps in odometer order: step -> (mileage field, timestamp field)
CAPTURE_FIELDS: dict[RideStatus, tuple[str, str]] = {
    RideStatus.STARTED: ("start_miles", "start_time"),
    RideStatus.PICKED_UP: ("pickup_miles", "pickup_time"),
    RideStatus.COMPLETED: ("end_miles", "end_time"),
    RideStatus.RETURN_STARTED: ("return_start_miles", "return_start_time"),
    RideStatus.RETURN_PICKED_UP: ("return_pickup_miles", "return_pickup_time"),
    RideStatus.RETURN_COMPLETED: ("return_end_miles", "return_end_time"),
}
CAPTURE_STEPS: tuple[RideStatus, ...] = tuple(CAPTURE_FIELDS)


# Display classes. "in_progress" is a synonym for the active class only.
IN_PROGRESS = "in_progress"
ACTIVE_STATUSES = frozenset(
    {
        RideStatus.STARTED,
        RideStatus.PICKED_UP,
        RideStatus.RETURN_STARTED,
        RideStatus.RETURN_PICKED_UP,
    }
)
UPCOMING_STATUSES = frozenset(
    {RideStatus.PENDING, RideStatus.ASSIGNED, RideStatus.RETURN_PENDING}
)
COMPLETED_STATUSES = frozenset(
    {RideStatus.COMPLETED, RideStatus.RETURN_COMPLETED}
)


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
