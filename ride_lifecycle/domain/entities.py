"""
Canonical ride entity.

One ``Ride`` type is shared by every actor and view.  The entity itself is a
plain record with read-only helpers; the lifecycle rules live in
``transitions``, ``mileage`` and ``assignment``, which never mutate the ride
they are given and return an updated copy instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from .enums import (
    CAPTURE_FIELDS,
    OUTBOUND_LEG,
    RETURN_LEG,
    ROUND_TRIP,
    PaymentStatus,
    RideStatus,
)


@dataclass
class Ride:
    id: Optional[int] = None
    member_id: int = 0
    driver_id: Optional[int] = None
    trip_id: Optional[str] = None
    is_return_trip: bool = False
    round_trip: bool = False
    pickup_address: dict = field(default_factory=dict)
    dropoff_address: dict = field(default_factory=dict)
    scheduled_pickup_time: Optional[datetime] = None
    # Raw string only when loaded from legacy rows with an unknown value
    status: Union[RideStatus, str] = RideStatus.PENDING
    notes: Optional[str] = None
    payment_method: Optional[str] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    recurring: Optional[str] = None

    start_miles: Optional[float] = None
    pickup_miles: Optional[float] = None
    end_miles: Optional[float] = None
    return_start_miles: Optional[float] = None
    return_pickup_miles: Optional[float] = None
    return_end_miles: Optional[float] = None

    start_time: Optional[datetime] = None
    pickup_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    return_start_time: Optional[datetime] = None
    return_pickup_time: Optional[datetime] = None
    return_end_time: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # ── Lifecycle ─────────────────────────────────────────────────

    @property
    def lifecycle(self) -> tuple[RideStatus, ...]:
        """Ordered statuses this ride moves along."""
        if self.is_return_trip:
            return RETURN_LEG
        if self.round_trip:
            return ROUND_TRIP
        return OUTBOUND_LEG

    @property
    def known_status(self) -> Optional[RideStatus]:
        return RideStatus.parse(self.status)

    @property
    def is_finished(self) -> bool:
        return self.known_status == self.lifecycle[-1]

    def has_reached(self, step: RideStatus) -> bool:
        """True if *step* is at or before the current status."""
        current = self.known_status
        path = self.lifecycle
        if current not in path or step not in path:
            return False
        return path.index(step) <= path.index(current)

    # ── Mileage ───────────────────────────────────────────────────

    def readings(self, live_only: bool = False) -> dict[RideStatus, float]:
        """Recorded odometer values keyed by capture step, in odometer order.

        With *live_only*, values left behind on steps after the current
        status (retained rollback history) are excluded.
        """
        out: dict[RideStatus, float] = {}
        for step, (miles_field, _) in CAPTURE_FIELDS.items():
            value = getattr(self, miles_field)
            if value is None:
                continue
            if live_only and not self.has_reached(step):
                continue
            out[step] = value
        return out

    @property
    def outbound_miles(self) -> Optional[float]:
        if self.start_miles is None or self.end_miles is None:
            return None
        return self.end_miles - self.start_miles

    @property
    def return_miles(self) -> Optional[float]:
        if self.return_start_miles is None or self.return_end_miles is None:
            return None
        return self.return_end_miles - self.return_start_miles

    @property
    def total_miles(self) -> Optional[float]:
        values = list(self.readings(live_only=True).values())
        if len(values) < 2:
            return None
        return values[-1] - values[0]

    def ready_by(self, lead: timedelta = timedelta(hours=1)) -> Optional[datetime]:
        """When the member should be ready for pickup."""
        if self.scheduled_pickup_time is None:
            return None
        return self.scheduled_pickup_time - lead


# ── Helpers ───────────────────────────────────────────────────────────


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_version(previous: Optional[datetime], now: datetime) -> datetime:
    """New ``updated_at`` token, strictly later than *previous*."""
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now
