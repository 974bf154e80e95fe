"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ride_lifecycle.config import settings


# ── Requests ──────────────────────────────────────────────────────────


class RideCreateRequest(BaseModel):
    member_id: int
    scheduled_pickup_time: datetime
    pickup_address: dict = Field(default_factory=dict)
    dropoff_address: dict = Field(default_factory=dict)
    round_trip: bool = Field(
        False, description="Ride continues into its own return leg after completion."
    )
    notes: Optional[str] = Field(None, max_length=2000)
    payment_method: Optional[str] = Field(None, max_length=32)
    recurring: Optional[str] = Field(None, max_length=32)


class _Versioned(BaseModel):
    expected_updated_at: Optional[datetime] = Field(
        None,
        description="The ``updated_at`` of the caller's copy; stale copies get 409.",
    )


class TransitionRequest(_Versioned):
    status: str
    mileage: Optional[float] = None


class MileageEditRequest(_Versioned):
    step: str = Field(..., description="Capture step, e.g. ``picked_up``.")
    value: float


class DriverAssignmentRequest(_Versioned):
    driver_id: Optional[int] = Field(None, description="``null`` unassigns.")


class ReturnRideRequest(_Versioned):
    scheduled_pickup_time: datetime


# ── Responses ─────────────────────────────────────────────────────────


class RideResponse(BaseModel):
    id: int
    member_id: int
    driver_id: Optional[int] = None
    trip_id: Optional[str] = None
    is_return_trip: bool
    round_trip: bool
    pickup_address: dict
    dropoff_address: dict
    scheduled_pickup_time: datetime
    status: str
    notes: Optional[str] = None
    payment_method: Optional[str] = None
    payment_status: str
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

    outbound_miles: Optional[float] = None
    return_miles: Optional[float] = None
    total_miles: Optional[float] = None
    ready_by: Optional[datetime] = Field(
        None, description="When the member should be ready; pickup minus the lead time."
    )

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("status", "payment_status", mode="before")
    @classmethod
    def _enum_value(cls, value):
        return getattr(value, "value", value)


class RideBoardResponse(BaseModel):
    reference_date: date
    active: list[RideResponse]
    upcoming: list[RideResponse]
    completed: list[RideResponse]
    todays: list[RideResponse]
    uncategorized: list[RideResponse]
    counts: dict[str, int]


class AssignmentBoardResponse(BaseModel):
    assigned: list[RideResponse]
    unassigned: list[RideResponse]


class TripAnomalyResponse(BaseModel):
    trip_id: str
    ride_ids: list[Optional[int]]
    reason: str


class DriverDaySummaryResponse(BaseModel):
    driver_id: int
    day: date
    scheduled: int
    finished: int
    total_miles: float
    hours_worked: float

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
    kind: str
    ride_id: Optional[int] = None
    attempted_status: Optional[str] = None
    current_status: Optional[str] = None


def ride_out(ride) -> RideResponse:
    return RideResponse.model_validate(
        {
            **vars(ride),
            "outbound_miles": ride.outbound_miles,
            "return_miles": ride.return_miles,
            "total_miles": ride.total_miles,
            "ready_by": ride.ready_by(settings.ready_lead),
        }
    )


def rides_out(rides) -> list[RideResponse]:
    return [ride_out(r) for r in rides]
