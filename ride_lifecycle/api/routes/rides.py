"""
Ride endpoints
==============

POST  /api/v1/rides                       -- create a ride (status pending)
GET   /api/v1/rides/board                 -- active / upcoming / completed / today
GET   /api/v1/rides/{ride_id}             -- one ride
POST  /api/v1/rides/{ride_id}/transitions -- forward, replay or rollback
PATCH /api/v1/rides/{ride_id}/mileage     -- correct one odometer reading
PUT   /api/v1/rides/{ride_id}/driver      -- assign / unassign a driver
POST  /api/v1/rides/{ride_id}/return      -- schedule the linked return ride
GET   /api/v1/rides/{ride_id}/linked      -- the other leg of the trip

Domain errors are mapped to HTTP statuses in ``ride_lifecycle.api.app``.
"""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Request

from ride_lifecycle.api.dependencies import get_ride_service
from ride_lifecycle.api.middleware import limiter
from ride_lifecycle.api.schemas import (
    DriverAssignmentRequest,
    MileageEditRequest,
    ReturnRideRequest,
    RideBoardResponse,
    RideCreateRequest,
    RideResponse,
    TransitionRequest,
    ride_out,
    rides_out,
)
from ride_lifecycle.config import settings
from ride_lifecycle.infrastructure.repositories import RideFilter
from ride_lifecycle.services.rides import RideService

router = APIRouter(prefix="/rides", tags=["rides"])


@router.post(
    "",
    status_code=201,
    response_model=RideResponse,
    summary="Create a ride request",
)
@limiter.limit(settings.rate_limit)
async def create_ride(
    request: Request,
    body: RideCreateRequest,
    service: RideService = Depends(get_ride_service),
):
    ride = await service.create_ride(**body.model_dump())
    return ride_out(ride)


@router.get(
    "/board",
    response_model=RideBoardResponse,
    summary="Rides sorted into display buckets",
)
@limiter.limit(settings.rate_limit)
async def ride_board(
    request: Request,
    on: Optional[date] = None,
    member_id: Optional[int] = None,
    driver_id: Optional[int] = None,
    service: RideService = Depends(get_ride_service),
):
    day = on or datetime.now(settings.tz).date()
    buckets = await service.categorized(
        day, RideFilter(member_id=member_id, driver_id=driver_id)
    )
    return RideBoardResponse(
        reference_date=day,
        active=rides_out(buckets.active),
        upcoming=rides_out(buckets.upcoming),
        completed=rides_out(buckets.completed),
        todays=rides_out(buckets.todays),
        uncategorized=rides_out(buckets.uncategorized),
        counts=buckets.counts(),
    )


@router.get(
    "/{ride_id}",
    response_model=RideResponse,
    summary="Get a ride",
)
@limiter.limit(settings.rate_limit)
async def get_ride(
    request: Request,
    ride_id: int,
    service: RideService = Depends(get_ride_service),
):
    return ride_out(await service.get_ride(ride_id))


@router.post(
    "/{ride_id}/transitions",
    response_model=RideResponse,
    summary="Move a ride to another status",
    description=(
        "Forward to the next status, replay the current one, or roll back to "
        "any earlier status.  Steps from ``started`` on need an odometer "
        "reading; rollbacks take none."
    ),
)
@limiter.limit(settings.rate_limit)
async def transition_ride(
    request: Request,
    ride_id: int,
    body: TransitionRequest,
    service: RideService = Depends(get_ride_service),
):
    ride = await service.apply_transition(
        ride_id, body.status, body.mileage, body.expected_updated_at
    )
    return ride_out(ride)


@router.patch(
    "/{ride_id}/mileage",
    response_model=RideResponse,
    summary="Correct a recorded odometer reading",
)
@limiter.limit(settings.rate_limit)
async def edit_mileage(
    request: Request,
    ride_id: int,
    body: MileageEditRequest,
    service: RideService = Depends(get_ride_service),
):
    ride = await service.edit_mileage(
        ride_id, body.step, body.value, body.expected_updated_at
    )
    return ride_out(ride)


@router.put(
    "/{ride_id}/driver",
    response_model=RideResponse,
    summary="Assign or unassign the driver",
)
@limiter.limit(settings.rate_limit)
async def assign_driver(
    request: Request,
    ride_id: int,
    body: DriverAssignmentRequest,
    service: RideService = Depends(get_ride_service),
):
    ride = await service.assign_driver(
        ride_id, body.driver_id, body.expected_updated_at
    )
    return ride_out(ride)


@router.post(
    "/{ride_id}/return",
    status_code=201,
    response_model=RideResponse,
    summary="Schedule the return ride",
)
@limiter.limit(settings.rate_limit)
async def schedule_return(
    request: Request,
    ride_id: int,
    body: ReturnRideRequest,
    service: RideService = Depends(get_ride_service),
):
    ride = await service.schedule_return(
        ride_id, body.scheduled_pickup_time, body.expected_updated_at
    )
    return ride_out(ride)


@router.get(
    "/{ride_id}/linked",
    response_model=Optional[RideResponse],
    summary="The other leg of the ride's trip, if any",
)
@limiter.limit(settings.rate_limit)
async def linked_ride(
    request: Request,
    ride_id: int,
    service: RideService = Depends(get_ride_service),
):
    linked = await service.linked_ride(ride_id)
    return ride_out(linked) if linked is not None else None
