"""
Admin endpoints
===============

GET /api/v1/admin/assignments                 -- assigned vs unassigned rides
GET /api/v1/admin/trip-anomalies              -- malformed trip groups
GET /api/v1/admin/drivers/{driver_id}/summary -- a driver's totals for a day
GET /api/v1/admin/health                      -- simple health check
"""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Request

from ride_lifecycle.api.dependencies import get_ride_service
from ride_lifecycle.api.middleware import limiter
from ride_lifecycle.api.schemas import (
    AssignmentBoardResponse,
    DriverDaySummaryResponse,
    HealthResponse,
    TripAnomalyResponse,
    rides_out,
)
from ride_lifecycle.config import settings
from ride_lifecycle.infrastructure.repositories import RideFilter
from ride_lifecycle.services.rides import RideService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/assignments",
    response_model=AssignmentBoardResponse,
    summary="Split rides by whether a driver is attached",
)
@limiter.limit(settings.rate_limit)
async def assignments(
    request: Request,
    member_id: Optional[int] = None,
    service: RideService = Depends(get_ride_service),
):
    assigned, unassigned = await service.assignment_board(
        RideFilter(member_id=member_id)
    )
    return AssignmentBoardResponse(
        assigned=rides_out(assigned), unassigned=rides_out(unassigned)
    )


@router.get(
    "/trip-anomalies",
    response_model=list[TripAnomalyResponse],
    summary="Trip groups that are not exactly one outbound plus one return",
)
@limiter.limit(settings.rate_limit)
async def trip_anomalies(
    request: Request,
    service: RideService = Depends(get_ride_service),
):
    return [
        TripAnomalyResponse(
            trip_id=a.trip_id, ride_ids=list(a.ride_ids), reason=a.reason
        )
        for a in await service.trip_anomalies()
    ]


@router.get(
    "/drivers/{driver_id}/summary",
    response_model=DriverDaySummaryResponse,
    summary="Finished rides, miles and hours for one driver on one day",
)
@limiter.limit(settings.rate_limit)
async def driver_summary(
    request: Request,
    driver_id: int,
    day: Optional[date] = None,
    service: RideService = Depends(get_ride_service),
):
    summary = await service.driver_summary(
        driver_id, day or datetime.now(settings.tz).date()
    )
    return DriverDaySummaryResponse.model_validate(summary, from_attributes=True)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
