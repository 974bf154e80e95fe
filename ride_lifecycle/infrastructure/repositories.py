"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

The repository receives an ``AsyncSession`` (unit-of-work) and trades in
domain ``Ride`` objects; ORM rows never leave this module.  Writes are
compare-and-swap on ``updated_at`` so a row changed by another writer since
it was read is never silently overwritten.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import RideModel
from ride_lifecycle.domain.entities import Ride
from ride_lifecycle.domain.enums import PaymentStatus, RideStatus
from ride_lifecycle.domain.errors import Conflict, RideNotFound

_RIDE_FIELDS = tuple(f.name for f in fields(Ride))


@dataclass
class RideFilter:
    member_id: Optional[int] = None
    driver_id: Optional[int] = None
    trip_id: Optional[str] = None
    statuses: Optional[Iterable[str]] = None
    assigned: Optional[bool] = None
    scheduled_from: Optional[datetime] = None
    scheduled_to: Optional[datetime] = None


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_entity(row: RideModel) -> Ride:
    data = {name: getattr(row, name) for name in _RIDE_FIELDS}
    for name, value in data.items():
        if isinstance(value, datetime):
            data[name] = _as_utc(value)
    data["status"] = RideStatus.parse(row.status) or row.status
    try:
        data["payment_status"] = PaymentStatus(row.payment_status)
    except ValueError:
        pass
    data["pickup_address"] = dict(row.pickup_address or {})
    data["dropoff_address"] = dict(row.dropoff_address or {})
    return Ride(**data)


def to_columns(ride: Ride) -> dict:
    values = {}
    for name in _RIDE_FIELDS:
        if name in ("id", "created_at"):
            continue
        value = getattr(ride, name)
        values[name] = getattr(value, "value", value)
    return values


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, ride: Ride) -> Ride:
        row = RideModel(**to_columns(ride))
        if ride.created_at is not None:
            row.created_at = ride.created_at
        self.session.add(row)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise _trip_taken(ride) from exc
        return to_entity(row)

    async def get_ride(self, ride_id: int) -> Ride:
        row = await self.session.get(RideModel, ride_id, populate_existing=True)
        if row is None:
            raise RideNotFound(f"Ride {ride_id} not found", ride_id=ride_id)
        return to_entity(row)

    async def list_rides(self, criteria: Optional[RideFilter] = None) -> list[Ride]:
        query = select(RideModel)
        if criteria is not None:
            if criteria.member_id is not None:
                query = query.where(RideModel.member_id == criteria.member_id)
            if criteria.driver_id is not None:
                query = query.where(RideModel.driver_id == criteria.driver_id)
            if criteria.trip_id is not None:
                query = query.where(RideModel.trip_id == criteria.trip_id)
            if criteria.statuses is not None:
                wanted = [getattr(s, "value", s) for s in criteria.statuses]
                query = query.where(RideModel.status.in_(wanted))
            if criteria.assigned is True:
                query = query.where(RideModel.driver_id.is_not(None))
            elif criteria.assigned is False:
                query = query.where(RideModel.driver_id.is_(None))
            if criteria.scheduled_from is not None:
                query = query.where(
                    RideModel.scheduled_pickup_time >= criteria.scheduled_from
                )
            if criteria.scheduled_to is not None:
                query = query.where(
                    RideModel.scheduled_pickup_time < criteria.scheduled_to
                )
        query = query.order_by(RideModel.scheduled_pickup_time, RideModel.id)
        result = await self.session.execute(query)
        return [to_entity(row) for row in result.scalars().all()]

    async def list_trip_ids(self) -> list[str]:
        result = await self.session.execute(
            select(RideModel.trip_id).where(RideModel.trip_id.is_not(None)).distinct()
        )
        return list(result.scalars().all())

    async def save_ride(self, ride: Ride, expected_updated_at: Optional[datetime]) -> Ride:
        """Write *ride* only if the stored token still equals *expected_updated_at*."""
        try:
            result = await self.session.execute(
                update(RideModel)
                .where(
                    RideModel.id == ride.id,
                    RideModel.updated_at == expected_updated_at,
                )
                .values(**to_columns(ride))
                .execution_options(synchronize_session=False)
            )
        except IntegrityError as exc:
            raise _trip_taken(ride) from exc
        if result.rowcount == 0:
            raise Conflict(
                f"Ride {ride.id} was changed by another writer",
                ride_id=ride.id,
                attempted_status=ride.status,
            )
        return ride


def _trip_taken(ride: Ride) -> Conflict:
    return Conflict(
        f"Trip {ride.trip_id} already has a "
        f"{'return' if ride.is_return_trip else 'outbound'} ride",
        ride_id=ride.id,
        attempted_status=ride.status,
    )
