"""
Ride lifecycle service
======================

Runs every mutating operation as one atomic read-validate-write:

1. take the per-ride lock (``LocalRideLocks`` / ``RedisRideLocks``),
2. load the row in a fresh session,
3. reject a caller snapshot older than the stored ``updated_at`` by more
   than the configured tolerance (``Conflict``),
4. run the pure domain operation,
5. compare-and-swap the row on the token it was loaded with, commit.

Any failure rolls the session back, so the stored row is left unchanged.
Nothing here retries; callers re-fetch and try again on ``Conflict``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import AsyncIterator, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ride_lifecycle.domain.assignment import (
    assign_driver,
    inherit_driver,
    partition_by_assignment,
)
from ride_lifecycle.domain.categorize import RideBuckets, categorize
from ride_lifecycle.domain.entities import Ride, next_version, utcnow
from ride_lifecycle.domain.enums import RideStatus
from ride_lifecycle.domain.errors import Conflict, InvalidTransition
from ride_lifecycle.domain.mileage import MileageDraft, edit_mileage
from ride_lifecycle.domain.summary import DriverDaySummary, summarize_driver_day
from ride_lifecycle.domain.transitions import apply_transition
from ride_lifecycle.domain.trips import (
    TripAnomaly,
    correlate_trips,
    find_linked_ride,
    next_trip_id,
)
from ride_lifecycle.infrastructure.repositories import (
    RideFilter,
    RideRepository,
)

logger = logging.getLogger(__name__)

TRIP_ID_LOCK = "trip-id"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class RideService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks,
        *,
        conflict_tolerance: timedelta = timedelta(0),
        clear_history_on_rollback: bool = True,
        tz: tzinfo = timezone.utc,
        trip_id_width: int = 7,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.locks = locks
        self.conflict_tolerance = conflict_tolerance
        self.clear_history_on_rollback = clear_history_on_rollback
        self.tz = tz
        self.trip_id_width = trip_id_width
        self.clock = clock

    # ── Plumbing ──────────────────────────────────────────────────

    @asynccontextmanager
    async def _unit_of_work(self) -> AsyncIterator[RideRepository]:
        async with self.session_factory() as session:
            try:
                yield RideRepository(session)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    def _check_fresh(self, ride: Ride, expected: Optional[datetime]) -> None:
        if expected is None or ride.updated_at is None:
            return
        if ride.updated_at - _as_utc(expected) > self.conflict_tolerance:
            raise Conflict(
                f"Ride {ride.id} changed at {ride.updated_at.isoformat()}; "
                "re-fetch and retry",
                ride_id=ride.id,
                current_status=ride.status,
            )

    async def _mutate(
        self,
        ride_id: int,
        expected: Optional[datetime],
        change: Callable[[Ride], Ride],
        action: str,
    ) -> Ride:
        try:
            async with self.locks.hold(ride_id):
                async with self._unit_of_work() as repo:
                    ride = await repo.get_ride(ride_id)
                    self._check_fresh(ride, expected)
                    updated = change(ride)
                    await repo.save_ride(updated, ride.updated_at)
        except Conflict:
            logger.warning("Conflict on ride %s during %s", ride_id, action)
            raise
        logger.info("Ride %s: %s -> status %s", ride_id, action, _value(updated.status))
        return updated

    # ── Reads ─────────────────────────────────────────────────────

    async def get_ride(self, ride_id: int) -> Ride:
        async with self._unit_of_work() as repo:
            return await repo.get_ride(ride_id)

    async def list_rides(self, criteria: Optional[RideFilter] = None) -> list[Ride]:
        async with self._unit_of_work() as repo:
            return await repo.list_rides(criteria)

    async def linked_ride(self, ride_id: int) -> Optional[Ride]:
        async with self._unit_of_work() as repo:
            ride = await repo.get_ride(ride_id)
            if ride.trip_id is None:
                return None
            same_trip = await repo.list_rides(RideFilter(trip_id=ride.trip_id))
        return find_linked_ride(ride, same_trip)

    async def categorized(
        self, reference_date, criteria: Optional[RideFilter] = None
    ) -> RideBuckets:
        return categorize(await self.list_rides(criteria), reference_date, self.tz)

    async def assignment_board(
        self, criteria: Optional[RideFilter] = None
    ) -> tuple[list[Ride], list[Ride]]:
        return partition_by_assignment(await self.list_rides(criteria))

    async def trip_anomalies(self) -> list[TripAnomaly]:
        return correlate_trips(await self.list_rides()).anomalies

    async def driver_summary(self, driver_id: int, day: date) -> DriverDaySummary:
        rides = await self.list_rides(RideFilter(driver_id=driver_id))
        return summarize_driver_day(rides, driver_id, day, self.tz)

    # ── Writes ────────────────────────────────────────────────────

    async def create_ride(
        self,
        *,
        member_id: int,
        scheduled_pickup_time: datetime,
        pickup_address: Optional[dict] = None,
        dropoff_address: Optional[dict] = None,
        round_trip: bool = False,
        notes: Optional[str] = None,
        payment_method: Optional[str] = None,
        recurring: Optional[str] = None,
    ) -> Ride:
        now = self.clock()
        ride = Ride(
            member_id=member_id,
            scheduled_pickup_time=_as_utc(scheduled_pickup_time),
            pickup_address=pickup_address or {},
            dropoff_address=dropoff_address or {},
            round_trip=round_trip,
            notes=notes,
            payment_method=payment_method,
            recurring=recurring,
            status=RideStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        async with self._unit_of_work() as repo:
            ride = await repo.add(ride)
        logger.info("Ride %s created for member %s", ride.id, member_id)
        return ride

    async def apply_transition(
        self,
        ride_id: int,
        target,
        mileage=None,
        expected_updated_at: Optional[datetime] = None,
    ) -> Ride:
        return await self._mutate(
            ride_id,
            expected_updated_at,
            lambda ride: apply_transition(
                ride,
                target,
                mileage,
                now=self.clock(),
                clear_history=self.clear_history_on_rollback,
            ),
            f"transition to {_value(target)}",
        )

    async def edit_mileage(
        self,
        ride_id: int,
        step,
        value,
        expected_updated_at: Optional[datetime] = None,
    ) -> Ride:
        return await self._mutate(
            ride_id,
            expected_updated_at,
            lambda ride: edit_mileage(ride, step, value, now=self.clock()),
            f"mileage edit at {_value(step)}",
        )

    async def start_mileage_draft(self, ride_id: int) -> MileageDraft:
        return MileageDraft(await self.get_ride(ride_id))

    async def save_mileage_draft(self, draft: MileageDraft) -> Ride:
        """Commit the staged corrections; the draft's snapshot is the token."""
        if draft.is_empty:
            return draft.ride
        return await self._mutate(
            draft.ride_id,
            draft.base_version,
            lambda ride: draft.apply(ride, now=self.clock()),
            f"mileage draft ({len(draft.staged)} field(s))",
        )

    async def assign_driver(
        self,
        ride_id: int,
        driver_id: Optional[int],
        expected_updated_at: Optional[datetime] = None,
    ) -> Ride:
        action = "unassign" if driver_id is None else f"assign driver {driver_id}"
        try:
            async with self.locks.hold(ride_id):
                async with self._unit_of_work() as repo:
                    ride = await repo.get_ride(ride_id)
                    self._check_fresh(ride, expected_updated_at)
                    updated = assign_driver(ride, driver_id, now=self.clock())
                    await repo.save_ride(updated, ride.updated_at)

                    if ride.trip_id is not None:
                        same_trip = await repo.list_rides(RideFilter(trip_id=ride.trip_id))
                        back = find_linked_ride(ride, same_trip)
                        if back is not None and back.known_status == RideStatus.RETURN_PENDING:
                            await repo.save_ride(
                                inherit_driver(back, driver_id, now=self.clock()),
                                back.updated_at,
                            )
                            logger.info("Return ride %s follows driver change", back.id)
        except Conflict:
            logger.warning("Conflict on ride %s during %s", ride_id, action)
            raise
        logger.info("Ride %s: %s -> status %s", ride_id, action, _value(updated.status))
        return updated

    async def schedule_return(
        self,
        ride_id: int,
        scheduled_pickup_time: datetime,
        expected_updated_at: Optional[datetime] = None,
    ) -> Ride:
        """Create the return ride for a one-way outbound ride and link them.

        Trip ids are read-max-plus-one, so allocation runs under one shared
        lock key and commits before it is released.
        """
        async with self.locks.hold(ride_id):
            async with self.locks.hold(TRIP_ID_LOCK), self._unit_of_work() as repo:
                ride = await repo.get_ride(ride_id)
                self._check_fresh(ride, expected_updated_at)
                if ride.is_return_trip or ride.round_trip:
                    raise InvalidTransition(
                        "Ride already carries its own return leg",
                        ride_id=ride.id,
                        attempted_status=RideStatus.RETURN_PENDING,
                        current_status=ride.status,
                    )

                outbound = ride
                if ride.trip_id is None:
                    trip_id = next_trip_id(
                        await repo.list_trip_ids(), self.trip_id_width
                    )
                    outbound = replace(
                        ride,
                        trip_id=trip_id,
                        updated_at=next_version(ride.updated_at, self.clock()),
                    )
                    await repo.save_ride(outbound, ride.updated_at)
                else:
                    same_trip = await repo.list_rides(RideFilter(trip_id=ride.trip_id))
                    if find_linked_ride(ride, same_trip) is not None:
                        raise InvalidTransition(
                            f"Trip {ride.trip_id} already has a return ride",
                            ride_id=ride.id,
                            attempted_status=RideStatus.RETURN_PENDING,
                            current_status=ride.status,
                        )

                now = self.clock()
                back = await repo.add(
                    Ride(
                        member_id=outbound.member_id,
                        driver_id=outbound.driver_id,
                        trip_id=outbound.trip_id,
                        is_return_trip=True,
                        pickup_address=dict(outbound.dropoff_address),
                        dropoff_address=dict(outbound.pickup_address),
                        scheduled_pickup_time=_as_utc(scheduled_pickup_time),
                        status=RideStatus.RETURN_PENDING,
                        payment_method=outbound.payment_method,
                        created_at=now,
                        updated_at=now,
                    )
                )
        logger.info("Return ride %s scheduled for trip %s", back.id, back.trip_id)
        return back


def _value(status) -> str:
    return getattr(status, "value", str(status))
