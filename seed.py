"""
Seed script -- populates the database with sample rides for reviewers.

Run after migrations:
    python seed.py

Creates, all scheduled for today:
  - 2 pending rides (one unassigned, one assigned)
  - 1 ride mid-way through its outbound leg
  - 1 completed outbound ride with its linked return ride (trip pair)
  - 1 round-trip ride that has finished both legs

Rides are driven through ``RideService`` so every row satisfies the
lifecycle and mileage rules.
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import text

from ride_lifecycle.config import settings
from ride_lifecycle.domain.enums import RideStatus
from ride_lifecycle.infrastructure.database import async_session_factory, engine
from ride_lifecycle.infrastructure.locks import LocalRideLocks
from ride_lifecycle.services.rides import RideService

CLINIC = {"address": "1200 Main St", "city": "Springfield", "state": "IL", "zip": "62701"}

MEMBERS = [
    {"id": 101, "home": {"address": "14 Oak Ave", "city": "Springfield", "state": "IL", "zip": "62702"}},
    {"id": 102, "home": {"address": "9 Elm Ct", "city": "Springfield", "state": "IL", "zip": "62703"}},
    {"id": 103, "home": {"address": "77 Pine Rd", "city": "Chatham", "state": "IL", "zip": "62629"}},
    {"id": 104, "home": {"address": "310 Lake Dr", "city": "Rochester", "state": "IL", "zip": "62563"}},
    {"id": 105, "home": {"address": "5 Birch Ln", "city": "Sherman", "state": "IL", "zip": "62684"}},
]

DRIVERS = [201, 202, 203]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM rides"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

    service = RideService(
        async_session_factory,
        LocalRideLocks(),
        tz=settings.tz,
        trip_id_width=settings.trip_id_width,
    )
    morning = datetime.now(timezone.utc).replace(hour=14, minute=0, second=0, microsecond=0)

    async def book(member, offset_hours, round_trip=False):
        return await service.create_ride(
            member_id=member["id"],
            scheduled_pickup_time=morning + timedelta(hours=offset_hours),
            pickup_address=member["home"],
            dropoff_address=CLINIC,
            round_trip=round_trip,
            payment_method="medicaid",
        )

    # ── Pending ───────────────────────────────────────────────────────
    await book(MEMBERS[0], 4)
    waiting = await book(MEMBERS[1], 5)
    await service.assign_driver(waiting.id, DRIVERS[0])
    print("  Created 2 pending rides")

    # ── In progress ───────────────────────────────────────────────────
    moving = await book(MEMBERS[2], 0)
    await service.assign_driver(moving.id, DRIVERS[1])
    await service.apply_transition(moving.id, RideStatus.STARTED, 10412)
    await service.apply_transition(moving.id, RideStatus.PICKED_UP, 10418)
    print("  Created 1 ride in progress")

    # ── Completed outbound + linked return ────────────────────────────
    outbound = await book(MEMBERS[3], -2)
    await service.assign_driver(outbound.id, DRIVERS[2])
    for status, miles in (
        (RideStatus.STARTED, 5520),
        (RideStatus.PICKED_UP, 5531),
        (RideStatus.COMPLETED, 5549),
    ):
        await service.apply_transition(outbound.id, status, miles)
    back = await service.schedule_return(outbound.id, morning + timedelta(hours=1))
    print(f"  Created trip {back.trip_id} (rides {outbound.id} and {back.id})")

    # ── Round trip, both legs done ────────────────────────────────────
    loop = await book(MEMBERS[4], -4, round_trip=True)
    await service.assign_driver(loop.id, DRIVERS[0])
    for status, miles in (
        (RideStatus.STARTED, 20110),
        (RideStatus.PICKED_UP, 20117),
        (RideStatus.COMPLETED, 20135),
        (RideStatus.RETURN_PENDING, None),
        (RideStatus.RETURN_STARTED, 20135),
        (RideStatus.RETURN_PICKED_UP, 20135),
        (RideStatus.RETURN_COMPLETED, 20153),
    ):
        await service.apply_transition(loop.id, status, miles)
    print("  Created 1 finished round trip")

    print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
