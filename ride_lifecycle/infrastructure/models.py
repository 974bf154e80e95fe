"""
SQLAlchemy ORM models.

Tables
------
* ``rides`` -- one row per ride leg record (outbound, round trip or return)

``status`` is kept as a plain string rather than a database enum so rows
written by older clients with unexpected values can still be loaded and
reported by the categorizer.

Indexes
-------
* **B-Tree** on ``status``, ``member_id``, ``driver_id``, ``trip_id`` and
  ``scheduled_pickup_time`` for the dashboard and trip-correlation queries.
* **Unique** on ``(trip_id, is_return_trip)`` so a trip has at most one ride
  per direction.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from .database import Base


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    member_id = Column(Integer, nullable=False)
    driver_id = Column(Integer, nullable=True)

    trip_id = Column(String(16), nullable=True)
    is_return_trip = Column(Boolean, default=False, nullable=False)
    round_trip = Column(Boolean, default=False, nullable=False)

    pickup_address = Column(JSON, nullable=False, default=dict)
    dropoff_address = Column(JSON, nullable=False, default=dict)
    scheduled_pickup_time = Column(DateTime(timezone=True), nullable=False)

    status = Column(String(32), default="pending", nullable=False)
    notes = Column(Text, nullable=True)
    payment_method = Column(String(32), nullable=True)
    payment_status = Column(String(16), default="pending", nullable=False)
    recurring = Column(String(32), nullable=True)

    # Odometer readings, one per capture step
    start_miles = Column(Float, nullable=True)
    pickup_miles = Column(Float, nullable=True)
    end_miles = Column(Float, nullable=True)
    return_start_miles = Column(Float, nullable=True)
    return_pickup_miles = Column(Float, nullable=True)
    return_end_miles = Column(Float, nullable=True)

    start_time = Column(DateTime(timezone=True), nullable=True)
    pickup_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    return_start_time = Column(DateTime(timezone=True), nullable=True)
    return_pickup_time = Column(DateTime(timezone=True), nullable=True)
    return_end_time = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    # Optimistic-concurrency token; written by the service, never by the DB
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_rides_status", "status"),
        Index("idx_rides_member", "member_id"),
        Index("idx_rides_driver", "driver_id"),
        Index("idx_rides_trip", "trip_id"),
        Index("idx_rides_scheduled", "scheduled_pickup_time"),
        # One outbound and one return per trip
        UniqueConstraint("trip_id", "is_return_trip", name="uq_rides_trip_leg"),
    )
