"""Typed failures raised by the ride lifecycle operations."""

from __future__ import annotations

from typing import Optional


class RideError(Exception):
    """Base class; carries enough context for the caller to retry or report."""

    kind = "ride_error"

    def __init__(
        self,
        message: str,
        *,
        ride_id: Optional[int] = None,
        attempted_status: Optional[str] = None,
        current_status: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.ride_id = ride_id
        self.attempted_status = _plain(attempted_status)
        self.current_status = _plain(current_status)

    def as_dict(self) -> dict:
        return {
            "detail": self.message,
            "kind": self.kind,
            "ride_id": self.ride_id,
            "attempted_status": self.attempted_status,
            "current_status": self.current_status,
        }


class RideNotFound(RideError):
    kind = "not_found"


class InvalidTransition(RideError):
    """Requested status edge is not on the ride's lifecycle."""

    kind = "invalid_transition"


class InvalidMileage(RideError):
    """Reading is non-numeric, negative, or breaks odometer ordering."""

    kind = "invalid_mileage"


class MissingDriver(RideError):
    kind = "missing_driver"


class Conflict(RideError):
    """The caller's snapshot is stale or another writer holds the ride."""

    kind = "conflict"


def _plain(status) -> Optional[str]:
    if status is None:
        return None
    return getattr(status, "value", status)
