"""Driver assignment and the assignment board partition."""

from datetime import timedelta

import pytest

from ride_lifecycle.domain.assignment import (
    assign_driver,
    inherit_driver,
    partition_by_assignment,
)
from ride_lifecycle.domain.enums import RideStatus
from ride_lifecycle.domain.errors import InvalidTransition
from tests.conftest import T0

S = RideStatus


class TestAssignDriver:
    def test_assign_moves_pending_to_assigned(self, make_ride):
        ride = assign_driver(make_ride(), 12, now=T0 + timedelta(minutes=1))
        assert ride.driver_id == 12
        assert ride.status == S.ASSIGNED
        assert ride.updated_at == T0 + timedelta(minutes=1)

    def test_reassign(self, make_ride):
        ride = assign_driver(make_ride(driver_id=12, status=S.ASSIGNED), 13)
        assert ride.driver_id == 13
        assert ride.status == S.ASSIGNED

    def test_unassign_moves_back_to_pending(self, make_ride):
        ride = assign_driver(make_ride(driver_id=12, status=S.ASSIGNED), None)
        assert ride.driver_id is None
        assert ride.status == S.PENDING

    @pytest.mark.parametrize("status", [S.STARTED, S.COMPLETED, "cancelled"])
    def test_cannot_reassign_once_started(self, make_ride, status):
        with pytest.raises(InvalidTransition):
            assign_driver(make_ride(driver_id=12, status=status), 13)

    def test_return_row_cannot_be_assigned_directly(self, make_ride):
        ride = make_ride(is_return_trip=True, status=S.RETURN_PENDING)
        with pytest.raises(InvalidTransition):
            assign_driver(ride, 13)


class TestInheritDriver:
    def test_return_pending_row_follows_outbound(self, make_ride):
        back = make_ride(is_return_trip=True, status=S.RETURN_PENDING, driver_id=12)
        moved = inherit_driver(back, 13, now=T0 + timedelta(minutes=1))
        assert moved.driver_id == 13
        assert moved.status == S.RETURN_PENDING

    def test_started_return_row_keeps_its_driver(self, make_ride):
        back = make_ride(is_return_trip=True, status=S.RETURN_STARTED, driver_id=12)
        with pytest.raises(InvalidTransition):
            inherit_driver(back, 13)


def test_partition_by_assignment(make_ride):
    rides = [make_ride(id=1), make_ride(id=2, driver_id=5), make_ride(id=3)]
    assigned, unassigned = partition_by_assignment(rides)
    assert [r.id for r in assigned] == [2]
    assert [r.id for r in unassigned] == [1, 3]
