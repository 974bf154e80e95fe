"""Display bucket tests."""

import logging
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from ride_lifecycle.domain.categorize import categorize, local_day, status_class
from ride_lifecycle.domain.enums import RideStatus
from tests.conftest import T0

S = RideStatus


class TestStatusClass:
    @pytest.mark.parametrize(
        "status, bucket",
        [
            (S.PENDING, "upcoming"),
            (S.ASSIGNED, "upcoming"),
            (S.RETURN_PENDING, "upcoming"),
            (S.STARTED, "active"),
            (S.PICKED_UP, "active"),
            (S.RETURN_STARTED, "active"),
            (S.RETURN_PICKED_UP, "active"),
            (S.COMPLETED, "completed"),
            (S.RETURN_COMPLETED, "completed"),
            ("in_progress", "active"),
            ("picked_up", "active"),
            ("cancelled", None),
            ("", None),
        ],
    )
    def test_mapping(self, status, bucket):
        assert status_class(status) == bucket

    def test_every_status_has_exactly_one_class(self):
        for status in RideStatus:
            assert status_class(status) in {"active", "upcoming", "completed"}


class TestCategorize:
    def test_dashboard_example(self, make_ride):
        today = T0.date()
        rides = [
            make_ride(id=1, status=S.PICKED_UP, scheduled_pickup_time=T0),
            make_ride(id=2, status=S.ASSIGNED, scheduled_pickup_time=T0 + timedelta(hours=5)),
            make_ride(id=3, status=S.COMPLETED, scheduled_pickup_time=T0 - timedelta(days=1)),
        ]
        buckets = categorize(rides, today)

        assert [r.id for r in buckets.active] == [1]
        assert [r.id for r in buckets.upcoming] == [2]
        assert [r.id for r in buckets.completed] == [3]
        assert [r.id for r in buckets.todays] == [1, 2]
        assert buckets.uncategorized == []
        assert buckets.counts() == {
            "active": 1,
            "upcoming": 1,
            "completed": 1,
            "todays": 2,
            "uncategorized": 0,
        }

    def test_unknown_status_is_reported(self, make_ride, caplog):
        rides = [make_ride(id=4, status="cancelled"), make_ride(id=5)]
        with caplog.at_level(logging.WARNING):
            buckets = categorize(rides, T0.date())
        assert [r.id for r in buckets.uncategorized] == [4]
        assert "cancelled" in caplog.text

    def test_status_buckets_partition_the_input(self, make_ride):
        rides = [make_ride(id=i, status=s) for i, s in enumerate(RideStatus)]
        rides.append(make_ride(id=99, status="legacy"))
        buckets = categorize(rides, date(2000, 1, 1))
        grouped = buckets.active + buckets.upcoming + buckets.completed + buckets.uncategorized
        assert sorted(r.id for r in grouped) == sorted(r.id for r in rides)
        assert buckets.todays == []

    def test_todays_uses_display_timezone(self, make_ride):
        chicago = ZoneInfo("America/Chicago")
        late = datetime(2026, 3, 3, 3, 30, tzinfo=timezone.utc)  # 21:30 on the 2nd in Chicago
        ride = make_ride(scheduled_pickup_time=late)

        assert categorize([ride], date(2026, 3, 2), chicago).todays == [ride]
        assert categorize([ride], date(2026, 3, 2)).todays == []

    def test_datetime_reference_is_converted(self, make_ride):
        chicago = ZoneInfo("America/Chicago")
        ride = make_ride(scheduled_pickup_time=datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc))
        reference = datetime(2026, 3, 3, 2, 0, tzinfo=timezone.utc)
        assert categorize([ride], reference, chicago).todays == [ride]

    def test_ride_without_schedule_is_never_todays(self, make_ride):
        ride = make_ride(scheduled_pickup_time=None)
        assert categorize([ride], T0.date()).todays == []

    def test_naive_times_are_utc(self):
        assert local_day(datetime(2026, 3, 2, 23, 0)) == date(2026, 3, 2)
        assert local_day(None) is None
