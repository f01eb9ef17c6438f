"""Unit tests for range normalization and date policies."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from apps.bookings.domain.availability import AvailabilityIndex
from apps.bookings.domain.conflicts import ConflictDetector, SchedulingPolicy
from apps.bookings.domain.entities import ResourceKind
from shared.domain.exceptions import BookingValidationError, ScheduleConflictError
from shared.domain.value_objects import TimeRange

UTC = timezone.utc
NOW = datetime(2031, 3, 10, 9, 30, tzinfo=UTC)


@pytest.fixture
def detector() -> ConflictDetector:
    return ConflictDetector(
        {
            ResourceKind.SUPPLIER: SchedulingPolicy(
                kind=ResourceKind.SUPPLIER,
                default_duration=timedelta(hours=4),
                min_lead_time=timedelta(hours=1),
            ),
            ResourceKind.VENUE: SchedulingPolicy(
                kind=ResourceKind.VENUE,
                default_duration=timedelta(days=1),
                require_future_date=True,
                whole_days=True,
            ),
        },
        UTC,
    )


class TestNormalize:
    def test_venue_dates_cover_whole_days_with_inclusive_end(self, detector):
        time_range = detector.normalize(ResourceKind.VENUE, date(2031, 4, 1), date(2031, 4, 3))

        assert time_range == TimeRange(datetime(2031, 4, 1, tzinfo=UTC), datetime(2031, 4, 4, tzinfo=UTC))

    def test_venue_single_date_is_one_day(self, detector):
        time_range = detector.normalize(ResourceKind.VENUE, date(2031, 4, 1))

        assert time_range.duration == timedelta(days=1)

    def test_venue_end_date_before_start_is_rejected(self, detector):
        with pytest.raises(BookingValidationError):
            detector.normalize(ResourceKind.VENUE, date(2031, 4, 3), date(2031, 4, 1))

    def test_venue_explicit_datetimes_are_kept(self, detector):
        start = datetime(2031, 4, 1, 14, tzinfo=UTC)
        end = datetime(2031, 4, 1, 16, tzinfo=UTC)

        assert detector.normalize(ResourceKind.VENUE, start, end) == TimeRange(start, end)

    def test_supplier_cannot_be_booked_by_date(self, detector):
        with pytest.raises(BookingValidationError) as exc_info:
            detector.normalize(ResourceKind.SUPPLIER, date(2031, 4, 1))

        assert exc_info.value.extra["field"] == "start"

    def test_supplier_missing_end_uses_slot_duration(self, detector):
        start = datetime(2031, 4, 1, 10, tzinfo=UTC)

        assert detector.normalize(ResourceKind.SUPPLIER, start).end == start + timedelta(hours=4)
        assert detector.normalize(
            ResourceKind.SUPPLIER, start, slot_duration=timedelta(minutes=90),
        ).end == start + timedelta(minutes=90)

    def test_naive_datetime_is_rejected(self, detector):
        with pytest.raises(BookingValidationError):
            detector.normalize(ResourceKind.SUPPLIER, datetime(2031, 4, 1, 10))

    def test_mixed_date_and_datetime_is_rejected(self, detector):
        with pytest.raises(BookingValidationError):
            detector.normalize(ResourceKind.VENUE, date(2031, 4, 1), datetime(2031, 4, 2, tzinfo=UTC))

    def test_end_not_after_start_is_rejected(self, detector):
        start = datetime(2031, 4, 1, 10, tzinfo=UTC)

        with pytest.raises(BookingValidationError):
            detector.normalize(ResourceKind.SUPPLIER, start, start)

    def test_every_kind_needs_a_policy(self):
        with pytest.raises(ValueError):
            ConflictDetector({}, UTC)


class TestValidate:
    def test_venue_today_is_rejected(self, detector):
        today = TimeRange(datetime(2031, 3, 10, 18, tzinfo=UTC), datetime(2031, 3, 10, 22, tzinfo=UTC))

        with pytest.raises(BookingValidationError):
            detector.validate(ResourceKind.VENUE, today, NOW)

    def test_venue_tomorrow_is_accepted(self, detector):
        tomorrow = detector.normalize(ResourceKind.VENUE, date(2031, 3, 11))

        detector.validate(ResourceKind.VENUE, tomorrow, NOW)

    def test_supplier_respects_lead_time(self, detector):
        too_soon = TimeRange.starting_at(NOW + timedelta(minutes=30), timedelta(hours=1))
        later = TimeRange.starting_at(NOW + timedelta(hours=2), timedelta(hours=1))

        with pytest.raises(BookingValidationError):
            detector.validate(ResourceKind.SUPPLIER, too_soon, NOW)
        detector.validate(ResourceKind.SUPPLIER, later, NOW)


def test_ensure_free_delegates_to_index(detector):
    index = AvailabilityIndex.from_reservations(uuid4(), [])
    mine = uuid4()
    index.reserve(mine, TimeRange(datetime(2031, 4, 1, 14, tzinfo=UTC), datetime(2031, 4, 1, 16, tzinfo=UTC)))
    overlapping = TimeRange(datetime(2031, 4, 1, 15, tzinfo=UTC), datetime(2031, 4, 1, 17, tzinfo=UTC))

    with pytest.raises(ScheduleConflictError):
        detector.ensure_free(index, overlapping)
    detector.ensure_free(index, overlapping, exclude_booking_id=mine)


def test_policy_from_settings():
    policy = SchedulingPolicy.from_settings(
        ResourceKind.SUPPLIER, {"DEFAULT_DURATION": 3600, "MIN_LEAD_TIME": 600},
    )

    assert policy.default_duration == timedelta(hours=1)
    assert policy.min_lead_time == timedelta(minutes=10)
    assert policy.whole_days is False
