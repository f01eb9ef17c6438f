"""
Conflict Detector

Policy layer in front of the availability index. It turns what a caller
asked for into a normalized half-open range, applies the per-kind date
rules and then asks the index whether the range is free.

Normalization rules:
- supplier: booked by start instant; a missing end means
  start + slot duration (resource override, else the policy default)
- venue: booked by date; dates expand to whole local days with an
  inclusive end date, explicit datetimes are used as given
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Mapping
from uuid import UUID

from apps.bookings.domain.availability import AvailabilityIndex
from apps.bookings.domain.entities import ResourceKind
from shared.domain.exceptions import BookingValidationError
from shared.domain.value_objects import TimeRange


@dataclass(frozen=True)
class SchedulingPolicy:
    """Date rules for one resource kind"""
    kind: ResourceKind
    default_duration: timedelta
    min_lead_time: timedelta = timedelta(0)
    require_future_date: bool = False
    whole_days: bool = False

    @classmethod
    def from_settings(cls, kind: ResourceKind, conf: Mapping) -> 'SchedulingPolicy':
        return cls(
            kind=kind,
            default_duration=timedelta(seconds=conf.get('DEFAULT_DURATION', 4 * 3600)),
            min_lead_time=timedelta(seconds=conf.get('MIN_LEAD_TIME', 0)),
            require_future_date=conf.get('REQUIRE_FUTURE_DATE', False),
            whole_days=conf.get('WHOLE_DAYS', False),
        )


class ConflictDetector:
    """
    Accepts or rejects a candidate range for a resource

    Usage:
        detector = ConflictDetector(policies, tz)
        time_range = detector.normalize(ResourceKind.VENUE, start, end)
        detector.validate(ResourceKind.VENUE, time_range, now)
        detector.ensure_free(index, time_range)
    """

    def __init__(self, policies: Mapping[ResourceKind, SchedulingPolicy], tz: tzinfo):
        missing = set(ResourceKind) - set(policies)
        if missing:
            raise ValueError(f"No scheduling policy for {sorted(k.value for k in missing)}")
        self.policies = dict(policies)
        self.tz = tz

    def normalize(
        self,
        kind: ResourceKind,
        start: date | datetime,
        end: date | datetime | None = None,
        *,
        slot_duration: timedelta | None = None,
    ) -> TimeRange:
        """Translate a requested start/end into a half-open TimeRange"""
        policy = self.policies[kind]
        if start is None:
            raise BookingValidationError("A start is required", field='start')

        start_is_day = not isinstance(start, datetime)
        if end is not None and isinstance(end, datetime) == start_is_day:
            raise BookingValidationError("Start and end must both be dates or both be datetimes", field='end')

        if start_is_day:
            if not policy.whole_days:
                raise BookingValidationError(
                    f"A {kind.value} is booked by start time, not by date", field='start',
                )
            last_day = end if end is not None else start
            if last_day < start:
                raise BookingValidationError(
                    f"End date ({last_day}) must not be before start date ({start})", field='end',
                )
            return TimeRange(self._day_start(start), self._day_start(last_day + timedelta(days=1)))

        if start.tzinfo is None or (end is not None and end.tzinfo is None):
            raise BookingValidationError("Datetimes must include a timezone", field='start')
        if end is None:
            end = start + (slot_duration or policy.default_duration)
        return TimeRange(start, end)

    def validate(self, kind: ResourceKind, time_range: TimeRange, now: datetime):
        """Reject ranges that start in the past for this kind of resource"""
        policy = self.policies[kind]
        if policy.require_future_date:
            today = now.astimezone(self.tz).date()
            if time_range.start.astimezone(self.tz).date() <= today:
                raise BookingValidationError(
                    f"A {kind.value} must be booked for a future date", field='start',
                )
        earliest = now + policy.min_lead_time
        if time_range.start <= earliest:
            raise BookingValidationError(
                f"Start ({time_range.start.isoformat()}) must be after {earliest.isoformat()}",
                field='start',
            )

    def ensure_free(
        self,
        index: AvailabilityIndex,
        time_range: TimeRange,
        *,
        exclude_booking_id: UUID | None = None,
    ):
        """Raise ScheduleConflictError if the range collides with another booking"""
        index.ensure_free(time_range, exclude_booking_id)

    def _day_start(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.tz)
