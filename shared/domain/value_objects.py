"""
Common Value Objects

- TimeRange: half-open interval [start, end) between two aware instants
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from shared.domain.base import ValueObject
from shared.domain.exceptions import BookingValidationError


@dataclass(frozen=True)
class TimeRange(ValueObject):
    """
    Time range value object

    Represents the interval from `start` (inclusive) to `end` (exclusive).
    Both bounds must be timezone-aware so ranges coming from different
    callers compare on the same timeline.
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        if not isinstance(self.start, datetime) or not isinstance(self.end, datetime):
            raise BookingValidationError("Range bounds must be datetimes")
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise BookingValidationError("Range bounds must be timezone-aware")
        if self.end <= self.start:
            raise BookingValidationError(
                f"Range end ({self.end.isoformat()}) must be after start ({self.start.isoformat()})",
                field='end',
            )

    @classmethod
    def starting_at(cls, start: datetime, duration: timedelta) -> 'TimeRange':
        """Build a range from a start instant and a duration"""
        return cls(start, start + duration)

    def overlaps_with(self, other: 'TimeRange') -> bool:
        """
        Check if this range overlaps with another

        The end bound is exclusive, so ranges that only touch do not overlap:
            [14:00, 16:00) and [16:00, 18:00) -> False
            [14:00, 16:00) and [15:00, 17:00) -> True
        """
        if not isinstance(other, TimeRange):
            raise TypeError("Can only check overlap with another TimeRange")
        return self.start < other.end and self.end > other.start

    def shifted_to(self, start: datetime) -> 'TimeRange':
        """Same duration, new start"""
        return TimeRange(start, start + self.duration)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def to_dict(self) -> dict:
        return {'start': self.start.isoformat(), 'end': self.end.isoformat()}

    def __str__(self):
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"

    def __repr__(self):
        return f"TimeRange({self.start.isoformat()}, {self.end.isoformat()})"
