"""
Availability Index Aggregate

All slot occupation goes through this aggregate. One instance covers one
resource (a supplier or a venue) and is the consistency boundary that keeps
occupying bookings of that resource from overlapping.

Reservations are kept sorted by start. Because they never overlap, their
ends are sorted as well, so overlap lookups are a bisection plus a short
backwards walk over the ranges that actually collide.

The repository loads the aggregate inside the per-resource critical section
(row lock on the resource), so the check and the write happen atomically.
"""

from bisect import bisect_left, insort
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List
from uuid import UUID

from shared.domain.base import Aggregate
from shared.domain.exceptions import ScheduleConflictError
from shared.domain.value_objects import TimeRange


@dataclass(frozen=True, order=True)
class Reservation:
    """A time range held by one booking"""
    start: datetime
    end: datetime
    booking_id: UUID = field(compare=False)

    @property
    def range(self) -> TimeRange:
        return TimeRange(self.start, self.end)

    def to_dict(self) -> dict:
        return {
            'booking_id': str(self.booking_id),
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
        }


@dataclass(eq=False, kw_only=True)
class AvailabilityIndex(Aggregate):
    """
    Availability Index Aggregate Root

    Key invariants:
    - No two reservations overlap (half-open ranges, touching is fine)
    - At most one reservation per booking
    """

    resource_id: UUID
    _reservations: List[Reservation] = field(default_factory=list, repr=False)

    def __post_init__(self):
        self._reservations = sorted(self._reservations)
        self._starts = [r.start for r in self._reservations]
        self._by_booking = {r.booking_id: r for r in self._reservations}

    @classmethod
    def from_reservations(cls, resource_id: UUID, reservations: Iterable[Reservation]) -> 'AvailabilityIndex':
        return cls(id=resource_id, resource_id=resource_id, _reservations=list(reservations))

    # ----- queries -----

    def conflicts(self, candidate: TimeRange, exclude_booking_id: UUID | None = None) -> List[Reservation]:
        """
        All reservations overlapping `candidate`, in start order

        `exclude_booking_id` ignores that booking's own range; a reschedule
        may overlap the slot it is about to give up.
        """
        # first reservation starting at or after candidate.end cannot overlap
        idx = bisect_left(self._starts, candidate.end)
        found = []
        while idx > 0:
            idx -= 1
            reservation = self._reservations[idx]
            if reservation.end <= candidate.start:
                break
            if reservation.booking_id != exclude_booking_id:
                found.append(reservation)
        found.reverse()
        return found

    def is_free(self, candidate: TimeRange, exclude_booking_id: UUID | None = None) -> bool:
        return not self.conflicts(candidate, exclude_booking_id)

    def reservation_for(self, booking_id: UUID) -> Reservation | None:
        return self._by_booking.get(booking_id)

    def occupied(self, window: TimeRange | None = None) -> List[Reservation]:
        """Reservations intersecting `window` (all of them when no window)"""
        if window is None:
            return list(self._reservations)
        return self.conflicts(window)

    def suggest_next_slot(self, candidate: TimeRange, exclude_booking_id: UUID | None = None) -> TimeRange:
        """
        Earliest free range of the same duration starting at or after
        `candidate.start`
        """
        proposal = candidate
        while True:
            blocking = self.conflicts(proposal, exclude_booking_id)
            if not blocking:
                return proposal
            proposal = proposal.shifted_to(max(r.end for r in blocking))

    def __len__(self) -> int:
        return len(self._reservations)

    def __contains__(self, booking_id: UUID) -> bool:
        return booking_id in self._by_booking

    # ----- commands -----

    def reserve(self, booking_id: UUID, candidate: TimeRange) -> Reservation:
        """
        Reserve `candidate` for a booking

        Raises:
            ScheduleConflictError: the range overlaps an existing reservation,
                or the booking already holds a range here
        """
        if booking_id in self._by_booking:
            raise ScheduleConflictError(
                f"Booking {booking_id} already holds {self._by_booking[booking_id].range} "
                f"on resource {self.resource_id}",
                conflicts=[self._by_booking[booking_id].to_dict()],
            )
        self.ensure_free(candidate)
        reservation = self._insert(booking_id, candidate)

        from apps.bookings.domain.events import SlotReserved

        self.add_event(SlotReserved(
            aggregate_id=self.id,
            resource_id=self.resource_id,
            booking_id=booking_id,
            time_range=candidate,
        ))
        return reservation

    def release(self, booking_id: UUID) -> Reservation | None:
        """
        Free the range held by a booking

        Releasing a booking that holds nothing is a no-op.
        """
        reservation = self._by_booking.get(booking_id)
        if reservation is None:
            return None
        self._remove(reservation)

        from apps.bookings.domain.events import SlotReleased

        self.add_event(SlotReleased(
            aggregate_id=self.id,
            resource_id=self.resource_id,
            booking_id=booking_id,
            time_range=reservation.range,
        ))
        return reservation

    def replace(self, booking_id: UUID, new_range: TimeRange) -> Reservation:
        """
        Move a booking's reservation to `new_range` in one step

        The booking's own current range does not count as a conflict. When
        the new range collides with another booking the old reservation is
        left exactly as it was.
        """
        current = self._by_booking.get(booking_id)
        self.ensure_free(new_range, exclude_booking_id=booking_id)
        if current is not None:
            self._remove(current)
        reservation = self._insert(booking_id, new_range)

        from apps.bookings.domain.events import SlotMoved

        self.add_event(SlotMoved(
            aggregate_id=self.id,
            resource_id=self.resource_id,
            booking_id=booking_id,
            previous_range=current.range if current else None,
            time_range=new_range,
        ))
        return reservation

    def ensure_free(self, candidate: TimeRange, exclude_booking_id: UUID | None = None):
        """Raise ScheduleConflictError (with a suggested free range) if `candidate` is taken"""
        overlapping = self.conflicts(candidate, exclude_booking_id)
        if not overlapping:
            return
        suggested = self.suggest_next_slot(candidate, exclude_booking_id)
        first = overlapping[0]
        raise ScheduleConflictError(
            f"{candidate} overlaps {first.range} held by booking {first.booking_id} "
            f"on resource {self.resource_id}",
            conflicts=[r.to_dict() for r in overlapping],
            suggested_range=suggested.to_dict(),
        )

    # ----- internals -----

    def _insert(self, booking_id: UUID, candidate: TimeRange) -> Reservation:
        reservation = Reservation(candidate.start, candidate.end, booking_id)
        insort(self._reservations, reservation)
        self._starts.insert(bisect_left(self._starts, reservation.start), reservation.start)
        self._by_booking[booking_id] = reservation
        return reservation

    def _remove(self, reservation: Reservation):
        idx = bisect_left(self._reservations, reservation)
        while self._reservations[idx].booking_id != reservation.booking_id:
            idx += 1
        del self._reservations[idx]
        del self._starts[idx]
        del self._by_booking[reservation.booking_id]

    def __str__(self):
        return f"AvailabilityIndex(resource={self.resource_id}, reservations={len(self)})"
