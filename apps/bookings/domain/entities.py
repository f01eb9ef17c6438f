"""
Booking Domain Entities

Core business entities for the booking domain:
- Booking: aggregate representing a client's request to occupy a resource
- RescheduleRequest: a proposal to move a confirmed booking
- BookingStatus / RescheduleStatus: closed state sets
- ResourceKind: supplier or venue
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List
from uuid import UUID, uuid4

from shared.domain.base import Aggregate, Entity, utcnow
from shared.domain.exceptions import ForbiddenError, InvalidTransitionError, NotFoundError
from shared.domain.value_objects import TimeRange


class ResourceKind(Enum):
    SUPPLIER = 'supplier'
    VENUE = 'venue'


class BookingStatus(Enum):
    """
    Booking Status Finite State Machine

    State transitions:
    - PENDING -> CONFIRMED (resource owner accepts)
    - PENDING -> REJECTED (resource owner rejects)
    - PENDING -> CANCELLED (client cancels)
    - CONFIRMED -> PENDING (a reschedule is proposed)
    - CONFIRMED -> CANCELLED (client cancels)
    - CONFIRMED -> COMPLETED (resource owner marks the event done)
    """
    PENDING = 'pending'            # Awaiting the owner, or a reschedule
    CONFIRMED = 'confirmed'
    REJECTED = 'rejected'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def occupies_slot(self) -> bool:
        return self in OCCUPYING_STATUSES


OCCUPYING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})
TERMINAL_STATUSES = frozenset({BookingStatus.REJECTED, BookingStatus.CANCELLED, BookingStatus.COMPLETED})


class RescheduleStatus(Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    WITHDRAWN = 'withdrawn'


@dataclass(frozen=True)
class BookingDetails:
    """Fixed descriptive payload of a booking request"""
    event_type: str = ''
    event_location: str = ''
    guest_count: int | None = None
    notes: str = ''

    def to_dict(self) -> dict:
        return {
            'event_type': self.event_type,
            'event_location': self.event_location,
            'guest_count': self.guest_count,
            'notes': self.notes,
        }


@dataclass(eq=False, kw_only=True)
class RescheduleRequest(Entity):
    """
    Proposal to move a confirmed booking to another time range

    The original range is a snapshot taken at proposal time. Resolved
    requests stay attached to the booking as history.
    """
    booking_id: UUID
    proposed_by: str
    original_range: TimeRange
    requested_range: TimeRange
    status: RescheduleStatus = RescheduleStatus.PENDING
    resolved_at: datetime | None = None
    resolved_by: str = ''

    @property
    def is_pending(self) -> bool:
        return self.status == RescheduleStatus.PENDING

    def _resolve(self, status: RescheduleStatus, actor_id: str, now: datetime):
        if not self.is_pending:
            raise InvalidTransitionError(
                f"Reschedule {self.id} is already {self.status.value}",
                current_status=self.status.value,
            )
        self.status = status
        self.resolved_by = actor_id
        self.resolved_at = now
        self.touch(now)


@dataclass(eq=False, kw_only=True)
class Booking(Aggregate):
    """
    Booking Aggregate Root

    Key invariants:
    - time_range is a valid half-open range
    - Terminal statuses (rejected, cancelled, completed) never change again
    - At most one pending reschedule; while it is outstanding the status is
      PENDING and time_range stays the originally confirmed range
    - PENDING and CONFIRMED bookings hold their range in the availability
      index (the application layer keeps both in one transaction)
    """

    resource_id: UUID
    resource_kind: ResourceKind
    resource_owner_id: str
    client_id: str
    time_range: TimeRange
    status: BookingStatus = BookingStatus.PENDING
    details: BookingDetails = field(default_factory=BookingDetails)
    remarks: str = ''
    reschedules: List[RescheduleRequest] = field(default_factory=list)

    @classmethod
    def request(
        cls,
        *,
        resource_id: UUID,
        resource_kind: ResourceKind,
        resource_owner_id: str,
        client_id: str,
        time_range: TimeRange,
        details: BookingDetails | None = None,
        now: datetime | None = None,
    ) -> 'Booking':
        """
        Create a new PENDING booking request

        Events: BookingRequested
        """
        now = now or utcnow()
        booking = cls(
            id=uuid4(),
            resource_id=resource_id,
            resource_kind=resource_kind,
            resource_owner_id=resource_owner_id,
            client_id=client_id,
            time_range=time_range,
            details=details or BookingDetails(),
            created_at=now,
            updated_at=now,
        )

        from apps.bookings.domain.events import BookingRequested

        booking.add_event(BookingRequested(
            aggregate_id=booking.id,
            booking_id=booking.id,
            resource_id=resource_id,
            resource_kind=resource_kind,
            client_id=client_id,
            owner_id=resource_owner_id,
            time_range=time_range,
        ))
        return booking

    # ----- parties -----

    def is_client(self, actor_id: str) -> bool:
        return str(actor_id) == str(self.client_id)

    def is_owner(self, actor_id: str) -> bool:
        return str(actor_id) == str(self.resource_owner_id)

    def is_stakeholder(self, actor_id: str) -> bool:
        return self.is_client(actor_id) or self.is_owner(actor_id)

    def counterparty_of(self, actor_id: str) -> str:
        return self.resource_owner_id if self.is_client(actor_id) else self.client_id

    def ensure_stakeholder(self, actor_id: str):
        if not self.is_stakeholder(actor_id):
            raise ForbiddenError(f"User {actor_id} is neither the client nor the owner of booking {self.id}")

    # ----- reschedule view -----

    @property
    def active_reschedule(self) -> RescheduleRequest | None:
        return next((r for r in self.reschedules if r.is_pending), None)

    def get_reschedule(self, reschedule_id: UUID) -> RescheduleRequest | None:
        return next((r for r in self.reschedules if r.id == reschedule_id), None)

    @property
    def occupies_slot(self) -> bool:
        return self.status.occupies_slot

    # ----- transitions -----

    def accept(self, actor_id: str, now: datetime | None = None):
        """
        Accept the request (PENDING -> CONFIRMED)

        Events: BookingAccepted
        """
        self._require_owner(actor_id, 'accept')
        self._require_status('accept', BookingStatus.PENDING)
        self._require_no_reschedule('accept')

        from apps.bookings.domain.events import BookingAccepted

        self._transition(BookingStatus.CONFIRMED, now)
        self.add_event(BookingAccepted(
            aggregate_id=self.id,
            booking_id=self.id,
            resource_id=self.resource_id,
            client_id=self.client_id,
            owner_id=self.resource_owner_id,
            time_range=self.time_range,
        ))

    def reject(self, actor_id: str, reason: str = '', now: datetime | None = None):
        """
        Reject the request (PENDING -> REJECTED)

        Events: BookingRejected
        """
        self._require_owner(actor_id, 'reject')
        self._require_status('reject', BookingStatus.PENDING)
        self._require_no_reschedule('reject')

        from apps.bookings.domain.events import BookingRejected

        self._transition(BookingStatus.REJECTED, now)
        self.remarks = reason
        self.add_event(BookingRejected(
            aggregate_id=self.id,
            booking_id=self.id,
            resource_id=self.resource_id,
            client_id=self.client_id,
            owner_id=self.resource_owner_id,
            reason=reason,
        ))

    def cancel(self, actor_id: str, reason: str = '', now: datetime | None = None):
        """
        Cancel the booking (PENDING or CONFIRMED -> CANCELLED)

        A pending reschedule is withdrawn along with the booking.
        Events: BookingCancelled
        """
        self.ensure_stakeholder(actor_id)
        if not self.is_client(actor_id):
            raise ForbiddenError(f"Only the client can cancel booking {self.id}")
        self._require_status('cancel', BookingStatus.PENDING, BookingStatus.CONFIRMED)

        now = now or utcnow()
        pending = self.active_reschedule
        if pending is not None:
            pending._resolve(RescheduleStatus.WITHDRAWN, actor_id, now)

        from apps.bookings.domain.events import BookingCancelled

        old_status = self.status
        self._transition(BookingStatus.CANCELLED, now)
        self.remarks = reason
        self.add_event(BookingCancelled(
            aggregate_id=self.id,
            booking_id=self.id,
            resource_id=self.resource_id,
            client_id=self.client_id,
            owner_id=self.resource_owner_id,
            reason=reason,
            old_status=old_status.value,
        ))

    def complete(self, actor_id: str, now: datetime | None = None, require_started: bool = True):
        """
        Mark the event as done (CONFIRMED -> COMPLETED)

        With `require_started` the event must already have begun.
        Events: BookingCompleted
        """
        self._require_owner(actor_id, 'complete')
        self._require_status('complete', BookingStatus.CONFIRMED)
        now = now or utcnow()
        if require_started and self.time_range.start > now:
            raise InvalidTransitionError(
                f"Booking {self.id} cannot be completed before the event starts "
                f"({self.time_range.start.isoformat()})",
                current_status=self.status.value,
            )

        from apps.bookings.domain.events import BookingCompleted

        self._transition(BookingStatus.COMPLETED, now)
        self.add_event(BookingCompleted(
            aggregate_id=self.id,
            booking_id=self.id,
            resource_id=self.resource_id,
            client_id=self.client_id,
            owner_id=self.resource_owner_id,
        ))

    # ----- reschedule workflow -----

    def propose_reschedule(self, proposer_id: str, new_range: TimeRange, now: datetime | None = None) -> RescheduleRequest:
        """
        Attach a pending reschedule (CONFIRMED -> PENDING)

        `new_range` must also pass the conflict detector in the same
        transaction. The booking keeps its current range until the request
        is approved.
        Events: RescheduleProposed
        """
        self.ensure_stakeholder(proposer_id)
        if self.active_reschedule is not None:
            raise InvalidTransitionError(
                f"Booking {self.id} already has a pending reschedule",
                current_status=self.status.value,
                reschedule_id=str(self.active_reschedule.id),
            )
        self._require_status('reschedule', BookingStatus.CONFIRMED)

        now = now or utcnow()
        request = RescheduleRequest(
            id=uuid4(),
            booking_id=self.id,
            proposed_by=str(proposer_id),
            original_range=self.time_range,
            requested_range=new_range,
            created_at=now,
            updated_at=now,
        )
        self.reschedules.append(request)
        self._transition(BookingStatus.PENDING, now)

        from apps.bookings.domain.events import RescheduleProposed

        self.add_event(RescheduleProposed(
            aggregate_id=self.id,
            booking_id=self.id,
            reschedule_id=request.id,
            resource_id=self.resource_id,
            proposed_by=request.proposed_by,
            recipient_id=self.counterparty_of(proposer_id),
            original_range=request.original_range,
            requested_range=new_range,
        ))
        return request

    def approve_reschedule(self, reschedule_id: UUID, approver_id: str, now: datetime | None = None) -> RescheduleRequest:
        """
        Apply a pending reschedule (PENDING -> CONFIRMED on the new range)

        The reservation is moved in the same transaction; a conflict there
        aborts the whole change and the request stays pending.
        Events: RescheduleApproved
        """
        request = self._find_reschedule(reschedule_id)
        self._require_counterparty(request, approver_id)
        self._require_pending(request)

        now = now or utcnow()
        request._resolve(RescheduleStatus.APPROVED, approver_id, now)
        self.time_range = request.requested_range
        self.remarks = f"Rescheduled to {request.requested_range.start.strftime('%d %B %Y %H:%M')}"
        self._transition(BookingStatus.CONFIRMED, now)

        from apps.bookings.domain.events import RescheduleApproved

        self.add_event(RescheduleApproved(
            aggregate_id=self.id,
            booking_id=self.id,
            reschedule_id=request.id,
            resource_id=self.resource_id,
            resolved_by=str(approver_id),
            recipient_id=request.proposed_by,
            original_range=request.original_range,
            time_range=self.time_range,
        ))
        return request

    def reject_reschedule(self, reschedule_id: UUID, approver_id: str, now: datetime | None = None) -> RescheduleRequest:
        """
        Decline a pending reschedule (PENDING -> CONFIRMED on the original range)

        Events: RescheduleRejected
        """
        request = self._find_reschedule(reschedule_id)
        self._require_counterparty(request, approver_id)
        self._require_pending(request)

        now = now or utcnow()
        request._resolve(RescheduleStatus.REJECTED, approver_id, now)
        self._transition(BookingStatus.CONFIRMED, now)

        from apps.bookings.domain.events import RescheduleRejected

        self.add_event(RescheduleRejected(
            aggregate_id=self.id,
            booking_id=self.id,
            reschedule_id=request.id,
            resource_id=self.resource_id,
            resolved_by=str(approver_id),
            recipient_id=request.proposed_by,
            time_range=self.time_range,
        ))
        return request

    def withdraw_reschedule(self, reschedule_id: UUID, proposer_id: str, now: datetime | None = None) -> RescheduleRequest:
        """
        Proposer takes back a pending reschedule (PENDING -> CONFIRMED)

        Events: RescheduleWithdrawn
        """
        request = self._find_reschedule(reschedule_id)
        self.ensure_stakeholder(proposer_id)
        if str(proposer_id) != request.proposed_by:
            raise ForbiddenError(f"Only the proposer can withdraw reschedule {request.id}")
        self._require_pending(request)

        now = now or utcnow()
        request._resolve(RescheduleStatus.WITHDRAWN, proposer_id, now)
        self._transition(BookingStatus.CONFIRMED, now)

        from apps.bookings.domain.events import RescheduleWithdrawn

        self.add_event(RescheduleWithdrawn(
            aggregate_id=self.id,
            booking_id=self.id,
            reschedule_id=request.id,
            resource_id=self.resource_id,
            recipient_id=self.counterparty_of(proposer_id),
        ))
        return request

    # ----- guards -----

    def _transition(self, status: BookingStatus, now: datetime | None):
        self.status = status
        self.touch(now)

    def _require_status(self, action: str, *allowed: BookingStatus):
        if self.status not in allowed:
            raise InvalidTransitionError(
                f"Cannot {action} booking {self.id} from status {self.status.value}",
                current_status=self.status.value,
            )

    def _require_owner(self, actor_id: str, action: str):
        self.ensure_stakeholder(actor_id)
        if not self.is_owner(actor_id):
            raise ForbiddenError(f"Only the resource owner can {action} booking {self.id}")

    def _require_no_reschedule(self, action: str):
        pending = self.active_reschedule
        if pending is not None:
            raise InvalidTransitionError(
                f"Cannot {action} booking {self.id} while reschedule {pending.id} is pending",
                current_status=self.status.value,
                reschedule_id=str(pending.id),
            )

    def _find_reschedule(self, reschedule_id: UUID) -> RescheduleRequest:
        request = self.get_reschedule(reschedule_id)
        if request is None:
            raise NotFoundError(f"Reschedule {reschedule_id} not found on booking {self.id}")
        return request

    def _require_pending(self, request: RescheduleRequest):
        if not request.is_pending:
            raise InvalidTransitionError(
                f"Reschedule {request.id} is already {request.status.value}",
                current_status=request.status.value,
            )

    def _require_counterparty(self, request: RescheduleRequest, actor_id: str):
        self.ensure_stakeholder(actor_id)
        if str(actor_id) == request.proposed_by:
            raise ForbiddenError(f"Reschedule {request.id} must be resolved by the other party")

    def __str__(self):
        return f"Booking {self.id} ({self.status.value})"

    def __repr__(self):
        return (
            f"Booking(id={self.id}, resource_id={self.resource_id}, "
            f"status={self.status.value}, time_range={self.time_range!r})"
        )
