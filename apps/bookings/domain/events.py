"""
Booking Domain Events

Events that represent accepted transitions in the booking domain.
They are published after the transaction that produced them commits.
"""

from dataclasses import dataclass
from uuid import UUID

from apps.bookings.domain.entities import ResourceKind
from shared.domain.base import DomainEvent
from shared.domain.value_objects import TimeRange


# ===== Booking Events =====

@dataclass(kw_only=True)
class BookingRequested(DomainEvent):
    """
    Event: A client requested a resource (-> PENDING)

    Triggers:
    - Notify the resource owner about the new request
    """
    booking_id: UUID
    resource_id: UUID
    resource_kind: ResourceKind
    client_id: str
    owner_id: str
    time_range: TimeRange


@dataclass(kw_only=True)
class BookingAccepted(DomainEvent):
    """
    Event: The resource owner accepted the request (PENDING -> CONFIRMED)

    Triggers:
    - Notify the client
    """
    booking_id: UUID
    resource_id: UUID
    client_id: str
    owner_id: str
    time_range: TimeRange


@dataclass(kw_only=True)
class BookingRejected(DomainEvent):
    """
    Event: The resource owner rejected the request (PENDING -> REJECTED)

    Triggers:
    - Notify the client
    - Slot is freed (SlotReleased is emitted alongside)
    """
    booking_id: UUID
    resource_id: UUID
    client_id: str
    owner_id: str
    reason: str


@dataclass(kw_only=True)
class BookingCancelled(DomainEvent):
    """
    Event: The client cancelled the booking

    Triggers:
    - Notify the resource owner
    - Slot is freed (SlotReleased is emitted alongside)
    """
    booking_id: UUID
    resource_id: UUID
    client_id: str
    owner_id: str
    reason: str
    old_status: str


@dataclass(kw_only=True)
class BookingCompleted(DomainEvent):
    """
    Event: The resource owner marked the event as done (CONFIRMED -> COMPLETED)

    Triggers:
    - Notify the client that feedback can be left
    """
    booking_id: UUID
    resource_id: UUID
    client_id: str
    owner_id: str


# ===== Reschedule Events =====

@dataclass(kw_only=True)
class RescheduleProposed(DomainEvent):
    """Event: A party proposed a new time for a confirmed booking"""
    booking_id: UUID
    reschedule_id: UUID
    resource_id: UUID
    proposed_by: str
    recipient_id: str
    original_range: TimeRange
    requested_range: TimeRange


@dataclass(kw_only=True)
class RescheduleApproved(DomainEvent):
    """Event: The counter-party approved; the booking moved to the new range"""
    booking_id: UUID
    reschedule_id: UUID
    resource_id: UUID
    resolved_by: str
    recipient_id: str
    original_range: TimeRange
    time_range: TimeRange


@dataclass(kw_only=True)
class RescheduleRejected(DomainEvent):
    """Event: The counter-party declined; the booking keeps its original range"""
    booking_id: UUID
    reschedule_id: UUID
    resource_id: UUID
    resolved_by: str
    recipient_id: str
    time_range: TimeRange


@dataclass(kw_only=True)
class RescheduleWithdrawn(DomainEvent):
    """Event: The proposer took the reschedule back"""
    booking_id: UUID
    reschedule_id: UUID
    resource_id: UUID
    recipient_id: str


# ===== Availability Events =====

@dataclass(kw_only=True)
class SlotReserved(DomainEvent):
    """
    Event: A range was reserved in the availability index

    The range is now blocked for the resource.
    """
    resource_id: UUID
    booking_id: UUID
    time_range: TimeRange


@dataclass(kw_only=True)
class SlotReleased(DomainEvent):
    """
    Event: A range was released from the availability index

    The range is available again.
    """
    resource_id: UUID
    booking_id: UUID
    time_range: TimeRange


@dataclass(kw_only=True)
class SlotMoved(DomainEvent):
    """Event: A booking's reservation was replaced by another range"""
    resource_id: UUID
    booking_id: UUID
    previous_range: TimeRange | None
    time_range: TimeRange
