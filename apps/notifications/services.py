"""Notification Emitter: turns booking events into notifications."""

from __future__ import annotations

import logging
from typing import Callable, NamedTuple

from apps.bookings.domain import events
from shared.application.message_bus import message_bus
from shared.domain.base import DomainEvent

from .senders import Notification
from .tasks import deliver_notification

logger = logging.getLogger(__name__)


class Template(NamedTuple):
    recipient: Callable[[DomainEvent], str]
    title: str
    message: str


def _owner(event) -> str:
    return event.owner_id


def _client(event) -> str:
    return event.client_id


def _recipient(event) -> str:
    return event.recipient_id


# Message templates are formatted with the event payload
TEMPLATES: dict[type, Template] = {
    events.BookingRequested: Template(
        _owner, "New booking request",
        "Booking {booking_id} asks for {time_range[start]} - {time_range[end]}.",
    ),
    events.BookingAccepted: Template(
        _client, "Booking confirmed",
        "Your booking {booking_id} for {time_range[start]} - {time_range[end]} is confirmed.",
    ),
    events.BookingRejected: Template(
        _client, "Booking rejected",
        "Your booking {booking_id} was rejected. {reason}",
    ),
    events.BookingCancelled: Template(
        _owner, "Booking cancelled",
        "Booking {booking_id} was cancelled by the client. {reason}",
    ),
    events.BookingCompleted: Template(
        _client, "Booking completed",
        "Booking {booking_id} is completed. Thank you!",
    ),
    events.RescheduleProposed: Template(
        _recipient, "Reschedule requested",
        "Booking {booking_id}: move from {original_range[start]} to {requested_range[start]}?",
    ),
    events.RescheduleApproved: Template(
        _recipient, "Reschedule approved",
        "Booking {booking_id} now runs {time_range[start]} - {time_range[end]}.",
    ),
    events.RescheduleRejected: Template(
        _recipient, "Reschedule rejected",
        "Booking {booking_id} stays on {time_range[start]} - {time_range[end]}.",
    ),
    events.RescheduleWithdrawn: Template(
        _recipient, "Reschedule withdrawn",
        "The reschedule of booking {booking_id} was withdrawn.",
    ),
}


def build_notification(event: DomainEvent) -> Notification:
    template = TEMPLATES[type(event)]
    data = event.to_dict()
    payload = data["payload"]
    return Notification(
        recipient_id=str(template.recipient(event)),
        event_type=data["event_type"],
        title=template.title,
        message=template.message.format(**payload).strip(),
        booking_id=payload["booking_id"],
        payload=payload,
    )


def notify(event: DomainEvent) -> None:
    """Message bus subscriber: queue a notification for the event"""
    notification = build_notification(event)
    deliver_notification.delay(notification.to_dict())
    logger.info(f"Queued {notification.event_type} notification for {notification.recipient_id}")


def register_handlers() -> None:
    for event_type in TEMPLATES:
        message_bus.register_event_handler(event_type, notify)
