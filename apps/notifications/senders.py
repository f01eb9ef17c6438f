"""Notification senders.

The sender is chosen by dotted path in
``BOOKING_ENGINE["NOTIFICATION_SENDER"]``. Real delivery channels
(email, push, messengers) live outside this service and plug in here.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field

from django.conf import settings  # type: ignore
from django.utils.module_loading import import_string  # type: ignore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """One message for one recipient"""
    recipient_id: str
    event_type: str
    title: str
    message: str
    booking_id: str
    payload: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Notification":
        return cls(**data)


class BaseSender(ABC):
    """Base class for senders"""

    @abstractmethod
    def send(self, notification: Notification) -> dict:
        pass


class LoggingSender(BaseSender):
    """Writes the notification to the log"""

    def send(self, notification: Notification) -> dict:
        logger.info(
            f"Notify {notification.recipient_id}: {notification.title}",
            extra={"notification": notification.to_dict()},
        )
        return {"success": True, "message": "Logged"}


# Collected by LocmemSender, the way django.core.mail's locmem backend fills mail.outbox
outbox: list[Notification] = []


class LocmemSender(BaseSender):
    """Keeps notifications in memory (tests)"""

    def send(self, notification: Notification) -> dict:
        outbox.append(notification)
        return {"success": True, "message": "Stored in outbox"}


def get_sender() -> BaseSender:
    path = settings.BOOKING_ENGINE.get("NOTIFICATION_SENDER", "apps.notifications.senders.LoggingSender")
    return import_string(path)()
