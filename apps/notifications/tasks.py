"""Celery tasks for notification delivery."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .senders import Notification, get_sender

logger = logging.getLogger(__name__)


@shared_task(name="notifications.deliver_notification", bind=True, max_retries=3, default_retry_delay=30)
def deliver_notification(self, data: dict) -> dict:
    """Hand one notification to the configured sender."""

    notification = Notification.from_dict(data)
    result = get_sender().send(notification)
    if not result.get("success"):
        logger.warning(
            f"Delivery of {notification.event_type} to {notification.recipient_id} failed: "
            f"{result.get('error')}"
        )
        raise self.retry(exc=RuntimeError(result.get("error", "delivery failed")))
    return result
