"""Booking persistence models.

These rows are the storage side of the domain aggregates in
`apps.bookings.domain`; repositories translate between the two.
"""

from __future__ import annotations

import uuid

from django.db import models  # type: ignore
from django.db.models import F, Q  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Booking(models.Model):
    """A client's request to occupy a supplier or a venue."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        REJECTED = "rejected", _("Rejected")
        CANCELLED = "cancelled", _("Cancelled")
        COMPLETED = "completed", _("Completed")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    resource = models.ForeignKey(
        "resources.Resource",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    resource_kind = models.CharField(max_length=16)
    resource_owner_id = models.CharField(max_length=64)
    client_id = models.CharField(max_length=64)
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
    )
    event_type = models.CharField(max_length=100, blank=True)
    event_location = models.CharField(max_length=255, blank=True)
    guest_count = models.PositiveIntegerField(null=True, blank=True)
    notes = models.TextField(blank=True)
    remarks = models.CharField(max_length=255, blank=True)
    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(ends_at__gt=F("starts_at")),
                name="booking_valid_range",
            ),
        ]
        indexes = [
            models.Index(fields=["resource", "starts_at", "ends_at"], name="booking_resource_range_idx"),
            models.Index(fields=["client_id", "status"], name="booking_client_status_idx"),
            models.Index(fields=["resource_owner_id", "status"], name="booking_owner_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking {self.pk} for {self.resource_id} ({self.status})"


class RescheduleRequest(models.Model):
    """A proposal to move a confirmed booking; kept as history once resolved."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        APPROVED = "approved", _("Approved")
        REJECTED = "rejected", _("Rejected")
        WITHDRAWN = "withdrawn", _("Withdrawn")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking = models.ForeignKey(
        Booking,
        on_delete=models.CASCADE,
        related_name="reschedules",
    )
    proposed_by = models.CharField(max_length=64)
    original_starts_at = models.DateTimeField()
    original_ends_at = models.DateTimeField()
    requested_starts_at = models.DateTimeField()
    requested_ends_at = models.DateTimeField()
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
    )
    resolved_by = models.CharField(max_length=64, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        verbose_name = _("Reschedule request")
        verbose_name_plural = _("Reschedule requests")
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(requested_ends_at__gt=F("requested_starts_at")),
                name="reschedule_valid_range",
            ),
            models.UniqueConstraint(
                fields=["booking"],
                condition=Q(status="pending"),
                name="reschedule_single_pending",
            ),
        ]

    def __str__(self) -> str:
        return f"Reschedule {self.pk} of {self.booking_id} ({self.status})"


class Reservation(models.Model):
    """A range held in a resource's availability index by one booking."""

    resource = models.ForeignKey(
        "resources.Resource",
        on_delete=models.CASCADE,
        related_name="reservations",
    )
    booking = models.OneToOneField(
        Booking,
        on_delete=models.CASCADE,
        related_name="reservation",
    )
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()

    class Meta:
        verbose_name = _("Reservation")
        verbose_name_plural = _("Reservations")
        ordering = ["starts_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(ends_at__gt=F("starts_at")),
                name="reservation_valid_range",
            ),
        ]
        indexes = [
            models.Index(fields=["resource", "starts_at"], name="reservation_resource_start_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.resource_id} [{self.starts_at:%Y-%m-%d %H:%M}, {self.ends_at:%Y-%m-%d %H:%M})"
