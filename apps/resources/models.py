"""Resource registry models."""

from __future__ import annotations

import uuid

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Resource(models.Model):
    """A supplier or a venue that clients book.

    The row doubles as the per-resource lock: every mutation of the
    resource's reservations locks this row first.
    """

    class Kind(models.TextChoices):
        SUPPLIER = "supplier", _("Supplier")
        VENUE = "venue", _("Venue")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    kind = models.CharField(max_length=16, choices=Kind.choices)
    owner_id = models.CharField(
        max_length=64,
        db_index=True,
        help_text=_("User id of the supplier or venue owner, as issued by the identity service."),
    )
    name = models.CharField(max_length=255)
    capacity = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text=_("Maximum number of guests (venues)."),
    )
    slot_duration = models.DurationField(
        null=True,
        blank=True,
        help_text=_("Length of one booking when only a start is given (suppliers)."),
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Resource")
        verbose_name_plural = _("Resources")
        ordering = ["name"]
        indexes = [
            models.Index(fields=["kind", "is_active"], name="resource_kind_active_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.get_kind_display()} {self.name}"
