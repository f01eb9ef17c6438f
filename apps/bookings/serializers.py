"""Serializers for the booking API.

Input serializers reject fields they do not declare. Output serializers read
straight from the domain aggregates returned by the command handlers.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime

from django.utils.dateparse import parse_date, parse_datetime  # type: ignore
from rest_framework import serializers  # type: ignore

from apps.bookings.application.command_handlers import RescheduleDecision
from apps.bookings.domain.entities import BookingDetails, BookingStatus, ResourceKind

STATUS_TARGETS = [
    BookingStatus.CONFIRMED.value,
    BookingStatus.REJECTED.value,
    BookingStatus.CANCELLED.value,
    BookingStatus.COMPLETED.value,
]


class StrictFieldsMixin:
    """Fail validation on keys the serializer does not declare."""

    def to_internal_value(self, data):  # type: ignore
        if isinstance(data, Mapping):
            unknown = sorted(set(data) - set(self.fields))
            if unknown:
                raise serializers.ValidationError({name: ["Unknown field."] for name in unknown})
        return super().to_internal_value(data)


class DateOrDateTimeField(serializers.Field):
    """ISO 8601 date (whole-day venue bookings) or datetime.

    Naive datetimes are passed through untouched; the conflict detector
    rejects them with a proper error.
    """

    default_error_messages = {
        "invalid": "Expected an ISO 8601 date or datetime.",
    }

    def to_internal_value(self, data):  # type: ignore
        if isinstance(data, (date, datetime)):
            return data
        if not isinstance(data, str):
            self.fail("invalid")
        try:
            parsed = parse_date(data) or parse_datetime(data)
        except ValueError:
            parsed = None
        if parsed is None:
            self.fail("invalid")
        return parsed

    def to_representation(self, value):  # type: ignore
        return value.isoformat()


class BookingDetailsSerializer(StrictFieldsMixin, serializers.Serializer):
    event_type = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    event_location = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    guest_count = serializers.IntegerField(min_value=1, required=False, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class BookingCreateSerializer(StrictFieldsMixin, serializers.Serializer):
    """Booking request from a client."""

    resource_id = serializers.UUIDField()
    resource_kind = serializers.ChoiceField(choices=[kind.value for kind in ResourceKind])
    start = DateOrDateTimeField()
    end = DateOrDateTimeField(required=False, allow_null=True, default=None)
    details = BookingDetailsSerializer(required=False)

    def validated_details(self) -> BookingDetails:
        return BookingDetails(**self.validated_data.get("details", {}))


class BookingStatusSerializer(StrictFieldsMixin, serializers.Serializer):
    target_status = serializers.ChoiceField(choices=STATUS_TARGETS)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class RescheduleProposeSerializer(StrictFieldsMixin, serializers.Serializer):
    start = DateOrDateTimeField()
    end = DateOrDateTimeField(required=False, allow_null=True, default=None)


class RescheduleResolveSerializer(StrictFieldsMixin, serializers.Serializer):
    decision = serializers.ChoiceField(choices=[decision.value for decision in RescheduleDecision])


class EmptySerializer(StrictFieldsMixin, serializers.Serializer):
    """Body of actions that take no input."""


# ----- output -----


class RescheduleSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    booking_id = serializers.UUIDField()
    proposed_by = serializers.CharField()
    original_start = serializers.DateTimeField(source="original_range.start")
    original_end = serializers.DateTimeField(source="original_range.end")
    requested_start = serializers.DateTimeField(source="requested_range.start")
    requested_end = serializers.DateTimeField(source="requested_range.end")
    status = serializers.CharField(source="status.value")
    resolved_by = serializers.CharField()
    resolved_at = serializers.DateTimeField(allow_null=True)
    created_at = serializers.DateTimeField()


class BookingSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    resource_id = serializers.UUIDField()
    resource_kind = serializers.CharField(source="resource_kind.value")
    client_id = serializers.CharField()
    owner_id = serializers.CharField(source="resource_owner_id")
    start = serializers.DateTimeField(source="time_range.start")
    end = serializers.DateTimeField(source="time_range.end")
    status = serializers.CharField(source="status.value")
    details = serializers.SerializerMethodField()
    remarks = serializers.CharField()
    version = serializers.IntegerField()
    active_reschedule_id = serializers.SerializerMethodField()
    reschedules = RescheduleSerializer(many=True)
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()

    def get_details(self, obj) -> dict:  # type: ignore
        return obj.details.to_dict()

    def get_active_reschedule_id(self, obj) -> str | None:  # type: ignore
        active = obj.active_reschedule
        return str(active.id) if active else None
