"""Read-only resource endpoints."""

from __future__ import annotations

from datetime import datetime, time

from django.utils import timezone  # type: ignore
from rest_framework import serializers  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.bookings.application.availability_service import AvailabilityService
from apps.bookings.infrastructure.repositories import DjangoResourceRepository
from apps.bookings.serializers import DateOrDateTimeField
from shared.domain.exceptions import BookingValidationError
from shared.domain.value_objects import TimeRange


class AvailabilityWindowSerializer(serializers.Serializer):
    start = DateOrDateTimeField(required=False)
    end = DateOrDateTimeField(required=False)


def _as_instant(value):
    if value is None or isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=timezone.get_current_timezone())


class ResourceAvailabilityView(APIView):
    """Occupied ranges of one resource, optionally limited to a window."""

    def get(self, request, resource_id):  # type: ignore
        resource = DjangoResourceRepository().get_active(resource_id)

        params = AvailabilityWindowSerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        start = _as_instant(params.validated_data.get("start"))
        end = _as_instant(params.validated_data.get("end"))

        window = None
        if start is not None or end is not None:
            if start is None or end is None:
                raise BookingValidationError("Give both `start` and `end`, or neither", field="end")
            if timezone.is_naive(start) or timezone.is_naive(end):
                raise BookingValidationError("Datetimes must include a timezone", field="start")
            window = TimeRange(start, end)

        occupied = AvailabilityService().occupied(resource.id, window)
        return Response({
            "resource_id": str(resource.id),
            "kind": resource.kind,
            "window": window.to_dict() if window else None,
            "occupied": [reservation.to_dict() for reservation in occupied],
        })
