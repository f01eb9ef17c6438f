"""API views for the booking domain.

Views only translate HTTP into commands: they build the caller's
RequestContext from the verified token and hand everything else to the
command handlers and queries in `apps.bookings.application`.
"""

from __future__ import annotations

from uuid import UUID

from rest_framework import status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.application.command_handlers import (
    ChangeBookingStatusCommand,
    ChangeBookingStatusHandler,
    CreateBookingCommand,
    CreateBookingHandler,
    ProposeRescheduleCommand,
    ProposeRescheduleHandler,
    RescheduleDecision,
    ResolveRescheduleCommand,
    ResolveRescheduleHandler,
    WithdrawRescheduleCommand,
    WithdrawRescheduleHandler,
)
from apps.bookings.application.queries import BookingQueries
from apps.bookings.domain.entities import BookingStatus, ResourceKind
from shared.domain.exceptions import BookingValidationError, NotFoundError
from shared.infrastructure.identity import request_context

from .serializers import (
    BookingCreateSerializer,
    BookingSerializer,
    BookingStatusSerializer,
    EmptySerializer,
    RescheduleProposeSerializer,
    RescheduleResolveSerializer,
    RescheduleSerializer,
)

UUID_PATTERN = r"[0-9a-fA-F]{8}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{12}"


def parse_uuid(value, what: str) -> UUID:
    try:
        return UUID(str(value))
    except ValueError:
        raise NotFoundError(f"{what} {value} not found")


class BookingViewSet(viewsets.ViewSet):
    """Create, list and drive bookings through their lifecycle."""

    lookup_value_regex = UUID_PATTERN

    def get_serializer_class(self):  # type: ignore
        return {
            "create": BookingCreateSerializer,
            "change_status": BookingStatusSerializer,
            "reschedule": RescheduleProposeSerializer,
        }.get(self.action, BookingSerializer)

    def list(self, request):  # type: ignore
        perspective = request.query_params.get("as")
        if perspective not in (None, "", "client", "owner"):
            raise BookingValidationError("`as` must be `client` or `owner`", field="as")
        status_param = request.query_params.get("status")
        try:
            status_filter = BookingStatus(status_param) if status_param else None
        except ValueError:
            raise BookingValidationError(f"Unknown status {status_param!r}", field="status")

        bookings = BookingQueries().list(
            request_context(request),
            as_owner=None if not perspective else perspective == "owner",
            status=status_filter,
        )
        return Response(BookingSerializer(bookings, many=True).data)

    def retrieve(self, request, pk=None):  # type: ignore
        booking = BookingQueries().get(request_context(request), parse_uuid(pk, "Booking"))
        return Response(BookingSerializer(booking).data)

    def create(self, request):  # type: ignore
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = CreateBookingHandler().handle(CreateBookingCommand(
            context=request_context(request),
            resource_id=data["resource_id"],
            resource_kind=ResourceKind(data["resource_kind"]),
            start=data["start"],
            end=data["end"],
            details=serializer.validated_details(),
        ))
        booking = result.booking
        return Response(
            {
                "booking_id": str(booking.id),
                "status": booking.status.value,
                "capacity_warning": result.capacity_warning,
                "booking": BookingSerializer(booking).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request, pk=None):  # type: ignore
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = ChangeBookingStatusHandler().handle(ChangeBookingStatusCommand(
            context=request_context(request),
            booking_id=parse_uuid(pk, "Booking"),
            target_status=BookingStatus(serializer.validated_data["target_status"]),
            reason=serializer.validated_data["reason"],
        ))
        return Response({
            "booking_id": str(booking.id),
            "status": booking.status.value,
            "booking": BookingSerializer(booking).data,
        })

    @action(detail=True, methods=["post"])
    def reschedule(self, request, pk=None):  # type: ignore
        serializer = RescheduleProposeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        reschedule = ProposeRescheduleHandler().handle(ProposeRescheduleCommand(
            context=request_context(request),
            booking_id=parse_uuid(pk, "Booking"),
            start=serializer.validated_data["start"],
            end=serializer.validated_data["end"],
        ))
        return Response(
            {
                "reschedule_id": str(reschedule.id),
                "status": reschedule.status.value,
                "reschedule": RescheduleSerializer(reschedule).data,
            },
            status=status.HTTP_201_CREATED,
        )


class RescheduleViewSet(viewsets.ViewSet):
    """Resolve or withdraw pending reschedule requests."""

    lookup_value_regex = UUID_PATTERN

    def get_serializer_class(self):  # type: ignore
        return RescheduleResolveSerializer if self.action == "resolve" else EmptySerializer

    @action(detail=True, methods=["post"])
    def resolve(self, request, pk=None):  # type: ignore
        serializer = RescheduleResolveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking, reschedule = ResolveRescheduleHandler().handle(ResolveRescheduleCommand(
            context=request_context(request),
            reschedule_id=parse_uuid(pk, "Reschedule"),
            decision=RescheduleDecision(serializer.validated_data["decision"]),
        ))
        return Response({
            "booking": BookingSerializer(booking).data,
            "reschedule": RescheduleSerializer(reschedule).data,
        })

    @action(detail=True, methods=["post"])
    def withdraw(self, request, pk=None):  # type: ignore
        EmptySerializer(data=request.data).is_valid(raise_exception=True)

        booking, reschedule = WithdrawRescheduleHandler().handle(WithdrawRescheduleCommand(
            context=request_context(request),
            reschedule_id=parse_uuid(pk, "Reschedule"),
        ))
        return Response({
            "booking": BookingSerializer(booking).data,
            "reschedule": RescheduleSerializer(reschedule).data,
        })
