"""Read side of the booking engine."""

from typing import List
from uuid import UUID

from apps.bookings.domain.entities import Booking, BookingStatus
from apps.bookings.infrastructure.repositories import DjangoBookingRepository
from shared.application.context import RequestContext


class BookingQueries:

    def __init__(self, booking_repo=None):
        self.booking_repo = booking_repo or DjangoBookingRepository()

    def get(self, context: RequestContext, booking_id: UUID) -> Booking:
        """Booking details, visible to its client and its resource owner only"""
        booking = self.booking_repo.get(booking_id)
        booking.ensure_stakeholder(context.actor_id)
        return booking

    def list(self, context: RequestContext, *, as_owner: bool | None = None, status: BookingStatus | None = None) -> List[Booking]:
        """
        The caller's bookings with their reschedule history

        Without an explicit perspective, owners see bookings of their
        resources and clients see their own requests.
        """
        if as_owner is None:
            as_owner = context.role.is_resource_owner
        return self.booking_repo.list_for_actor(context.actor_id, as_owner=as_owner, status=status)
