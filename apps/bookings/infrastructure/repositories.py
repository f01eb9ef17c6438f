"""
Django repositories for the booking aggregates

Translate between ORM rows (`apps.bookings.models`, `apps.resources.models`)
and the domain aggregates. The availability repository owns the
per-resource critical section: loading an index with `lock=True` locks the
resource row for the rest of the transaction.
"""

from typing import List
from uuid import UUID
import logging

from django.db import connection, transaction
from django.db.models import F

from apps.bookings import models as orm
from apps.bookings.domain.availability import AvailabilityIndex, Reservation
from apps.bookings.domain.entities import (
    Booking,
    BookingDetails,
    BookingStatus,
    RescheduleRequest,
    RescheduleStatus,
    ResourceKind,
)
from apps.resources.models import Resource
from shared.domain.exceptions import ConcurrentModificationError, NotFoundError
from shared.domain.value_objects import TimeRange

logger = logging.getLogger(__name__)


def _lock_resource_row(resource_id: UUID) -> Resource:
    """
    Take the per-resource lock and return the locked row

    SELECT ... FOR UPDATE where supported. SQLite has no row locks, so a
    no-op UPDATE grabs the database write lock up front; a competing writer
    then fails fast with OperationalError, which the unit of work retries.
    """
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("Resource locks are only meaningful inside transaction.atomic()")

    queryset = Resource.objects.filter(pk=resource_id)
    if connection.features.has_select_for_update:
        return queryset.select_for_update().get()
    queryset.update(updated_at=F('updated_at'))
    return queryset.get()


class DjangoResourceRepository:
    """Read access to the resource registry"""

    def get_active(self, resource_id: UUID, *, lock: bool = False) -> Resource:
        """Active resource by id; NotFoundError for unknown or inactive ones"""
        try:
            if lock:
                resource = _lock_resource_row(resource_id)
            else:
                resource = Resource.objects.get(pk=resource_id)
        except Resource.DoesNotExist:
            raise NotFoundError(f"Resource {resource_id} not found")
        if not resource.is_active:
            raise NotFoundError(f"Resource {resource_id} not found")
        return resource


class DjangoAvailabilityRepository:
    """Loads and stores AvailabilityIndex aggregates"""

    def get_for_resource(self, resource_id: UUID, *, lock: bool = True) -> AvailabilityIndex:
        """
        Load the availability index of one resource

        With `lock=True` (the default for writers) the resource row is
        locked first, so no other writer can change the index until the
        surrounding transaction ends.
        """
        if lock:
            try:
                _lock_resource_row(resource_id)
            except Resource.DoesNotExist:
                raise NotFoundError(f"Resource {resource_id} not found")

        rows = orm.Reservation.objects.filter(resource_id=resource_id).order_by('starts_at')
        return AvailabilityIndex.from_reservations(
            resource_id,
            (Reservation(row.starts_at, row.ends_at, row.booking_id) for row in rows),
        )

    def save(self, index: AvailabilityIndex):
        """Bring the stored reservations in line with the index"""
        stored = {
            row.booking_id: row
            for row in orm.Reservation.objects.filter(resource_id=index.resource_id)
        }
        wanted = {r.booking_id: r for r in index.occupied()}

        released = [booking_id for booking_id in stored if booking_id not in wanted]
        if released:
            orm.Reservation.objects.filter(resource_id=index.resource_id, booking_id__in=released).delete()

        for booking_id, reservation in wanted.items():
            row = stored.get(booking_id)
            if row is None:
                orm.Reservation.objects.create(
                    resource_id=index.resource_id,
                    booking_id=booking_id,
                    starts_at=reservation.start,
                    ends_at=reservation.end,
                )
            elif (row.starts_at, row.ends_at) != (reservation.start, reservation.end):
                row.starts_at = reservation.start
                row.ends_at = reservation.end
                row.save(update_fields=['starts_at', 'ends_at'])

        logger.debug(f"Saved {index}")


class DjangoBookingRepository:
    """Loads and stores Booking aggregates with their reschedule history"""

    def get_by_id(self, booking_id: UUID) -> Booking | None:
        try:
            row = orm.Booking.objects.prefetch_related('reschedules').get(pk=booking_id)
        except orm.Booking.DoesNotExist:
            return None
        return self._to_domain(row)

    def get(self, booking_id: UUID) -> Booking:
        booking = self.get_by_id(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    def get_by_reschedule_id(self, reschedule_id: UUID) -> Booking:
        try:
            booking_id = orm.RescheduleRequest.objects.values_list('booking_id', flat=True).get(pk=reschedule_id)
        except orm.RescheduleRequest.DoesNotExist:
            raise NotFoundError(f"Reschedule {reschedule_id} not found")
        return self.get(booking_id)

    def list_for_actor(self, actor_id: str, *, as_owner: bool, status: BookingStatus | None = None) -> List[Booking]:
        queryset = orm.Booking.objects.prefetch_related('reschedules')
        if as_owner:
            queryset = queryset.filter(resource_owner_id=actor_id)
        else:
            queryset = queryset.filter(client_id=actor_id)
        if status is not None:
            queryset = queryset.filter(status=status.value)
        return [self._to_domain(row) for row in queryset.order_by('starts_at')]

    def save(self, booking: Booking):
        """
        Insert a new booking or update an existing one

        Updates are a compare-and-swap on `version`; a stale copy raises
        ConcurrentModificationError.
        """
        fields = self._to_row(booking)

        if booking.version == 0:
            orm.Booking.objects.create(id=booking.id, version=1, created_at=booking.created_at, **fields)
        else:
            updated = orm.Booking.objects.filter(pk=booking.id, version=booking.version).update(
                version=F('version') + 1, **fields,
            )
            if updated != 1:
                raise ConcurrentModificationError(
                    f"Booking {booking.id} changed since version {booking.version} was read"
                )
        booking.version += 1

        for request in booking.reschedules:
            self._save_reschedule(request)

        logger.debug(f"Saved {booking} (version {booking.version})")

    # ----- mapping -----

    def _save_reschedule(self, request: RescheduleRequest):
        orm.RescheduleRequest.objects.update_or_create(
            pk=request.id,
            defaults={
                'booking_id': request.booking_id,
                'proposed_by': request.proposed_by,
                'original_starts_at': request.original_range.start,
                'original_ends_at': request.original_range.end,
                'requested_starts_at': request.requested_range.start,
                'requested_ends_at': request.requested_range.end,
                'status': request.status.value,
                'resolved_by': request.resolved_by,
                'resolved_at': request.resolved_at,
                'created_at': request.created_at,
                'updated_at': request.updated_at,
            },
        )

    @staticmethod
    def _to_row(booking: Booking) -> dict:
        return {
            'resource_id': booking.resource_id,
            'resource_kind': booking.resource_kind.value,
            'resource_owner_id': booking.resource_owner_id,
            'client_id': booking.client_id,
            'starts_at': booking.time_range.start,
            'ends_at': booking.time_range.end,
            'status': booking.status.value,
            'event_type': booking.details.event_type,
            'event_location': booking.details.event_location,
            'guest_count': booking.details.guest_count,
            'notes': booking.details.notes,
            'remarks': booking.remarks,
            'updated_at': booking.updated_at,
        }

    @staticmethod
    def _to_domain(row: orm.Booking) -> Booking:
        reschedules = [
            RescheduleRequest(
                id=r.id,
                booking_id=r.booking_id,
                proposed_by=r.proposed_by,
                original_range=TimeRange(r.original_starts_at, r.original_ends_at),
                requested_range=TimeRange(r.requested_starts_at, r.requested_ends_at),
                status=RescheduleStatus(r.status),
                resolved_at=r.resolved_at,
                resolved_by=r.resolved_by,
                created_at=r.created_at,
                updated_at=r.updated_at,
            )
            for r in sorted(row.reschedules.all(), key=lambda r: r.created_at)
        ]
        return Booking(
            id=row.id,
            resource_id=row.resource_id,
            resource_kind=ResourceKind(row.resource_kind),
            resource_owner_id=row.resource_owner_id,
            client_id=row.client_id,
            time_range=TimeRange(row.starts_at, row.ends_at),
            status=BookingStatus(row.status),
            details=BookingDetails(
                event_type=row.event_type,
                event_location=row.event_location,
                guest_count=row.guest_count,
                notes=row.notes,
            ),
            remarks=row.remarks,
            reschedules=reschedules,
            version=row.version,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
