"""
Availability Service

Resource-level entry points to the availability index, each running in its
own transaction under the resource lock. Booking use cases change the
index inside their own transaction instead (see command_handlers).
"""

from typing import List
from uuid import UUID
import logging

from apps.bookings.domain.availability import AvailabilityIndex, Reservation
from apps.bookings.infrastructure.repositories import DjangoAvailabilityRepository
from shared.application.uow import run_in_transaction
from shared.domain.value_objects import TimeRange

logger = logging.getLogger(__name__)


class AvailabilityService:
    """reserve / release / replace / occupied, keyed by resource id"""

    def __init__(self, availability_repo=None):
        self.availability_repo = availability_repo or DjangoAvailabilityRepository()

    def reserve(self, resource_id: UUID, time_range: TimeRange, booking_id: UUID) -> Reservation:
        def operation(uow):
            index = self.availability_repo.get_for_resource(resource_id, lock=True)
            reservation = index.reserve(booking_id, time_range)
            self._save(uow, index)
            return reservation

        return run_in_transaction(operation, label='reserve slot')

    def release(self, resource_id: UUID, booking_id: UUID) -> Reservation | None:
        """Free a booking's range; releasing twice is harmless"""
        def operation(uow):
            index = self.availability_repo.get_for_resource(resource_id, lock=True)
            reservation = index.release(booking_id)
            self._save(uow, index)
            return reservation

        reservation = run_in_transaction(operation, label='release slot')
        if reservation is None:
            logger.info(f"Booking {booking_id} held nothing on resource {resource_id}")
        return reservation

    def replace(self, resource_id: UUID, booking_id: UUID, new_range: TimeRange) -> Reservation:
        def operation(uow):
            index = self.availability_repo.get_for_resource(resource_id, lock=True)
            reservation = index.replace(booking_id, new_range)
            self._save(uow, index)
            return reservation

        return run_in_transaction(operation, label='replace slot')

    def occupied(self, resource_id: UUID, window: TimeRange | None = None) -> List[Reservation]:
        index = self.availability_repo.get_for_resource(resource_id, lock=False)
        return index.occupied(window)

    def _save(self, uow, index: AvailabilityIndex):
        uow.collect_events(index)
        self.availability_repo.save(index)
