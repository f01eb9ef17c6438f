"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations within transactions.

Commands:
- CreateBookingCommand: Request a supplier or a venue
- ChangeBookingStatusCommand: Accept, reject, cancel or complete a booking
- ProposeRescheduleCommand: Ask the other party to move a confirmed booking
- ResolveRescheduleCommand: Approve or reject a pending reschedule
- WithdrawRescheduleCommand: Take back one's own pending reschedule

Every handler runs its whole operation through `run_in_transaction`: the
resource row is locked, the Booking and the AvailabilityIndex are changed
together, and events are published after the commit. Errors are checked in
a fixed order: not found, then forbidden, then invalid transition, then
validation and schedule conflicts.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from uuid import UUID
import logging

from django.conf import settings
from django.utils import timezone

from apps.bookings.domain.conflicts import ConflictDetector, SchedulingPolicy
from apps.bookings.domain.entities import (
    Booking,
    BookingDetails,
    BookingStatus,
    RescheduleRequest,
    ResourceKind,
)
from apps.bookings.infrastructure.repositories import (
    DjangoAvailabilityRepository,
    DjangoBookingRepository,
    DjangoResourceRepository,
)
from shared.application.context import RequestContext
from shared.application.uow import run_in_transaction
from shared.domain.exceptions import BookingValidationError, ForbiddenError, InvalidTransitionError

logger = logging.getLogger(__name__)


def build_conflict_detector() -> ConflictDetector:
    """Conflict detector configured from BOOKING_ENGINE['POLICIES']"""
    policies = settings.BOOKING_ENGINE['POLICIES']
    return ConflictDetector(
        {kind: SchedulingPolicy.from_settings(kind, policies.get(kind.value, {})) for kind in ResourceKind},
        timezone.get_current_timezone(),
    )


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """
    Command to request a resource

    `start`/`end` are dates for whole-day venue bookings, aware datetimes
    otherwise. A missing `end` means one slot of the resource's duration.
    """
    context: RequestContext
    resource_id: UUID
    resource_kind: ResourceKind
    start: date | datetime
    end: date | datetime | None = None
    details: BookingDetails = field(default_factory=BookingDetails)


@dataclass
class CreateBookingResult:
    booking: Booking
    capacity_warning: str | None = None


@dataclass
class ChangeBookingStatusCommand:
    """Command to move a booking to `target_status`"""
    context: RequestContext
    booking_id: UUID
    target_status: BookingStatus
    reason: str = ''


@dataclass
class ProposeRescheduleCommand:
    context: RequestContext
    booking_id: UUID
    start: date | datetime
    end: date | datetime | None = None


class RescheduleDecision(Enum):
    APPROVE = 'approve'
    REJECT = 'reject'


@dataclass
class ResolveRescheduleCommand:
    context: RequestContext
    reschedule_id: UUID
    decision: RescheduleDecision


@dataclass
class WithdrawRescheduleCommand:
    context: RequestContext
    reschedule_id: UUID


# ===== Command Handlers =====

class BookingCommandHandler:
    """Shared wiring for the booking use cases"""

    def __init__(self, booking_repo=None, availability_repo=None, resource_repo=None, detector=None):
        self.booking_repo = booking_repo or DjangoBookingRepository()
        self.availability_repo = availability_repo or DjangoAvailabilityRepository()
        self.resource_repo = resource_repo or DjangoResourceRepository()
        self.detector = detector or build_conflict_detector()

    def _load_locked(self, booking_id: UUID, actor_id: str):
        """
        Load a booking and its resource's index under the resource lock

        The stakeholder check runs before the lock is taken. The booking is
        read again once the lock is held so the copy we change is current.
        """
        booking = self.booking_repo.get(booking_id)
        booking.ensure_stakeholder(actor_id)
        index = self.availability_repo.get_for_resource(booking.resource_id, lock=True)
        return self.booking_repo.get(booking_id), index

    def _approve_reschedule(self, booking: Booking, index, reschedule_id: UUID, actor_id: str, now: datetime) -> RescheduleRequest:
        request = booking.approve_reschedule(reschedule_id, actor_id, now)
        self.detector.validate(booking.resource_kind, request.requested_range, now)
        index.replace(booking.id, request.requested_range)
        return request

    def _save(self, uow, booking: Booking, index=None):
        uow.collect_events(booking)
        self.booking_repo.save(booking)
        if index is not None:
            uow.collect_events(index)
            self.availability_repo.save(index)


class CreateBookingHandler(BookingCommandHandler):
    """
    Handler for CreateBooking command

    Strategy:
    1. Start database transaction (atomic)
    2. Lock the resource row (SELECT FOR UPDATE, write lock on SQLite)
    3. Normalize and validate the requested range
    4. Create the Booking aggregate (PENDING)
    5. Reserve the range in the AvailabilityIndex (raises on overlap)
    6. Save both aggregates and collect their events
    7. Commit, then publish events
    """

    def handle(self, command: CreateBookingCommand) -> CreateBookingResult:
        actor = command.context
        logger.info(
            f"Creating booking on {command.resource_kind.value} {command.resource_id} "
            f"for {actor}, start {command.start}, end {command.end}"
        )

        def operation(uow) -> CreateBookingResult:
            now = timezone.now()
            resource = self.resource_repo.get_active(command.resource_id, lock=True)
            if resource.kind != command.resource_kind.value:
                raise BookingValidationError(
                    f"Resource {resource.id} is a {resource.kind}, not a {command.resource_kind.value}",
                    field='resource_kind',
                )
            if str(resource.owner_id) == actor.actor_id:
                raise ForbiddenError(f"User {actor.actor_id} owns resource {resource.id} and cannot book it")

            time_range = self.detector.normalize(
                command.resource_kind, command.start, command.end, slot_duration=resource.slot_duration,
            )
            self.detector.validate(command.resource_kind, time_range, now)

            index = self.availability_repo.get_for_resource(resource.id, lock=False)
            booking = Booking.request(
                resource_id=resource.id,
                resource_kind=command.resource_kind,
                resource_owner_id=str(resource.owner_id),
                client_id=actor.actor_id,
                time_range=time_range,
                details=command.details,
                now=now,
            )
            index.reserve(booking.id, time_range)
            self._save(uow, booking, index)
            return CreateBookingResult(booking=booking, capacity_warning=self._capacity_warning(resource, command.details))

        result = run_in_transaction(operation, label='create booking')
        logger.info(f"Booking {result.booking.id} requested for {result.booking.time_range}")
        return result

    @staticmethod
    def _capacity_warning(resource, details: BookingDetails) -> str | None:
        if resource.capacity is None or details.guest_count is None:
            return None
        if details.guest_count <= resource.capacity:
            return None
        return f"{details.guest_count} guests exceed the venue capacity of {resource.capacity}"


class ChangeBookingStatusHandler(BookingCommandHandler):
    """
    Handler for status changes requested through the API

    accept/reject on a booking with a pending reschedule resolve that
    reschedule instead, when the caller is the counter-party.
    """

    def handle(self, command: ChangeBookingStatusCommand) -> Booking:
        actor_id = command.context.actor_id
        target = command.target_status
        logger.info(f"Changing booking {command.booking_id} to {target.value} for {command.context}")

        def operation(uow) -> Booking:
            now = timezone.now()
            booking, index = self._load_locked(command.booking_id, actor_id)
            pending = booking.active_reschedule
            resolving = pending is not None and pending.proposed_by != actor_id

            if target == BookingStatus.CONFIRMED:
                if resolving:
                    self._approve_reschedule(booking, index, pending.id, actor_id, now)
                else:
                    booking.accept(actor_id, now)
                    if booking.id not in index:
                        raise InvalidTransitionError(
                            f"Booking {booking.id} no longer holds its time range",
                            current_status=BookingStatus.PENDING.value,
                        )
            elif target == BookingStatus.REJECTED:
                if resolving:
                    booking.reject_reschedule(pending.id, actor_id, now)
                else:
                    booking.reject(actor_id, command.reason, now)
                    index.release(booking.id)
            elif target == BookingStatus.CANCELLED:
                booking.cancel(actor_id, command.reason, now)
                index.release(booking.id)
            elif target == BookingStatus.COMPLETED:
                require_started = settings.BOOKING_ENGINE.get('COMPLETE_REQUIRES_EVENT_STARTED', True)
                booking.complete(actor_id, now, require_started=require_started)
            else:
                raise BookingValidationError(
                    f"Bookings cannot be moved to {target.value} directly", field='target_status',
                )

            self._save(uow, booking, index)
            return booking

        booking = run_in_transaction(operation, label=f'change booking status to {target.value}')
        logger.info(f"Booking {booking.id} is now {booking.status.value}")
        return booking


class ProposeRescheduleHandler(BookingCommandHandler):
    """Handler for a new reschedule proposal on a confirmed booking"""

    def handle(self, command: ProposeRescheduleCommand) -> RescheduleRequest:
        actor_id = command.context.actor_id
        logger.info(f"Proposing reschedule of booking {command.booking_id} to {command.start} by {command.context}")

        def operation(uow) -> RescheduleRequest:
            now = timezone.now()
            booking, index = self._load_locked(command.booking_id, actor_id)
            new_range = self.detector.normalize(
                booking.resource_kind, command.start, command.end, slot_duration=booking.time_range.duration,
            )
            request = booking.propose_reschedule(actor_id, new_range, now)
            self.detector.validate(booking.resource_kind, new_range, now)
            self.detector.ensure_free(index, new_range, exclude_booking_id=booking.id)
            self._save(uow, booking)
            return request

        request = run_in_transaction(operation, label='propose reschedule')
        logger.info(f"Reschedule {request.id} of booking {request.booking_id} is pending")
        return request


class ResolveRescheduleHandler(BookingCommandHandler):
    """
    Handler for the counter-party's decision on a reschedule

    Approval re-checks the requested range under the lock. A late conflict
    raises ScheduleConflictError and leaves both the request and the
    booking exactly as they were.
    """

    def handle(self, command: ResolveRescheduleCommand) -> tuple[Booking, RescheduleRequest]:
        actor_id = command.context.actor_id
        logger.info(f"Resolving reschedule {command.reschedule_id}: {command.decision.value} by {command.context}")

        def operation(uow):
            now = timezone.now()
            booking = self.booking_repo.get_by_reschedule_id(command.reschedule_id)
            booking, index = self._load_locked(booking.id, actor_id)
            if command.decision == RescheduleDecision.APPROVE:
                request = self._approve_reschedule(booking, index, command.reschedule_id, actor_id, now)
            else:
                request = booking.reject_reschedule(command.reschedule_id, actor_id, now)
            self._save(uow, booking, index)
            return booking, request

        booking, request = run_in_transaction(operation, label=f'{command.decision.value} reschedule')
        logger.info(f"Reschedule {request.id} {request.status.value}; booking {booking.id} on {booking.time_range}")
        return booking, request


class WithdrawRescheduleHandler(BookingCommandHandler):
    """Handler for the proposer taking a reschedule back"""

    def handle(self, command: WithdrawRescheduleCommand) -> tuple[Booking, RescheduleRequest]:
        actor_id = command.context.actor_id

        def operation(uow):
            now = timezone.now()
            booking = self.booking_repo.get_by_reschedule_id(command.reschedule_id)
            booking, _ = self._load_locked(booking.id, actor_id)
            request = booking.withdraw_reschedule(command.reschedule_id, actor_id, now)
            self._save(uow, booking)
            return booking, request

        booking, request = run_in_transaction(operation, label='withdraw reschedule')
        logger.info(f"Reschedule {request.id} withdrawn; booking {booking.id} is {booking.status.value}")
        return booking, request
