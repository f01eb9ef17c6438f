"""
Unit of Work

One booking operation is one database transaction. The unit of work opens
it, gathers the domain events raised by the aggregates it saved, and hands
them to the message bus only once the transaction has committed.

Transient storage failures (lock timeouts, deadlock victims, serialization
failures, stale record versions) are retried a bounded number of times by
`run_in_transaction`; after that they surface as ServiceUnavailableError.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, TypeVar
import logging
import time

from django.conf import settings
from django.db import DatabaseError, OperationalError, transaction

from shared.domain.base import DomainEvent
from shared.domain.exceptions import ConcurrentModificationError, ServiceUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# SQLSTATE codes for serialization_failure, deadlock_detected, lock_not_available
TRANSIENT_SQLSTATES = {'40001', '40P01', '55P03'}


class AbstractUnitOfWork(ABC):
    """Transaction boundary that owns the events of one operation"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.rollback()
        else:
            self.commit()

    @abstractmethod
    def commit(self):
        ...

    @abstractmethod
    def rollback(self):
        ...

    @abstractmethod
    def collect_events(self, aggregate):
        ...


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    `transaction.atomic()` plus deferred event publishing

    Events are queued with `transaction.on_commit()`. When the unit of work
    is nested in an outer atomic block they wait for the outermost commit,
    and a rollback anywhere drops them.

    Usage:
        with DjangoUnitOfWork() as uow:
            index = availability_repo.get_for_resource(resource_id, lock=True)
            booking = booking_repo.get(booking_id)

            booking.cancel(actor_id)
            index.release(booking.id)

            uow.collect_events(booking)
            uow.collect_events(index)
            booking_repo.save(booking)
            availability_repo.save(index)
    """

    def __init__(self):
        self._pending: List[DomainEvent] = []
        self._atomic = None

    def __enter__(self):
        self._atomic = transaction.atomic()
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            super().__exit__(exc_type, exc_val, exc_tb)
        finally:
            self._atomic.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        """Queue the gathered events; COMMIT itself happens when the atomic block closes"""
        batch, self._pending = self._pending, []
        if batch:
            logger.debug(f"Queueing {len(batch)} events for after commit")
            transaction.on_commit(lambda: self._publish(batch))

    def rollback(self):
        if self._pending:
            logger.warning(f"Transaction rolled back, dropping {len(self._pending)} events")
        self._pending = []

    def collect_events(self, aggregate):
        """Move the aggregate's recorded events into this unit of work"""
        raised = aggregate.events
        if not raised:
            return
        self._pending.extend(raised)
        aggregate.clear_events()
        logger.debug(f"{type(aggregate).__name__} {aggregate.id} raised {len(raised)} events")

    @staticmethod
    def _publish(events: List[DomainEvent]):
        from shared.application.message_bus import message_bus

        logger.info(f"Publishing {len(events)} domain events")
        try:
            message_bus.publish_events(events)
        except Exception as e:
            # The transition is committed; a delivery failure must not undo it
            logger.error(f"Error publishing events: {e}", exc_info=True)


def is_transient(exc: BaseException) -> bool:
    """Is this a storage error that may succeed on a fresh attempt?"""
    if isinstance(exc, (ConcurrentModificationError, OperationalError)):
        return True
    if isinstance(exc, DatabaseError):
        cause = exc.__cause__
        return getattr(cause, 'pgcode', None) in TRANSIENT_SQLSTATES or getattr(cause, 'sqlstate', None) in TRANSIENT_SQLSTATES
    return False


def run_in_transaction(operation: Callable[[DjangoUnitOfWork], T], *, label: str = 'operation') -> T:
    """
    Run `operation` inside a fresh unit of work, retrying transient failures

    Each attempt gets its own transaction, so a failed attempt leaves
    nothing behind. Domain errors are never retried.
    """
    engine = settings.BOOKING_ENGINE
    attempts = 1 + engine.get('TRANSIENT_RETRIES', 3)
    backoff = engine.get('RETRY_BACKOFF', 0.05)

    for attempt in range(1, attempts + 1):
        try:
            with DjangoUnitOfWork() as uow:
                return operation(uow)
        except (DatabaseError, ConcurrentModificationError) as exc:
            if not is_transient(exc):
                raise
            if attempt == attempts:
                logger.error(f"{label} failed after {attempts} attempts: {exc}")
                raise ServiceUnavailableError(
                    f"{label} could not be completed, storage is busy. Try again shortly."
                ) from exc
            logger.warning(f"{label} hit transient storage error (attempt {attempt}/{attempts}): {exc}")
            time.sleep(backoff * attempt)
