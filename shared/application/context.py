"""
Request context

Identity is issued by an external service. Every call into the booking
engine receives the authenticated actor explicitly instead of reading it
from ambient state.
"""

from dataclasses import dataclass
from enum import Enum

from shared.domain.exceptions import ForbiddenError


class ActorRole(Enum):
    CLIENT = 'client'
    SUPPLIER = 'supplier'
    VENUE_OWNER = 'venue'

    @property
    def is_resource_owner(self) -> bool:
        return self in (ActorRole.SUPPLIER, ActorRole.VENUE_OWNER)


@dataclass(frozen=True)
class RequestContext:
    """Authenticated caller of one request"""
    actor_id: str
    role: ActorRole

    @classmethod
    def build(cls, actor_id, role) -> 'RequestContext':
        if actor_id in (None, ''):
            raise ForbiddenError("Request is not authenticated")
        try:
            role = role if isinstance(role, ActorRole) else ActorRole(role)
        except ValueError:
            raise ForbiddenError(f"Unknown role {role!r}")
        return cls(actor_id=str(actor_id), role=role)

    def __str__(self):
        return f"{self.role.value}:{self.actor_id}"
