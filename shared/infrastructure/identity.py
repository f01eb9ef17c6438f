"""Bridge from the verified bearer token to a RequestContext."""

from __future__ import annotations

from django.conf import settings  # type: ignore

from shared.application.context import RequestContext


def request_context(request) -> RequestContext:
    """Build the caller's context from the JWT claims.

    ``JWTStatelessUserAuthentication`` has already verified the token, so
    ``request.user`` is a ``TokenUser`` and ``request.auth`` the token.
    """
    role_claim = settings.BOOKING_ENGINE.get("ROLE_CLAIM", "role")
    token = request.auth
    role = token.get(role_claim) if token is not None else None
    return RequestContext.build(getattr(request.user, "id", None), role)
