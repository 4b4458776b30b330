"""
PagePulse — anonymous identity cookies.

Every request resolves a durable, non-PII visitor identifier held in the
browser's cookie jar. Campaign links carry their own identifier, which always
replaces whatever the visitor had before.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional
from urllib.parse import quote, unquote

from fastapi import Request

from .sanitize import sanitize_text
from .settings import Settings

logger = logging.getLogger("pagepulse.identity")

USER_ID_COOKIE = "user_id"
USER_ID_TYPE_COOKIE = "user_id_type"
CAMPAIGN_PARAM = "campaign_user_id"
COOKIE_MAX_AGE = 365 * 24 * 60 * 60


class IdentityType(str, Enum):
    NEW_USER = "new-user"
    AD_CAMPAIGN = "ad-campaign"


@dataclass(frozen=True)
class AnonymousIdentity:
    id: str
    type: IdentityType


def generate_user_id() -> str:
    """Random version-4 UUID."""
    return str(uuid.uuid4())


def assign_identity(
    cookies: Mapping[str, str],
    query_params: Mapping[str, str],
) -> Optional[AnonymousIdentity]:
    """Decide which identity cookies to write for this request.

    Returns None when the existing cookies should be left untouched.
    """
    campaign_id = sanitize_text(query_params.get(CAMPAIGN_PARAM))
    if campaign_id:
        return AnonymousIdentity(campaign_id, IdentityType.AD_CAMPAIGN)
    if USER_ID_COOKIE not in cookies:
        return AnonymousIdentity(generate_user_id(), IdentityType.NEW_USER)
    return None


def _read_cookie(request: Request, name: str) -> str:
    # Identity cookies are written percent-encoded.
    return sanitize_text(unquote(request.cookies.get(name) or ""))


def resolve_identity(request: Request) -> tuple[str, str]:
    """Return (user_id, user_id_type) for the current request.

    An identity assigned earlier in this request wins over the cookies the
    browser sent, since those are stale by definition.
    """
    assigned: Optional[AnonymousIdentity] = getattr(request.state, "identity", None)
    if assigned is not None:
        return assigned.id, assigned.type.value
    return (
        _read_cookie(request, USER_ID_COOKIE),
        _read_cookie(request, USER_ID_TYPE_COOKIE),
    )


def identity_middleware(settings: Settings):
    """Build an HTTP middleware that assigns identity cookies per request."""

    async def assign_identity_cookies(request: Request, call_next):
        identity = None
        if settings.identity_active:
            identity = assign_identity(request.cookies, request.query_params)
            if identity is not None:
                request.state.identity = identity

        response = await call_next(request)

        if identity is not None:
            # Set-Cookie is latin-1 on the wire; campaign IDs may not be.
            for key, value in (
                (USER_ID_COOKIE, identity.id),
                (USER_ID_TYPE_COOKIE, identity.type.value),
            ):
                response.set_cookie(
                    key,
                    quote(value, safe=""),
                    max_age=COOKIE_MAX_AGE,
                    path="/",
                    secure=settings.cookie_secure,
                    samesite="lax",
                )
            logger.debug("Assigned %s identity %s", identity.type.value, identity.id)
        return response

    return assign_identity_cookies
