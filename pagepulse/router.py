"""
PagePulse FastAPI router factory.

Creates an APIRouter serving the tracker endpoints:
  POST {prefix}/log/       → validate, enrich and relay one TrackingEvent
  GET  {prefix}/bootstrap  → client configuration document
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .identity import resolve_identity
from .models import ANONYMIZED_IP, DIRECT_URL, UNKNOWN_LOCATION, EnrichedEvent, TrackingEvent
from .relay import RelayForwarder
from .sanitize import sanitize_text
from .settings import Settings
from .useragent import classify_device, is_bot

logger = logging.getLogger("pagepulse.router")

REQUIRED_FIELDS = ("start_time", "end_time", "page_title")

PayloadFilter = Callable[[EnrichedEvent, Request], EnrichedEvent]


class IngestRejected(Exception):
    """A policy rejection: local, synchronous and not worth retrying."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def default_is_authenticated(settings: Settings) -> Callable[[Request], bool]:
    """Treat a request as authenticated if it carries credentials of any kind."""

    def is_authenticated(request: Request) -> bool:
        if request.headers.get("authorization"):
            return True
        return bool(request.cookies.get(settings.auth_cookie_name))

    return is_authenticated


def _outcome(status: str, message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": status, "message": message})


def parse_event(data: object) -> TrackingEvent:
    """Validate a decoded JSON body; raise IngestRejected(400) on bad input."""
    invalid = IngestRejected(400, "Invalid tracking data: missing essential fields.")
    if not isinstance(data, dict):
        raise invalid
    try:
        event = TrackingEvent.model_validate(data)
    except ValidationError as exc:
        logger.info("Rejected malformed tracking payload: %d error(s)", exc.error_count())
        raise invalid from None
    if any(not sanitize_text(getattr(event, name)) for name in REQUIRED_FIELDS):
        raise invalid
    return event


def enrich_event(
    event: TrackingEvent,
    *,
    user_agent: str,
    user_id: str,
    user_id_type: str,
    referrer: str,
    organization: str,
    now: Optional[datetime] = None,
) -> EnrichedEvent:
    """Build the collector payload from a validated TrackingEvent."""
    now = now or datetime.now(timezone.utc)
    return EnrichedEvent(
        user_id=user_id,
        user_id_type=user_id_type,
        ip_address=ANONYMIZED_IP,
        url=sanitize_text(event.url or referrer or DIRECT_URL),
        device=classify_device(user_agent),
        organization=organization,
        event_date=now.isoformat(timespec="seconds"),
        screen_width=event.screen_width or 0,
        screen_height=event.screen_height or 0,
        language=sanitize_text(event.language),
        timezone=sanitize_text(event.timezone),
        cookies_enabled=bool(event.cookies_enabled),
        page_title=sanitize_text(event.page_title) or "unknown",
        location=sanitize_text(event.location) or UNKNOWN_LOCATION,
        operating_system=sanitize_text(event.operating_system),
        start_time=sanitize_text(event.start_time),
        end_time=sanitize_text(event.end_time),
        time_spent=event.time_spent or 0,
        browser=sanitize_text(event.browser),
    )


def tracker_router(
    *,
    settings: Settings,
    relay: RelayForwarder,
    is_authenticated: Optional[Callable[[Request], bool]] = None,
    payload_filters: Iterable[PayloadFilter] = (),
) -> APIRouter:
    """
    Create a FastAPI APIRouter serving the tracker endpoints.

    Args:
        settings: Deployment settings (prefix, organization, relay mode, ...)
        relay: Forwarder used to ship enriched events downstream
        is_authenticated: def is_authenticated(request) -> bool
                          Authenticated callers are never tracked.
                          Defaults to "has an Authorization header or the
                          configured session cookie".
        payload_filters: Callables (event, request) -> event applied in order
                         to every EnrichedEvent before it is relayed.

    Returns:
        FastAPI APIRouter with both endpoints mounted under settings.prefix
    """
    if relay is None:
        raise ValueError("[pagepulse] tracker_router requires a relay")
    filters = list(payload_filters)
    if not all(callable(f) for f in filters):
        raise ValueError("[pagepulse] tracker_router payload_filters must be callable")
    authenticated = is_authenticated or default_is_authenticated(settings)

    router = APIRouter(prefix=settings.prefix)

    # ------------------------------------------------------------------
    # Ingest endpoint
    # ------------------------------------------------------------------

    async def prepare(request: Request) -> EnrichedEvent:
        if authenticated(request):
            raise IngestRejected(403, "Logged-in users are not tracked.")

        try:
            data = await request.json()
        except ValueError:
            data = None
        event = parse_event(data)

        user_agent = event.user_agent if event.user_agent is not None else request.headers.get("user-agent", "")
        if is_bot(user_agent):
            raise IngestRejected(403, "Bot detected.")

        user_id, user_id_type = resolve_identity(request)
        enriched = enrich_event(
            event,
            user_agent=user_agent,
            user_id=user_id,
            user_id_type=user_id_type,
            referrer=request.headers.get("referer", ""),
            organization=settings.organization,
        )
        for payload_filter in filters:
            enriched = payload_filter(enriched, request)
        return enriched

    @router.post("/log/")
    async def log_event(request: Request) -> JSONResponse:
        try:
            enriched = await prepare(request)
        except IngestRejected as rejection:
            logger.info("Tracking payload rejected (%d): %s", rejection.status_code, rejection.message)
            return _outcome("error", rejection.message, rejection.status_code)

        if settings.relay_mode == "background":
            relay.dispatch(enriched)
            return _outcome("accepted", "Tracking data accepted for relay.", 202)

        outcome = await relay.forward(enriched)
        if not outcome.ok:
            return _outcome("error", outcome.message, 500)
        return _outcome("success", "Tracking data received successfully.", 200)

    # ------------------------------------------------------------------
    # Bootstrap document
    # ------------------------------------------------------------------

    @router.get("/bootstrap")
    async def bootstrap(request: Request) -> JSONResponse:
        return JSONResponse(
            content={
                "enabled": settings.tracking_enabled,
                "environment": settings.environment,
                "restUrl": str(request.url_for("log_event")),
            },
            headers={"Cache-Control": "no-store"},
        )

    return router
