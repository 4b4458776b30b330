"""
PagePulse Server — FastAPI Application

Mounts the tracker router and the identity cookie middleware, and owns the
relay's HTTP client for the lifetime of the process.

Environment variables:
    COLLECTOR_URL      — Collector endpoint events are relayed to.
    COLLECTOR_API_KEY  — Optional. Sent as Authorization: Bearer <key>.
    RELAY_TIMEOUT      — Relay timeout in seconds (default: 5).
    RELAY_MODE         — "await" (default) or "background".
    ORGANIZATION       — Static organization tag (default: Devfinity).
    ENVIRONMENT        — Environment type (default: production).
    TRACKING_ENABLED   — "1" / "0" (default: 1).
    TRACKER_PREFIX     — Route prefix (default: /tracker/v1).
    AUTH_COOKIE_NAME   — Session cookie marking logged-in callers (default: sessionid).
    COOKIE_SECURE      — Mark identity cookies Secure (default: 0).
    LOG_LEVEL          — Logging level (default: INFO).
    PORT               — HTTP listen port (default: 8080).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable, Iterable, Optional

from fastapi import FastAPI, Request

from . import __version__
from .identity import identity_middleware
from .relay import RelayForwarder
from .router import PayloadFilter, tracker_router
from .settings import Settings

logger = logging.getLogger("pagepulse")


def create_app(
    settings: Optional[Settings] = None,
    relay: Optional[RelayForwarder] = None,
    is_authenticated: Optional[Callable[[Request], bool]] = None,
    payload_filters: Iterable[PayloadFilter] = (),
) -> FastAPI:
    """Build the PagePulse app. Missing collaborators come from *settings*."""
    settings = settings or Settings.from_env()
    relay = relay or RelayForwarder(
        settings.collector_url,
        timeout=settings.relay_timeout,
        api_key=settings.collector_api_key,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Relaying %s events to %s (mode=%s)",
            settings.environment,
            settings.collector_url,
            settings.relay_mode,
        )
        yield
        await relay.aclose()

    app = FastAPI(
        title="PagePulse",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.relay = relay

    app.middleware("http")(identity_middleware(settings))
    app.include_router(
        tracker_router(
            settings=settings,
            relay=relay,
            is_authenticated=is_authenticated,
            payload_filters=payload_filters,
        )
    )

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok", "environment": settings.environment, "relay_mode": settings.relay_mode}

    return app


# ---------------------------------------------------------------------------
# Module-level app for uvicorn
# ---------------------------------------------------------------------------

_settings = Settings.from_env()

logging.basicConfig(
    level=_settings.log_level,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)

app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("pagepulse.server:app", host="0.0.0.0", port=_settings.port, log_level="info")
