"""
PagePulse — anonymous page-visit telemetry, captured once per visit and
relayed to an analytics collector.

Usage:
    from fastapi import FastAPI
    from pagepulse import RelayForwarder, Settings, tracker_router

    app = FastAPI()
    settings = Settings.from_env()
    app.include_router(tracker_router(
        settings=settings,
        relay=RelayForwarder(settings.collector_url),
    ))
"""

__version__ = "1.1.0"

from .relay import RelayForwarder, RelayOutcome  # noqa: E402
from .router import tracker_router  # noqa: E402
from .settings import Settings  # noqa: E402

__all__ = ["RelayForwarder", "RelayOutcome", "Settings", "tracker_router", "__version__"]
