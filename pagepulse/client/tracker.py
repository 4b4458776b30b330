"""
PagePulse client — per-visit session tracker.

A session arms once at page load (if the visitor is not a bot, the page runs
in production and the throttle allows it) and transmits exactly one
TrackingEvent on the first exit signal the page emits. Every exit signal goes
through the same check-and-set in send(), so later signals are no-ops.

States:
    INACTIVE --start()--> ARMED --send()--> SENT (terminal)
"""

from __future__ import annotations

import asyncio
import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..models import UNKNOWN_LOCATION, TrackingEvent
from ..useragent import browser_name, is_bot, is_handheld
from .geolocation import Geolocator, format_location
from .lifecycle import BEFORE_UNLOAD, PAGE_HIDE, UNLOAD, VISIBILITY_CHANGE, PageLifecycle
from .storage import Storage
from .throttle import Clock, ThrottleGate, utc_now
from .transport import Transport

logger = logging.getLogger("pagepulse.client")

START_TIME_KEY = "startTime"


class TrackerState(str, Enum):
    INACTIVE = "inactive"
    ARMED = "armed"
    SENT = "sent"


@dataclass
class ClientConfig:
    environment: str = "production"
    rest_url: str = "/tracker/v1/log/"
    enabled: bool = True

    @classmethod
    def from_bootstrap(cls, document: dict[str, Any]) -> "ClientConfig":
        """Build from the server's bootstrap document."""
        return cls(
            environment=str(document.get("environment", "production")),
            rest_url=str(document.get("restUrl", cls.rest_url)),
            enabled=bool(document.get("enabled", True)),
        )


@dataclass
class PageEnvironment:
    """What the page knows about its visitor's browser."""

    user_agent: str
    title: str = ""
    screen_width: int = 0
    screen_height: int = 0
    language: str = ""
    timezone: str = ""
    cookies_enabled: bool = True
    platform: str = ""


@dataclass
class Session:
    start_time: datetime
    location: str = UNKNOWN_LOCATION


def to_iso(moment: datetime) -> str:
    """ISO-8601 with millisecond precision and a Z suffix for UTC."""
    text = moment.isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class SessionTracker:
    def __init__(
        self,
        config: ClientConfig,
        page: PageEnvironment,
        storage: Storage,
        transport: Transport,
        geolocator: Optional[Geolocator] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config
        self.page = page
        self.storage = storage
        self.transport = transport
        self.geolocator = geolocator
        self.clock = clock or utc_now
        self.throttle = ThrottleGate(storage, clock=self.clock)
        self.session: Optional[Session] = None
        self.last_event: Optional[TrackingEvent] = None
        self._state = TrackerState.INACTIVE
        self._lock = threading.Lock()
        self._locate_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> TrackerState:
        return self._state

    # ------------------------------------------------------------------
    # Arming
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """Arm the tracker for this page visit. Returns True if armed."""
        if self._state is not TrackerState.INACTIVE:
            return self._state is TrackerState.ARMED
        if is_bot(self.page.user_agent):
            logger.debug("Bot user agent, not tracking")
            return False
        if not self.config.enabled or self.config.environment != "production":
            logger.debug("Tracking inactive (environment=%s)", self.config.environment)
            return False
        if not self.throttle.should_emit():
            logger.debug("Throttled: last attempt %d ms ago", self._since_last_attempt())
            return False

        self.session = Session(start_time=self.clock())
        self.storage.set(START_TIME_KEY, to_iso(self.session.start_time))
        self._state = TrackerState.ARMED

        if self.geolocator is not None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("No running page loop, skipping geolocation")
            else:
                self._locate_task = loop.create_task(self._locate())
        return True

    def attach(self, lifecycle: PageLifecycle) -> None:
        """Wire every exit signal to send()."""

        def on_visibility_change() -> None:
            if lifecycle.hidden:
                self.send()

        lifecycle.add_listener(VISIBILITY_CHANGE, on_visibility_change)
        lifecycle.add_listener(BEFORE_UNLOAD, self.send)
        lifecycle.add_listener(UNLOAD, self.send)
        # Some mobile browsers never fire the unload signals.
        if is_handheld(self.page.user_agent):
            lifecycle.add_listener(PAGE_HIDE, self.send)

    def _since_last_attempt(self) -> int:
        return int(self.clock().timestamp() * 1000) - self.throttle.last_sent_at

    async def _locate(self) -> None:
        try:
            coordinates = await self.geolocator.locate()
        except Exception as e:
            logger.debug("Geolocation failed (non-critical): %s", e)
            return
        if coordinates is None or self.session is None:
            return
        with self._lock:
            if self._state is TrackerState.ARMED:
                self.session.location = format_location(coordinates)

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def send(self) -> bool:
        """Transmit the visit once. Returns True only for the call that sent."""
        with self._lock:
            if self._state is not TrackerState.ARMED:
                return False
            end_time = self.clock()
            duration = round_half_up((end_time - self.session.start_time).total_seconds())
            if duration <= 0:
                logger.debug("Non-positive duration (%d s), not sending", duration)
                return False
            self._state = TrackerState.SENT
            location = self.session.location

        event = self._build_event(end_time, duration, location)
        self.last_event = event
        self.transport.send(self.config.rest_url, event.to_wire())
        self.throttle.record_attempt()
        if self._locate_task is not None and not self._locate_task.done():
            self._locate_task.cancel()
        return True

    def _build_event(self, end_time: datetime, duration: int, location: str) -> TrackingEvent:
        page = self.page
        return TrackingEvent(
            screen_width=page.screen_width,
            screen_height=page.screen_height,
            language=page.language,
            timezone=page.timezone,
            cookies_enabled=page.cookies_enabled,
            page_title=page.title,
            location=location,
            operating_system=page.platform,
            start_time=to_iso(self.session.start_time),
            end_time=to_iso(end_time),
            time_spent=duration,
            browser=browser_name(page.user_agent),
            user_agent=page.user_agent,
        )
