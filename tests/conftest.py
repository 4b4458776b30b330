"""Fixtures for PagePulse tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from pagepulse.relay import RelayOutcome
from pagepulse.server import create_app
from pagepulse.settings import Settings


# ---------------------------------------------------------------------------
# User agents
# ---------------------------------------------------------------------------

DESKTOP_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
MOBILE_UA = (
    "Mozilla/5.0 (Linux; Android 10; Mobile) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Mobile Safari/537.36"
)
IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
BOT_UA = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeRelay:
    """Records events instead of sending them."""

    def __init__(self, outcome: RelayOutcome | None = None):
        self.outcome = outcome or RelayOutcome(ok=True, status_code=200)
        self.forwarded: list = []
        self.dispatched: list = []
        self.closed = False

    async def forward(self, event):
        self.forwarded.append(event)
        return self.outcome

    def dispatch(self, event) -> None:
        self.dispatched.append(event)

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def valid_payload(**overrides) -> dict:
    payload = {
        "screenWidth": 1920,
        "screenHeight": 1080,
        "language": "en-US",
        "timezone": "Europe/London",
        "cookiesEnabled": True,
        "pageTitle": "Pricing",
        "location": "51.5, -0.12",
        "operatingSystem": "Win32",
        "startTime": "2025-03-01T12:00:00.000Z",
        "endTime": "2025-03-01T12:00:42.000Z",
        "timeSpent": 42,
        "browser": "Chrome",
        "userAgent": DESKTOP_UA,
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def settings() -> Settings:
    return Settings(collector_url="https://collector.test/api/UserEvents", organization="Acme")


@pytest.fixture()
def relay() -> FakeRelay:
    return FakeRelay()


@pytest.fixture()
def app(settings: Settings, relay: FakeRelay) -> FastAPI:
    """PagePulse app wired to the fake relay."""
    return create_app(settings, relay=relay)


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    """HTTPX-backed test client."""
    return TestClient(app)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()
