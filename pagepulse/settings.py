"""PagePulse settings, read once from environment variables.

Unset, empty or unparseable values fall back to the defaults below.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_COLLECTOR_URL = "https://user-events-api.azurewebsites.net/api/UserEvents"
RELAY_MODES = ("await", "background")


def _number_env(name: str, default, parse):
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return parse(raw)
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    collector_url: str = DEFAULT_COLLECTOR_URL
    collector_api_key: str = ""
    relay_timeout: float = 5.0
    relay_mode: str = "await"  # "await" | "background"
    organization: str = "Devfinity"
    environment: str = "production"
    tracking_enabled: bool = True
    prefix: str = "/tracker/v1"
    auth_cookie_name: str = "sessionid"
    cookie_secure: bool = False
    log_level: str = "INFO"
    port: int = 8080

    @property
    def identity_active(self) -> bool:
        """Identity cookies are assigned in production, or anywhere tracking is on."""
        return self.environment == "production" or self.tracking_enabled

    @classmethod
    def from_env(cls) -> "Settings":
        relay_mode = os.getenv("RELAY_MODE", "await").strip().lower()
        if relay_mode not in RELAY_MODES:
            relay_mode = "await"
        return cls(
            collector_url=os.getenv("COLLECTOR_URL", DEFAULT_COLLECTOR_URL),
            collector_api_key=os.getenv("COLLECTOR_API_KEY", ""),
            relay_timeout=_number_env("RELAY_TIMEOUT", 5.0, float),
            relay_mode=relay_mode,
            organization=os.getenv("ORGANIZATION", "Devfinity"),
            environment=os.getenv("ENVIRONMENT", "production"),
            tracking_enabled=_bool_env("TRACKING_ENABLED", True),
            prefix="/" + os.getenv("TRACKER_PREFIX", "/tracker/v1").strip("/"),
            auth_cookie_name=os.getenv("AUTH_COOKIE_NAME", "sessionid"),
            cookie_secure=_bool_env("COOKIE_SECURE", False),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            port=_number_env("PORT", 8080, int),
        )
