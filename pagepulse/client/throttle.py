"""
PagePulse client — session-initiation throttle.

Blocks a new session from arming within a cooldown window of the last
transmission attempt, across reloads of the same page.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

from .storage import Storage

THROTTLE_KEY = "lastTrackingTime"
THROTTLE_WINDOW_MS = 60_000

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class ThrottleGate:
    def __init__(
        self,
        storage: Storage,
        clock: Optional[Clock] = None,
        window_ms: int = THROTTLE_WINDOW_MS,
    ):
        self.storage = storage
        self.clock = clock or utc_now
        self.window_ms = window_ms

    @property
    def last_sent_at(self) -> int:
        """Milliseconds since the epoch of the last attempt; 0 if never or unreadable."""
        raw = self.storage.get(THROTTLE_KEY)
        try:
            return int(raw) if raw else 0
        except ValueError:
            return 0

    def should_emit(self) -> bool:
        return epoch_ms(self.clock()) - self.last_sent_at >= self.window_ms

    def record_attempt(self) -> None:
        self.storage.set(THROTTLE_KEY, str(epoch_ms(self.clock())))
