"""
PagePulse client — page lifecycle signals.

A minimal event target standing in for the page host. Listeners are plain
callables run one at a time, in registration order, so a listener never
observes another one half-finished.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

logger = logging.getLogger("pagepulse.client")

VISIBILITY_CHANGE = "visibilitychange"
BEFORE_UNLOAD = "beforeunload"
UNLOAD = "unload"
PAGE_HIDE = "pagehide"

SIGNALS = (VISIBILITY_CHANGE, BEFORE_UNLOAD, UNLOAD, PAGE_HIDE)


class PageLifecycle:
    def __init__(self) -> None:
        self.visibility_state = "visible"
        self._listeners: dict[str, list[Callable[[], object]]] = defaultdict(list)

    @property
    def hidden(self) -> bool:
        return self.visibility_state == "hidden"

    def add_listener(self, signal: str, listener: Callable[[], object]) -> None:
        if signal not in SIGNALS:
            raise ValueError(f"unknown lifecycle signal: {signal!r}")
        self._listeners[signal].append(listener)

    def listeners(self, signal: str) -> list[Callable[[], object]]:
        return list(self._listeners.get(signal, ()))

    def dispatch(self, signal: str) -> None:
        for listener in self.listeners(signal):
            try:
                listener()
            except Exception:
                # One failing listener must not keep the page from closing.
                logger.exception("Lifecycle listener for %s failed", signal)

    def set_visibility(self, state: str) -> None:
        self.visibility_state = state
        self.dispatch(VISIBILITY_CHANGE)

    def close(self, *, handheld: bool = False) -> None:
        """Replay the signals a closing page emits, in browser order."""
        self.set_visibility("hidden")
        if handheld:
            self.dispatch(PAGE_HIDE)
        self.dispatch(BEFORE_UNLOAD)
        self.dispatch(UNLOAD)
