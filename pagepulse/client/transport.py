"""
PagePulse client — beacon transports.

send() issues a payload and returns immediately. Nothing downstream of it may
depend on the response: the page can be gone before one arrives.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

import httpx

logger = logging.getLogger("pagepulse.client")


class Transport(Protocol):
    def send(self, url: str, payload: dict) -> None: ...


class BeaconTransport:
    """Fire-and-forget POSTs over a shared httpx.AsyncClient."""

    def __init__(
        self,
        timeout: float = 5.0,
        user_agent: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"User-Agent": user_agent} if user_agent else None
        self._client = httpx.AsyncClient(timeout=timeout, headers=headers, transport=transport)
        self._pending: set[asyncio.Task] = set()
        self.responses: list[httpx.Response] = []

    def send(self, url: str, payload: dict) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running page loop, beacon to %s dropped", url)
            return
        task = loop.create_task(self._post(url, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _post(self, url: str, payload: dict) -> None:
        try:
            resp = await self._client.post(url, json=payload)
            self.responses.append(resp)
        except Exception as e:
            logger.debug("Beacon send failed (non-critical): %s", e)

    async def drain(self) -> None:
        """Wait for beacons still in flight (hosts that outlive the page only)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def aclose(self) -> None:
        await self._client.aclose()


class RecordingTransport:
    """Keeps payloads instead of sending them (dry runs)."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, dict]] = []

    def send(self, url: str, payload: dict) -> None:
        self.sent.append((url, payload))
