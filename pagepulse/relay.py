"""
PagePulse Relay — best-effort delivery of enriched events to the collector.

One POST per event, bounded timeout, no retries. Failures are logged here and
reported back as a RelayOutcome; they never raise.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .models import EnrichedEvent

logger = logging.getLogger("pagepulse.relay")


@dataclass
class RelayOutcome:
    ok: bool
    status_code: Optional[int] = None
    message: str = ""


class RelayForwarder:
    """Forwards EnrichedEvents to a fixed collector URL."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        api_key: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.api_key = api_key
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._pending: set[asyncio.Task] = set()

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def forward(self, event: EnrichedEvent) -> RelayOutcome:
        try:
            resp = await self._client.post(
                self.url,
                content=event.model_dump_json(by_alias=True),
                headers=self._headers(),
            )
        except httpx.HTTPError as exc:
            message = str(exc) or exc.__class__.__name__
            logger.error("Failed to send data to collector - %s", message)
            return RelayOutcome(ok=False, message=message)

        if not resp.is_success:
            logger.error(
                "Collector returned status code %d with body: %s",
                resp.status_code,
                resp.text[:500],
            )
            return RelayOutcome(
                ok=False,
                status_code=resp.status_code,
                message=f"External API returned non-success status. HTTP {resp.status_code}",
            )

        return RelayOutcome(ok=True, status_code=resp.status_code)

    def dispatch(self, event: EnrichedEvent) -> None:
        """Schedule forward() on the running loop and return immediately."""
        task = asyncio.create_task(self.forward(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for dispatched events still in flight."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        await self._client.aclose()
