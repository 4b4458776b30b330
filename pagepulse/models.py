"""
PagePulse — pydantic wire models.

TrackingEvent is what a page sends to the ingest route; EnrichedEvent is what
the relay ships to the collector. Both serialise with camelCase keys.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from .sanitize import absint
from .useragent import DeviceClass

ANONYMIZED_IP = "ANONYMIZED"
DIRECT_URL = "Direct"
UNKNOWN_LOCATION = "unknown"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Page → ingest
# ---------------------------------------------------------------------------

class TrackingEvent(_CamelModel):
    """One visit, as reported by the page. Every field is optional at the
    model level; the ingest route decides which ones are essential."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    screen_width: Optional[int] = None
    screen_height: Optional[int] = None
    language: Optional[str] = None
    timezone: Optional[str] = None
    cookies_enabled: Optional[bool] = None
    page_title: Optional[str] = None
    location: Optional[str] = None
    operating_system: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    time_spent: Optional[int] = None
    browser: Optional[str] = None
    user_agent: Optional[str] = None
    url: Optional[str] = None

    @field_validator("screen_width", "screen_height", "time_spent", mode="before")
    @classmethod
    def _numeric(cls, value: Any) -> Optional[int]:
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValueError("must be numeric")
        if isinstance(value, str):
            try:
                float(value)
            except ValueError:
                raise ValueError("must be numeric") from None
        elif not isinstance(value, (int, float)):
            raise ValueError("must be numeric")
        return absint(value)


# ---------------------------------------------------------------------------
# Ingest → collector
# ---------------------------------------------------------------------------

class EnrichedEvent(_CamelModel):
    """TrackingEvent minus the raw user agent, plus server-derived fields.

    Extra keys are allowed so payload filters can attach their own fields.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    user_id: str = ""
    user_id_type: str = ""
    ip_address: str = ANONYMIZED_IP
    url: str = DIRECT_URL
    device: DeviceClass = DeviceClass.UNKNOWN
    organization: str = ""
    event_date: str = ""
    screen_width: int = 0
    screen_height: int = 0
    language: str = ""
    timezone: str = ""
    cookies_enabled: bool = False
    page_title: str = "unknown"
    location: str = UNKNOWN_LOCATION
    operating_system: str = ""
    start_time: str = ""
    end_time: str = ""
    time_spent: int = 0
    browser: str = ""


class IngestResponse(BaseModel):
    status: str
    message: str
