"""PagePulse client — geolocation providers for best-effort location enrichment."""

from __future__ import annotations

import asyncio
from typing import Optional, Protocol

Coordinates = tuple[float, float]


class Geolocator(Protocol):
    async def locate(self) -> Optional[Coordinates]: ...


class FixedGeolocator:
    """Resolves to fixed coordinates, optionally after a delay."""

    def __init__(self, latitude: float, longitude: float, delay: float = 0.0):
        self.coordinates = (latitude, longitude)
        self.delay = delay

    async def locate(self) -> Optional[Coordinates]:
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.coordinates


def parse_coordinates(raw: str) -> Coordinates:
    """Parse "lat,lon" into floats; raises ValueError on bad input."""
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) != 2:
        raise ValueError(f"expected LAT,LON, got {raw!r}")
    lat, lon = float(parts[0]), float(parts[1])
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        raise ValueError(f"coordinates out of range: {raw!r}")
    return lat, lon


def format_location(coordinates: Coordinates) -> str:
    return f"{coordinates[0]}, {coordinates[1]}"
