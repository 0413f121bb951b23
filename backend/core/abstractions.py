"""Core abstractions for the air quality domain."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence


@dataclass(frozen=True, slots=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class Measurement:
    """Normalized pollutant reading.

    Every provider produces this shape regardless of how its upstream payload
    looks, so callers never see source specific field names.
    """

    parameter: Optional[str]
    value: float
    unit: Optional[str]
    location: str
    coordinates: Optional[Coordinates] = None
    timestamp: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        coordinates = None
        if self.coordinates is not None:
            coordinates = {
                "latitude": self.coordinates.latitude,
                "longitude": self.coordinates.longitude,
            }
        return {
            "parameter": self.parameter,
            "value": self.value,
            "unit": self.unit,
            "location": self.location,
            "coordinates": coordinates,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True, slots=True)
class GeocodeResult:
    latitude: float
    longitude: float
    label: str


class AirQualityProvider(Protocol):
    """A data source capable of returning normalized measurements for a city."""

    name: str

    @property
    def is_configured(self) -> bool:
        ...

    def fetch(self, city: str, limit: int) -> Sequence[Measurement]:
        """Fetch at most ``limit`` measurements near ``city``."""
        ...


__all__ = ["AirQualityProvider", "Coordinates", "GeocodeResult", "Measurement"]
