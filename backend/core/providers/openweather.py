"""OpenWeather geocoding and air pollution provider (secondary source)."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

import requests

from backend.core.abstractions import Coordinates, GeocodeResult, Measurement
from backend.core.providers.base import (
    ConfigError,
    HTTPProvider,
    NotFoundError,
    ProviderError,
    RequestConfig,
    format_instant,
    safe_number,
)


UNIT = "µg/m³"

# (upstream component, canonical parameter); order is the emission order.
COMPONENTS = (
    ("pm2_5", "pm25"),
    ("pm10", "pm10"),
    ("no2", "no2"),
)


def _require_key(api_key: Optional[str]) -> str:
    if not api_key:
        raise ConfigError("Missing OPENWEATHERMAP_API_KEY")
    return api_key


class OpenWeatherGeocoder(HTTPProvider):
    """Resolve a free-text city name through the OpenWeather direct geocoder.

    The first match is used as-is; ambiguous names ("Springfield") resolve to
    whatever the geocoder ranks first.
    """

    base_url = "https://api.openweathermap.org/geo/1.0/direct"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        super().__init__(session=session, request_config=request_config)
        self.api_key = api_key or ""
        self.base_url = base_url or self.base_url

    def resolve_city(self, city: str, api_key: Optional[str] = None) -> GeocodeResult:
        key = _require_key(api_key or self.api_key)
        params = {"q": city, "limit": 1, "appid": key}
        response = self._request("GET", self.base_url, params=params)
        data = self._json(response)
        if not isinstance(data, list) or not data:
            raise NotFoundError("City not found", detail=f"No geocoding match for {city!r}")
        match = data[0]
        latitude = safe_number(match.get("lat")) if isinstance(match, dict) else None
        longitude = safe_number(match.get("lon")) if isinstance(match, dict) else None
        if latitude is None or longitude is None:
            raise ProviderError("malformed geocoding match", detail=match)
        label = ", ".join(
            str(part) for part in (match.get("name"), match.get("state"), match.get("country")) if part
        )
        return GeocodeResult(latitude=float(latitude), longitude=float(longitude), label=label)


class OpenWeatherProvider(HTTPProvider):
    """Integration with the OpenWeather air pollution endpoint."""

    name = "openweather"
    base_url = "https://api.openweathermap.org/data/2.5/air_pollution"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        geocoder: Optional[OpenWeatherGeocoder] = None,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        super().__init__(session=session, request_config=request_config)
        self.api_key = api_key or ""
        self.base_url = base_url or self.base_url
        self.geocoder = geocoder or OpenWeatherGeocoder(
            api_key=self.api_key,
            session=self.session,
            request_config=self.request_config,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def fetch(self, city: str, limit: int, api_key: Optional[str] = None) -> List[Measurement]:
        """Return the latest pm25/pm10/no2 readings near ``city``.

        ``api_key`` overrides the configured credential for this call only.
        """
        key = api_key or self.api_key
        geo = self.geocoder.resolve_city(city, api_key=key)
        params = {"lat": geo.latitude, "lon": geo.longitude, "appid": _require_key(key)}
        response = self._request("GET", self.base_url, params=params)
        data = self._json(response)

        bundles = data.get("list") if isinstance(data, dict) else None
        if not isinstance(bundles, list) or not bundles:
            return []
        latest = bundles[0]
        components = latest.get("components") if isinstance(latest, dict) else None
        if not isinstance(components, dict):
            return []

        timestamp = self._parse_timestamp(latest.get("dt"))
        coordinates = Coordinates(latitude=geo.latitude, longitude=geo.longitude)
        result: List[Measurement] = []
        for component, parameter in COMPONENTS:
            value = safe_number(components.get(component))
            if value is None:
                continue
            result.append(
                Measurement(
                    parameter=parameter,
                    value=value,
                    unit=UNIT,
                    location=geo.label,
                    coordinates=coordinates,
                    timestamp=timestamp,
                )
            )
        return result[:limit]

    def _parse_timestamp(self, value: Any) -> Optional[str]:
        if not value:
            return None
        try:
            return format_instant(datetime.fromtimestamp(int(value), tz=timezone.utc))
        except (TypeError, ValueError, OverflowError, OSError):
            self._log.warning("Unparseable bundle time %r", value)
            return None


__all__ = ["OpenWeatherGeocoder", "OpenWeatherProvider"]
