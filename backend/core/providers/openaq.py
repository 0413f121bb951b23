"""OpenAQ measurement provider (primary source)."""
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

import requests

from backend.core.abstractions import Coordinates, Measurement
from backend.core.providers.base import (
    ConfigError,
    HTTPProvider,
    ProviderError,
    RequestConfig,
    format_instant,
    safe_number,
)


POLLUTANTS = ("pm25", "pm10", "no2")


class OpenAQProvider(HTTPProvider):
    """Integration with the OpenAQ measurement search endpoint."""

    name = "openaq"
    base_url = "https://api.openaq.org/v3/measurements"

    def __init__(
        self,
        *,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        super().__init__(session=session, request_config=request_config)
        self.api_key = api_key or ""
        self.base_url = base_url or self.base_url

    @classmethod
    def default_request_config(cls) -> RequestConfig:
        return RequestConfig(timeout=20.0)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def fetch(self, city: str, limit: int) -> List[Measurement]:
        if not self.is_configured:
            raise ConfigError("Missing OPENAQ_API_KEY")
        params = {
            "city": city,
            "limit": limit,
            "parameter": list(POLLUTANTS),
            "sort": "desc",
            "order_by": "datetime",
        }
        headers = {"X-API-Key": self.api_key}
        response = self._request("GET", self.base_url, params=params, headers=headers)
        data = self._json(response)
        items = self._extract_items(data)
        self._log.debug("OpenAQ returned %d raw records for %s", len(items), city)

        result: List[Measurement] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            measurement = self._build_measurement(item, city)
            if measurement is not None:
                result.append(measurement)
        return result

    # Helpers ------------------------------------------------------------
    def _extract_items(self, data: Any) -> list:
        if not isinstance(data, dict):
            raise ProviderError("unexpected response shape", detail=data)
        # The search endpoint has shipped both envelopes; neither means no data.
        if isinstance(data.get("results"), list):
            return data["results"]
        if isinstance(data.get("data"), list):
            return data["data"]
        return []

    def _build_measurement(self, item: dict, city: str) -> Optional[Measurement]:
        value = safe_number(item.get("value"))
        if value is None:
            return None
        parameter, parameter_unit = self._extract_parameter(item)
        return Measurement(
            parameter=parameter,
            value=value,
            unit=item.get("unit") or parameter_unit,
            location=self._extract_location(item, city),
            coordinates=self._extract_coordinates(item),
            timestamp=self._extract_timestamp(item),
        )

    def _extract_parameter(self, item: dict) -> tuple[Optional[str], Optional[str]]:
        raw = item.get("parameter") or item.get("pollutant")
        if isinstance(raw, dict):
            return raw.get("name"), raw.get("units")
        return raw or None, None

    def _extract_location(self, item: dict, city: str) -> str:
        for key in ("location", "locationName"):
            value = item.get(key)
            if isinstance(value, str) and value:
                return value
        return city

    def _extract_coordinates(self, item: dict) -> Optional[Coordinates]:
        nested = item.get("coordinates") or item.get("coordinate")
        source = nested if isinstance(nested, dict) else item
        latitude = safe_number(source.get("latitude"))
        longitude = safe_number(source.get("longitude"))
        if latitude is None or longitude is None:
            return None
        return Coordinates(latitude=float(latitude), longitude=float(longitude))

    def _extract_timestamp(self, item: dict) -> Optional[str]:
        date = item.get("date")
        if isinstance(date, dict) and date.get("utc") is not None:
            raw = date["utc"]
        else:
            raw = item.get("datetime")
            if isinstance(raw, dict):
                raw = raw.get("utc")
        if raw is None or raw == "":
            return None
        if not isinstance(raw, str):
            self._log.warning("Non-string datetime %r", raw)
            return None
        try:
            return format_instant(datetime.fromisoformat(raw.replace("Z", "+00:00")))
        except ValueError:
            self._log.warning("Unparseable datetime %r", raw)
            return None


__all__ = ["OpenAQProvider", "POLLUTANTS"]
