"""REST API views for air quality information."""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List, Optional

from django.conf import settings
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from backend.core.abstractions import Measurement
from backend.core.providers.base import ProviderError
from backend.core.providers.openaq import OpenAQProvider
from backend.core.providers.openweather import OpenWeatherProvider
from backend.core.services.aqi_service import AggregationError, AirQualityService


SECONDARY_KEY_HEADER = "X-OWM-Key"
SECONDARY_KEY_PARAMS = ("secondaryKey", "owmKey")


@lru_cache(maxsize=1)
def get_aqi_service() -> AirQualityService:
    return AirQualityService(
        primary_provider=OpenAQProvider(api_key=settings.OPENAQ_API_KEY),
        secondary_provider=OpenWeatherProvider(api_key=settings.OPENWEATHERMAP_API_KEY),
    )


def serialize_results(measurements: List[Measurement]) -> Dict[str, Any]:
    return {"results": [measurement.as_dict() for measurement in measurements]}


def failure_payload(exc: Exception) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"error": "Failed to fetch AQI"}
    status_code = getattr(exc, "status_code", None)
    detail = getattr(exc, "detail", None) or str(exc)
    if status_code is not None:
        payload["status"] = status_code
    if detail:
        payload["details"] = detail
    return payload


def parse_limit(raw: Optional[str]) -> int:
    if raw in (None, ""):
        return settings.AQI_DEFAULT_LIMIT
    limit = int(raw)
    if limit < 1:
        raise ValueError("limit must be positive")
    return limit


class HealthView(APIView):
    """Liveness probe."""

    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):  # noqa: D401
        return Response({"status": "ok"}, status=status.HTTP_200_OK)


class AqiView(APIView):
    """Provide normalized pollutant measurements for a city."""

    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):  # noqa: D401
        """Return the latest measurements, falling back between providers."""
        city = request.query_params.get("city") or settings.AQI_DEFAULT_CITY
        try:
            limit = parse_limit(request.query_params.get("limit"))
        except ValueError:
            return Response({"detail": "limit must be a positive integer"}, status=status.HTTP_400_BAD_REQUEST)

        secondary_key = request.headers.get(SECONDARY_KEY_HEADER)
        for name in SECONDARY_KEY_PARAMS:
            secondary_key = secondary_key or request.query_params.get(name)

        try:
            measurements = get_aqi_service().get_aqi(city, limit, secondary_api_key=secondary_key or None)
        except (AggregationError, ProviderError) as exc:
            return Response(failure_payload(exc), status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response(serialize_results(measurements), status=status.HTTP_200_OK)
