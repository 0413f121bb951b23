"""Management command to fetch air quality using the same stack as the API."""
from __future__ import annotations

import json
from typing import Any

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from backend.api.views import get_aqi_service, serialize_results
from backend.core.providers.base import ProviderError
from backend.core.services.aqi_service import AggregationError


class Command(BaseCommand):
    help = "Fetch current air quality measurements for a city"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument("--city", type=str, default=None, help="City name")
        parser.add_argument("--limit", type=int, default=None, help="Maximum number of measurements")
        parser.add_argument("--secondary-key", type=str, default=None, help="OpenWeather key for this call")

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        city = options.get("city") or settings.AQI_DEFAULT_CITY
        limit = options.get("limit")
        if limit is None:
            limit = settings.AQI_DEFAULT_LIMIT
        if limit < 1:
            raise CommandError("--limit must be positive")

        try:
            measurements = get_aqi_service().get_aqi(city, limit, secondary_api_key=options.get("secondary_key"))
        except (AggregationError, ProviderError) as exc:
            raise CommandError(f"Failed to fetch AQI: {exc}") from exc

        self.stdout.write(json.dumps(serialize_results(measurements), ensure_ascii=False))
