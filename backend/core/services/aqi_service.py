"""Air quality service that falls back from the primary to the secondary provider."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple

import logging

from backend.core.abstractions import AirQualityProvider, Measurement
from backend.core.providers.base import ProviderError, QuotaExceeded
from backend.core.providers.openweather import OpenWeatherProvider


class AggregationError(RuntimeError):
    """Raised when the primary and the secondary provider both failed."""

    def __init__(self, primary_error: Optional[Exception], secondary_error: Exception) -> None:
        super().__init__("Failed to fetch AQI from all providers")
        self.primary_error = primary_error
        self.secondary_error = secondary_error

    @property
    def status_code(self) -> Optional[int]:
        status = getattr(self.secondary_error, "status_code", None)
        if status is None and self.primary_error is not None:
            status = getattr(self.primary_error, "status_code", None)
        return status

    @property
    def detail(self) -> Any:
        for error in (self.secondary_error, self.primary_error):
            detail = getattr(error, "detail", None)
            if detail:
                return detail
        return str(self.secondary_error)


@dataclass(frozen=True)
class Attempt:
    """Outcome of one provider call: data, empty data, or a failure."""

    provider: str
    measurements: Tuple[Measurement, ...] = ()
    error: Optional[Exception] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def has_data(self) -> bool:
        return not self.failed and bool(self.measurements)


class AirQualityService:
    """Answer "what is the air quality near a city" using two providers.

    The primary provider is only consulted when it is configured. An empty
    primary answer is treated like a failed one: both hand over to the
    secondary provider, whose answer (even an empty one) is final.
    """

    def __init__(
        self,
        *,
        primary_provider: Optional[AirQualityProvider],
        secondary_provider: OpenWeatherProvider,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.primary = primary_provider
        self.secondary = secondary_provider
        self._log = logger or logging.getLogger(self.__class__.__name__)

    # Public API ---------------------------------------------------------
    def get_aqi(self, city: str, limit: int, secondary_api_key: Optional[str] = None) -> List[Measurement]:
        primary: Optional[Attempt] = None
        if self.primary is not None and self.primary.is_configured:
            primary = self._attempt(self.primary.name, self.primary.fetch, city, limit)
            if primary.has_data:
                return list(primary.measurements)
            self._log.info("Primary provider %s gave no data for %s, falling back", primary.provider, city)

        secondary = self._attempt(
            self.secondary.name,
            lambda c, n: self.secondary.fetch(c, n, api_key=secondary_api_key),
            city,
            limit,
        )
        return self._decide(primary, secondary)

    # Helpers ------------------------------------------------------------
    def _attempt(
        self,
        name: str,
        fetch: Callable[[str, int], Sequence[Measurement]],
        city: str,
        limit: int,
    ) -> Attempt:
        try:
            measurements = fetch(city, limit)
        except QuotaExceeded as exc:
            self._log.warning("Provider %s quota exceeded", name)
            return Attempt(provider=name, error=exc)
        except Exception as exc:  # noqa: BLE001 - provider failures become fallback triggers
            self._log.error(
                "Provider %s failed: %s (status=%s)", name, exc, getattr(exc, "status_code", None)
            )
            if not isinstance(exc, ProviderError):
                wrapped = ProviderError(f"{name} returned an unusable response", detail=str(exc))
                wrapped.__cause__ = exc
                exc = wrapped
            return Attempt(provider=name, error=exc)
        return Attempt(provider=name, measurements=tuple(measurements))

    def _decide(self, primary: Optional[Attempt], secondary: Attempt) -> List[Measurement]:
        if not secondary.failed:
            return list(secondary.measurements)
        if primary is None:
            # Nothing to combine with: surface the secondary failure unchanged.
            raise secondary.error
        raise AggregationError(primary_error=primary.error, secondary_error=secondary.error)


__all__ = ["AggregationError", "AirQualityService", "Attempt"]
