from __future__ import annotations

import logging
from typing import List, Optional

import pytest

from backend.core.abstractions import Measurement
from backend.core.providers.base import ConfigError, NotFoundError, ProviderError, QuotaExceeded
from backend.core.providers.openaq import OpenAQProvider
from backend.core.providers.openweather import OpenWeatherGeocoder, OpenWeatherProvider
from backend.core.services.aqi_service import AggregationError, AirQualityService


def make_measurement(parameter: str = "pm25", value: float = 10.0, location: str = "Delhi") -> Measurement:
    return Measurement(parameter=parameter, value=value, unit="µg/m³", location=location)


class _StubPrimary:
    name = "primary"

    def __init__(self, result: Optional[List[Measurement]] = None, error: Optional[Exception] = None,
                 configured: bool = True) -> None:
        self.result = result or []
        self.error = error
        self.configured = configured
        self.calls = 0

    @property
    def is_configured(self) -> bool:
        return self.configured

    def fetch(self, city: str, limit: int) -> List[Measurement]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


class _StubSecondary(_StubPrimary):
    name = "secondary"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.api_keys: List[Optional[str]] = []

    def fetch(self, city: str, limit: int, api_key: Optional[str] = None) -> List[Measurement]:
        self.api_keys.append(api_key)
        return super().fetch(city, limit)


def test_primary_data_short_circuits_secondary() -> None:
    primary = _StubPrimary([make_measurement(), make_measurement("pm10", 30.0)])
    secondary = _StubSecondary([make_measurement(location="fallback")])
    service = AirQualityService(primary_provider=primary, secondary_provider=secondary)

    result = service.get_aqi("Delhi", 50)

    assert result == primary.result
    assert primary.calls == 1
    assert secondary.calls == 0


def test_empty_primary_falls_back_to_secondary() -> None:
    primary = _StubPrimary([])
    fallback = [make_measurement(location="New Delhi, IN")]
    secondary = _StubSecondary(fallback)
    service = AirQualityService(primary_provider=primary, secondary_provider=secondary)

    assert service.get_aqi("Delhi", 50) == fallback
    assert secondary.calls == 1


def test_empty_secondary_is_final_answer() -> None:
    primary = _StubPrimary([])
    secondary = _StubSecondary([])
    service = AirQualityService(primary_provider=primary, secondary_provider=secondary)

    assert service.get_aqi("Delhi", 50) == []
    assert primary.calls == 1
    assert secondary.calls == 1


def test_failing_primary_falls_back_to_secondary() -> None:
    primary = _StubPrimary(error=ProviderError("HTTP 500", status_code=500))
    fallback = [make_measurement()]
    secondary = _StubSecondary(fallback)
    service = AirQualityService(primary_provider=primary, secondary_provider=secondary)

    assert service.get_aqi("Delhi", 50) == fallback


def test_unexpected_primary_exception_falls_back() -> None:
    primary = _StubPrimary(error=KeyError("value"))
    secondary = _StubSecondary([make_measurement()])
    service = AirQualityService(primary_provider=primary, secondary_provider=secondary)

    assert len(service.get_aqi("Delhi", 50)) == 1


def test_quota_on_primary_falls_back() -> None:
    primary = _StubPrimary(error=QuotaExceeded("quota exceeded", status_code=429))
    secondary = _StubSecondary([make_measurement()])
    service = AirQualityService(primary_provider=primary, secondary_provider=secondary)

    assert len(service.get_aqi("Delhi", 50)) == 1


def test_both_failing_raises_aggregation_error() -> None:
    primary_error = ProviderError("HTTP 500", status_code=500, detail="primary down")
    secondary_error = ProviderError("HTTP 502", status_code=502, detail="secondary down")
    service = AirQualityService(
        primary_provider=_StubPrimary(error=primary_error),
        secondary_provider=_StubSecondary(error=secondary_error),
    )

    with pytest.raises(AggregationError) as excinfo:
        service.get_aqi("Delhi", 50)

    assert excinfo.value.primary_error is primary_error
    assert excinfo.value.secondary_error is secondary_error
    assert excinfo.value.status_code == 502
    assert excinfo.value.detail == "secondary down"


def test_aggregation_status_falls_back_to_primary() -> None:
    primary_error = ProviderError("HTTP 401", status_code=401, detail={"detail": "bad key"})
    secondary_error = ConfigError("Missing OPENWEATHERMAP_API_KEY")
    service = AirQualityService(
        primary_provider=_StubPrimary(error=primary_error),
        secondary_provider=_StubSecondary(error=secondary_error),
    )

    with pytest.raises(AggregationError) as excinfo:
        service.get_aqi("Delhi", 50)

    assert excinfo.value.status_code == 401
    assert excinfo.value.detail == {"detail": "bad key"}


def test_empty_primary_then_failing_secondary_is_combined() -> None:
    secondary_error = ProviderError("timeout")
    service = AirQualityService(
        primary_provider=_StubPrimary([]),
        secondary_provider=_StubSecondary(error=secondary_error),
    )

    with pytest.raises(AggregationError) as excinfo:
        service.get_aqi("Delhi", 50)

    assert excinfo.value.primary_error is None
    assert excinfo.value.secondary_error is secondary_error


def test_unconfigured_primary_is_skipped() -> None:
    primary = _StubPrimary([make_measurement()], configured=False)
    secondary = _StubSecondary([])
    service = AirQualityService(primary_provider=primary, secondary_provider=secondary)

    assert service.get_aqi("Delhi", 50) == []
    assert primary.calls == 0
    assert secondary.calls == 1


def test_without_primary_secondary_failure_is_not_wrapped() -> None:
    service = AirQualityService(
        primary_provider=_StubPrimary(configured=False),
        secondary_provider=_StubSecondary(error=NotFoundError("City not found")),
    )

    with pytest.raises(NotFoundError):
        service.get_aqi("Atlantis", 50)


def test_unexpected_secondary_exception_surfaces_as_provider_error() -> None:
    cause = ValueError("invalid literal for int() with base 10: 'yesterday'")
    service = AirQualityService(
        primary_provider=_StubPrimary(configured=False),
        secondary_provider=_StubSecondary(error=cause),
    )

    with pytest.raises(ProviderError) as excinfo:
        service.get_aqi("Delhi", 50)

    assert excinfo.value.__cause__ is cause
    assert "yesterday" in excinfo.value.detail


def test_quota_is_logged_as_warning(caplog) -> None:
    service = AirQualityService(
        primary_provider=_StubPrimary(error=QuotaExceeded("quota exceeded", status_code=429)),
        secondary_provider=_StubSecondary([make_measurement()]),
    )
    caplog.set_level(logging.INFO, logger="AirQualityService")

    service.get_aqi("Delhi", 50)

    quota_records = [r for r in caplog.records if "quota exceeded" in r.getMessage()]
    assert [r.levelno for r in quota_records] == [logging.WARNING]


def test_secondary_key_override_is_forwarded() -> None:
    secondary = _StubSecondary([])
    service = AirQualityService(primary_provider=None, secondary_provider=secondary)

    service.get_aqi("Delhi", 50, secondary_api_key="user-key")

    assert secondary.api_keys == ["user-key"]


def test_end_to_end_fallback_with_http_providers(requests_mock) -> None:
    requests_mock.get("https://openaq.test/measurements", json={"results": []})
    requests_mock.get("https://owm.test/geo", json=[{"lat": 51.5, "lon": -0.12, "name": "London", "country": "GB"}])
    requests_mock.get(
        "https://owm.test/air_pollution",
        json={"list": [{"dt": 1704103200, "components": {"pm2_5": 8.1, "pm10": 14.2, "no2": 22.0}}]},
    )
    service = AirQualityService(
        primary_provider=OpenAQProvider(api_key="aq-key", base_url="https://openaq.test/measurements"),
        secondary_provider=OpenWeatherProvider(
            api_key="owm-key",
            base_url="https://owm.test/air_pollution",
            geocoder=OpenWeatherGeocoder(api_key="owm-key", base_url="https://owm.test/geo"),
        ),
    )

    result = service.get_aqi("London", 50)

    assert [m.parameter for m in result] == ["pm25", "pm10", "no2"]
    assert {m.location for m in result} == {"London, GB"}
    assert requests_mock.call_count == 3
