from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import requests
from requests import Response


class ProviderError(RuntimeError):
    """Base provider error.

    ``status_code`` and ``detail`` mirror the upstream response when one was
    received; both stay ``None`` for transport level failures.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None, detail: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class ConfigError(ProviderError):
    """Raised when a provider is used without its credential."""


class NotFoundError(ProviderError):
    """Raised when the geocoder has no match for a city name."""


class QuotaExceeded(ProviderError):
    """Raised when a provider reports a quota/usage limit issue."""


@dataclass
class RequestConfig:
    timeout: float = 15.0


class HTTPProvider:
    """Base class that adds timeouts and error mapping for HTTP providers."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        self.request_config = request_config or self.default_request_config()
        self.session = session or requests.Session()
        self._log = logging.getLogger(self.__class__.__name__)

    @classmethod
    def default_request_config(cls) -> RequestConfig:
        return RequestConfig()

    def _handle_response(self, response: Response) -> Response:
        if response.status_code == 429:
            self._log.warning("Quota exceeded: %s", response.text)
            raise QuotaExceeded("quota exceeded", status_code=429, detail=_detail(response))
        if not 200 <= response.status_code < 300:
            self._log.error("Provider returned %s: %s", response.status_code, response.text)
            raise ProviderError(
                f"HTTP {response.status_code}",
                status_code=response.status_code,
                detail=_detail(response),
            )
        return response

    def _request(self, method: str, url: str, **kwargs) -> Response:
        try:
            response = self.session.request(
                method,
                url,
                timeout=self.request_config.timeout,
                **kwargs,
            )
        except requests.Timeout as exc:
            self._log.error("Request timed out", exc_info=exc)
            raise ProviderError("timeout") from exc
        except requests.RequestException as exc:
            self._log.error("Request failed", exc_info=exc)
            raise ProviderError("request failed") from exc
        return self._handle_response(response)

    def _json(self, response: Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            self._log.error("Failed to decode JSON", exc_info=exc)
            raise ProviderError(
                "invalid json",
                status_code=response.status_code,
                detail=response.text,
            ) from exc


def _detail(response: Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def safe_number(value: Any) -> Optional[float]:
    """Return ``value`` if it is a real number, ``None`` otherwise."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value != value:  # NaN
        return None
    return value


def format_instant(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


__all__ = [
    "ConfigError",
    "HTTPProvider",
    "NotFoundError",
    "ProviderError",
    "QuotaExceeded",
    "RequestConfig",
    "format_instant",
    "safe_number",
]
