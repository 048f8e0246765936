from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests
from requests import Response
from requests.adapters import DEFAULT_POOLSIZE, HTTPAdapter


class ProviderError(RuntimeError):
    """Base provider error."""


class QuotaExceeded(ProviderError):
    """Raised when a provider reports a quota/usage limit issue."""


@dataclass
class RequestConfig:
    timeout: float = 5.0
    # connections kept per host; should cover concurrent calls on one session
    pool_size: int = DEFAULT_POOLSIZE


class WeatherProvider:
    """Base class for HTTP temperature providers.

    Subclasses set ``name`` and implement :meth:`temperature`. Requests are
    made once with a transport timeout; failed requests are never retried.
    """

    name = "provider"

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        self.request_config = request_config or RequestConfig()
        self.session = session or self._build_session(self.request_config)
        self._log = logging.getLogger(self.__class__.__name__)

    def _build_session(self, config: RequestConfig) -> requests.Session:
        session = requests.Session()
        adapter = HTTPAdapter(pool_maxsize=config.pool_size)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def temperature(self, city: str) -> float:
        raise NotImplementedError

    def _handle_response(self, response: Response) -> Response:
        if response.status_code == 429:
            self._log.warning("Quota exceeded: %s", response.text)
            raise QuotaExceeded(f"{self.name}: quota exceeded")
        if response.status_code >= 400:
            self._log.error("Provider returned %s: %s", response.status_code, response.text)
            raise ProviderError(f"{self.name}: HTTP {response.status_code}")
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
            raise ProviderError(f"{self.name}: timeout") from exc
        except requests.RequestException as exc:
            self._log.error("Request failed", exc_info=exc)
            raise ProviderError(f"{self.name}: request failed") from exc
        return self._handle_response(response)

    def _json(self, response: Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            self._log.error("Failed to decode JSON", exc_info=exc)
            raise ProviderError(f"{self.name}: invalid json") from exc

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


def _safe_float(value: Optional[object]) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


__all__ = ["WeatherProvider", "ProviderError", "QuotaExceeded", "RequestConfig"]
