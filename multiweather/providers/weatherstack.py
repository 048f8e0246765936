from __future__ import annotations

import logging
from typing import Optional

from .base import ProviderError, WeatherProvider, _safe_float


class WeatherStackProvider(WeatherProvider):
    """Current temperature (Celsius) from the weatherstack ``current`` endpoint."""

    name = "weatherstack"
    base_url = "http://api.weatherstack.com/current"

    def __init__(self, api_key: str, base_url: Optional[str] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key
        self.base_url = base_url or self.base_url
        self._log = logging.getLogger(self.__class__.__name__)

    def temperature(self, city: str) -> float:
        params = {"access_key": self.api_key, "query": city}
        response = self._request("GET", self.base_url, params=params)
        data = self._json(response)
        if not isinstance(data, dict):
            raise ProviderError(f"{self.name}: unexpected payload")
        # weatherstack reports failures with HTTP 200 and an error object
        if data.get("success") is False or "error" in data:
            raise ProviderError(f"{self.name}: {self._error_info(data)}")
        current = data.get("current") or {}
        value = _safe_float(current.get("temperature"))
        if value is None:
            raise ProviderError(f"{self.name}: missing current.temperature in response")
        self._log.info("%s: city=%s, temperature=%.2f", self.name, city, value)
        return value

    def _error_info(self, data: dict) -> str:
        error = data.get("error") or {}
        info = error.get("info") or error.get("type")
        code = error.get("code")
        if info and code:
            return f"{info} (code {code})"
        return str(info or "upstream error")


__all__ = ["WeatherStackProvider"]
