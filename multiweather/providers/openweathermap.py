from __future__ import annotations

import logging
from typing import Optional

from .base import ProviderError, WeatherProvider, _safe_float


KELVIN_OFFSET = 273.15


def _kelvin_to_celsius(value: float) -> float:
    return round(value - KELVIN_OFFSET, 2)


class OpenWeatherMapProvider(WeatherProvider):
    """Current temperature from the OpenWeatherMap weather endpoint.

    The API reports Kelvin by default; values are returned in Celsius.
    """

    name = "openweathermap"
    base_url = "https://api.openweathermap.org/data/2.5/weather"

    def __init__(self, api_key: str, base_url: Optional[str] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key
        self.base_url = base_url or self.base_url
        self._log = logging.getLogger(self.__class__.__name__)

    def temperature(self, city: str) -> float:
        params = {"APPID": self.api_key, "q": city}
        response = self._request("GET", self.base_url, params=params)
        data = self._json(response)
        main = data.get("main") if isinstance(data, dict) else None
        kelvin = _safe_float((main or {}).get("temp"))
        if kelvin is None:
            raise ProviderError(f"{self.name}: missing main.temp in response")
        celsius = _kelvin_to_celsius(kelvin)
        self._log.info("%s: city=%s, temperature=%.2f", self.name, city, celsius)
        return celsius


__all__ = ["OpenWeatherMapProvider"]
