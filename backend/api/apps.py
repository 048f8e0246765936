from __future__ import annotations

import os

from django.apps import AppConfig


class WeatherApiConfig(AppConfig):
    name = "backend.api"
    label = "weather_api"
    verbose_name = "Weather API"
    # backend is a namespace package and may be found in several locations
    path = os.path.dirname(os.path.abspath(__file__))

    def ready(self) -> None:
        from backend.api import checks  # noqa: F401  registers system checks
