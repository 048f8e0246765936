"""API URL configuration."""
from __future__ import annotations

from django.urls import path

from backend.api.views import WeatherView, hello

urlpatterns = [
    path("hello", hello, name="hello"),
    path("weather/<path:city>", WeatherView.as_view(), name="weather"),
]
