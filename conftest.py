from __future__ import annotations

import os

import django
import pytest
import requests_mock as requests_mock_lib


os.environ.setdefault("DJANGO_SECRET_KEY", "test-secret")
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings")
os.environ.setdefault("WEATHERSTACK_API_KEY", "test-ws")
os.environ.setdefault("OPENWEATHERMAP_API_KEY", "test-owm")
os.environ.setdefault("WEATHER_TIMEOUT", "0.3")

django.setup()


@pytest.fixture()
def requests_mock():
    with requests_mock_lib.Mocker() as mocker:
        yield mocker


@pytest.fixture()
def aggregator_cache():
    from backend.api.views import get_aggregator

    get_aggregator.cache_clear()
    yield get_aggregator
    get_aggregator.cache_clear()
