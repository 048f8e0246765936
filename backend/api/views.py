"""REST API views for aggregated temperature information."""
from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Dict

from django.conf import settings
from django.http import HttpResponse
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from multiweather.config import AggregatorConfig, build_aggregator
from multiweather.services.aggregator import TemperatureAggregator


logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_aggregator() -> TemperatureAggregator:
    return build_aggregator(AggregatorConfig.from_settings(settings))


def fetch_temperature(city: str) -> Dict[str, object]:
    """Query every provider for ``city`` and build the response payload."""
    start = time.monotonic()
    value = get_aggregator().temperature(city)
    took = (time.monotonic() - start) * 1000
    return {"name": city, "temperature": value, "took": f"{took:.3f}ms"}


def hello(request):
    return HttpResponse(b"hello!", content_type="text/plain")


class WeatherView(APIView):
    """Average temperature of a city across all configured providers."""

    def get(self, request, city: str, *args, **kwargs):  # noqa: D401
        """Return the aggregated temperature for ``city``."""
        try:
            payload = fetch_temperature(city)
        except Exception as exc:  # noqa: BLE001 - any provider failure becomes a 500
            logger.error("Temperature lookup failed for city=%s: %s", city, exc)
            return Response({"detail": str(exc)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response(payload, status=status.HTTP_200_OK)
