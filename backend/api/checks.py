"""System checks validating the provider configuration at startup."""
from __future__ import annotations

from django.conf import settings
from django.core.checks import Error, register

from multiweather.config import (
    AggregatorConfig,
    ConfigurationError,
    iter_kinds,
    providers_from_settings,
    timeouts_from_settings,
    validate_providers,
)


@register()
def check_weather_providers(app_configs=None, **kwargs):
    errors = []
    try:
        providers = providers_from_settings(settings)
    except ConfigurationError as exc:
        errors.append(Error(str(exc), id="weather.E002"))
    else:
        if not providers:
            errors.append(
                Error(
                    "No weather providers configured.",
                    hint="Set WEATHERSTACK_API_KEY and/or OPENWEATHERMAP_API_KEY.",
                    id="weather.E001",
                )
            )
        for problem in validate_providers(AggregatorConfig(providers=providers)):
            errors.append(Error(problem, hint=f"Known kinds: {', '.join(iter_kinds())}.", id="weather.E002"))

    try:
        timeout, request_timeout = timeouts_from_settings(settings)
    except ConfigurationError as exc:
        errors.append(Error(str(exc), id="weather.E003"))
    else:
        if timeout <= 0:
            errors.append(Error("WEATHER_TIMEOUT must be positive.", id="weather.E003"))
        if request_timeout <= 0:
            errors.append(Error("WEATHER_REQUEST_TIMEOUT must be positive.", id="weather.E003"))
    return errors
