"""Base Django settings for the temperature aggregation service."""
from __future__ import annotations

import os

from django.core.exceptions import ImproperlyConfigured


def env(name: str, default: str | None = None) -> str:
    """Fetch environment variables while allowing explicit defaults."""

    value = os.environ.get(name, default)
    if value is None:
        raise ImproperlyConfigured(f"Environment variable {name} is required")
    return value


SECRET_KEY = env("DJANGO_SECRET_KEY")
DEBUG = os.environ.get("DJANGO_DEBUG", "0") == "1"
ALLOWED_HOSTS = os.environ.get("DJANGO_ALLOWED_HOSTS", "*").split(",")

INSTALLED_APPS = [
    "rest_framework",
    "backend.api.apps.WeatherApiConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "backend.urls"

WSGI_APPLICATION = "backend.wsgi.application"

# Providers -----------------------------------------------------------------
WEATHERSTACK_API_KEY = os.environ.get("WEATHERSTACK_API_KEY", "")
OPENWEATHERMAP_API_KEY = os.environ.get("OPENWEATHERMAP_API_KEY", "")
WEATHER_PROVIDER_REPEAT = int(os.environ.get("WEATHER_PROVIDER_REPEAT", "1"))

WEATHER_PROVIDERS = [
    {"kind": kind, "api_key": api_key, "repeat": WEATHER_PROVIDER_REPEAT}
    for kind, api_key in (
        ("weatherstack", WEATHERSTACK_API_KEY),
        ("openweathermap", OPENWEATHERMAP_API_KEY),
    )
    if api_key
]

# Seconds to wait for all providers of one request.
WEATHER_TIMEOUT = float(os.environ.get("WEATHER_TIMEOUT", "0.3"))
WEATHER_REQUEST_TIMEOUT = float(os.environ.get("WEATHER_REQUEST_TIMEOUT", "5"))

REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
    ],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "UNAUTHENTICATED_USER": None,
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": os.environ.get("WEATHER_LOG_LEVEL", "INFO"),
    },
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True
