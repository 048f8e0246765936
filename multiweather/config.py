"""Build providers and the aggregator from declarative configuration.

A configuration lists provider kinds with their credentials, e.g.::

    WEATHER_PROVIDERS = [
        {"kind": "weatherstack", "api_key": "...", "repeat": 1},
        {"kind": "openweathermap", "api_key": "..."},
    ]
    WEATHER_TIMEOUT = 0.3

``repeat`` adds the same provider instance several times, so each call fans
out that many identical queries to the service.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type

from requests.adapters import DEFAULT_POOLSIZE

from .providers.base import RequestConfig, WeatherProvider
from .providers.openweathermap import OpenWeatherMapProvider
from .providers.weatherstack import WeatherStackProvider
from .services.aggregator import DEFAULT_TIMEOUT, TemperatureAggregator


PROVIDER_KINDS: Dict[str, Type[WeatherProvider]] = {
    OpenWeatherMapProvider.name: OpenWeatherMapProvider,
    WeatherStackProvider.name: WeatherStackProvider,
}

DEFAULT_REQUEST_TIMEOUT = 5.0


class ConfigurationError(ValueError):
    """Raised for invalid provider configuration."""


@dataclass(frozen=True)
class ProviderConfig:
    kind: str
    api_key: str
    repeat: int = 1
    base_url: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ProviderConfig":
        try:
            kind = data["kind"]
        except KeyError as exc:
            raise ConfigurationError("provider entry is missing 'kind'") from exc
        try:
            repeat = int(data.get("repeat", 1))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"invalid repeat for provider {kind!r}") from exc
        return cls(
            kind=str(kind).lower(),
            api_key=str(data.get("api_key") or ""),
            repeat=repeat,
            base_url=data.get("base_url"),
        )


@dataclass(frozen=True)
class AggregatorConfig:
    providers: Tuple[ProviderConfig, ...] = field(default_factory=tuple)
    timeout: float = DEFAULT_TIMEOUT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @classmethod
    def from_settings(cls, settings: Any) -> "AggregatorConfig":
        timeout, request_timeout = timeouts_from_settings(settings)
        return cls(
            providers=providers_from_settings(settings),
            timeout=timeout,
            request_timeout=request_timeout,
        )


def providers_from_settings(settings: Any) -> Tuple[ProviderConfig, ...]:
    entries = getattr(settings, "WEATHER_PROVIDERS", None) or ()
    try:
        return tuple(
            entry if isinstance(entry, ProviderConfig) else ProviderConfig.from_mapping(entry)
            for entry in entries
        )
    except TypeError as exc:
        raise ConfigurationError(f"invalid WEATHER_PROVIDERS entry: {exc}") from exc


def timeouts_from_settings(settings: Any) -> Tuple[float, float]:
    values = []
    for name, default in (
        ("WEATHER_TIMEOUT", DEFAULT_TIMEOUT),
        ("WEATHER_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
    ):
        raw = getattr(settings, name, default)
        try:
            values.append(float(raw))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    return values[0], values[1]


def validate_providers(config: AggregatorConfig) -> List[str]:
    """Return a list of human readable problems with the provider entries."""
    problems: List[str] = []
    for entry in config.providers:
        if entry.kind not in PROVIDER_KINDS:
            problems.append(f"unknown provider kind {entry.kind!r}")
        if entry.repeat < 1:
            problems.append(f"repeat for provider {entry.kind!r} must be at least 1")
    return problems


def build_provider(entry: ProviderConfig, request_config: Optional[RequestConfig] = None) -> WeatherProvider:
    try:
        provider_cls = PROVIDER_KINDS[entry.kind]
    except KeyError as exc:
        raise ConfigurationError(f"unknown provider kind {entry.kind!r}") from exc
    return provider_cls(api_key=entry.api_key, base_url=entry.base_url, request_config=request_config)


def build_providers(config: AggregatorConfig) -> List[WeatherProvider]:
    providers: List[WeatherProvider] = []
    for entry in config.providers:
        if entry.repeat < 1:
            raise ConfigurationError(f"repeat for provider {entry.kind!r} must be at least 1")
        # a repeated provider shares one session across all of its concurrent queries
        request_config = RequestConfig(
            timeout=config.request_timeout,
            pool_size=max(entry.repeat, DEFAULT_POOLSIZE),
        )
        provider = build_provider(entry, request_config)
        providers.extend([provider] * entry.repeat)
    return providers


def build_aggregator(config: AggregatorConfig) -> TemperatureAggregator:
    return TemperatureAggregator(build_providers(config), timeout=config.timeout)


def iter_kinds() -> Iterable[str]:
    return sorted(PROVIDER_KINDS)


__all__ = [
    "AggregatorConfig",
    "ConfigurationError",
    "PROVIDER_KINDS",
    "ProviderConfig",
    "build_aggregator",
    "build_provider",
    "build_providers",
    "iter_kinds",
    "providers_from_settings",
    "timeouts_from_settings",
    "validate_providers",
]
