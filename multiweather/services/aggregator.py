"""Concurrent temperature aggregation over several providers."""
from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Iterable, List, Tuple

from ..abstractions import TemperatureProvider
from ..entities import QueryOutcome


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 0.3


class AggregationError(RuntimeError):
    """Base error raised by the aggregator itself."""


class AggregationTimeout(AggregationError):
    """Raised when not every provider answered before the deadline."""


class NoProvidersConfigured(AggregationError):
    """Raised when an aggregator is built without any provider."""


def provider_name(provider: TemperatureProvider) -> str:
    return getattr(provider, "name", None) or provider.__class__.__name__


class TemperatureAggregator:
    """Average the temperature reported by every configured provider.

    Each call queries all providers in parallel and waits at most ``timeout``
    seconds in total. The first provider error is re-raised as is; if the
    deadline passes first, :class:`AggregationTimeout` is raised. Queries still
    running when the call returns are left to finish in the background and
    their results are dropped.
    """

    def __init__(
        self,
        providers: Iterable[TemperatureProvider],
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._providers: Tuple[TemperatureProvider, ...] = tuple(providers)
        if not self._providers:
            raise NoProvidersConfigured("at least one weather provider is required")
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = timeout

    @property
    def providers(self) -> Tuple[TemperatureProvider, ...]:
        return self._providers

    def temperature(self, city: str) -> float:
        expected = len(self._providers)
        outcomes: "queue.SimpleQueue[QueryOutcome]" = queue.SimpleQueue()
        done = threading.Event()
        deadline = time.monotonic() + self.timeout

        logger.debug("Querying %d providers for city=%s", expected, city)
        try:
            for provider in self._providers:
                worker = threading.Thread(
                    target=self._query,
                    args=(provider, city, outcomes, done),
                    name=f"weather-{provider_name(provider)}",
                    daemon=True,
                )
                worker.start()
            total = self._collect(outcomes, expected, deadline, city)
        finally:
            done.set()

        result = total / expected
        logger.info("Aggregated %d providers for city=%s: %.2f", expected, city, result)
        return result

    # Helpers ------------------------------------------------------------
    def _collect(
        self,
        outcomes: "queue.SimpleQueue[QueryOutcome]",
        expected: int,
        deadline: float,
        city: str,
    ) -> float:
        total = 0.0
        received = 0
        while received < expected:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise self._timeout(city, received, expected)
            try:
                first = outcomes.get(timeout=remaining)
            except queue.Empty:
                raise self._timeout(city, received, expected) from None

            ready = [first] + _drain(outcomes)
            # an error wins over successes that became ready at the same time
            for outcome in ready:
                if outcome.failed:
                    logger.warning("Provider %s failed for city=%s: %s", outcome.provider, city, outcome.error)
                    raise outcome.error
            for outcome in ready:
                total += outcome.value
            received += len(ready)
        return total

    def _timeout(self, city: str, received: int, expected: int) -> AggregationTimeout:
        logger.warning(
            "Timed out after %.3fs for city=%s with %d of %d providers answered",
            self.timeout,
            city,
            received,
            expected,
        )
        return AggregationTimeout("api time out")

    @staticmethod
    def _query(
        provider: TemperatureProvider,
        city: str,
        outcomes: "queue.SimpleQueue[QueryOutcome]",
        done: threading.Event,
    ) -> None:
        name = provider_name(provider)
        try:
            value = float(provider.temperature(city))
        except Exception as exc:  # noqa: BLE001 - forwarded to the collecting thread
            outcome = QueryOutcome(provider=name, error=exc)
        else:
            outcome = QueryOutcome(provider=name, value=value)
        if done.is_set():
            logger.debug("Discarding late result from %s for city=%s", name, city)
        outcomes.put(outcome)

    def __repr__(self) -> str:
        return f"<TemperatureAggregator providers={len(self._providers)} timeout={self.timeout}>"


def _drain(outcomes: "queue.SimpleQueue[QueryOutcome]") -> List[QueryOutcome]:
    ready: List[QueryOutcome] = []
    while True:
        try:
            ready.append(outcomes.get_nowait())
        except queue.Empty:
            return ready


__all__ = [
    "AggregationError",
    "AggregationTimeout",
    "DEFAULT_TIMEOUT",
    "NoProvidersConfigured",
    "TemperatureAggregator",
]
