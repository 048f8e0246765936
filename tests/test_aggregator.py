from __future__ import annotations

import itertools
import logging
import queue
import threading
import time
from typing import Optional

import pytest

from multiweather.entities import QueryOutcome
from multiweather.providers.base import ProviderError
from multiweather.services.aggregator import (
    AggregationTimeout,
    NoProvidersConfigured,
    TemperatureAggregator,
)


class _StaticProvider:
    def __init__(self, value: float, delay: float = 0.0, name: str = "static") -> None:
        self.value = value
        self.delay = delay
        self.name = name
        self.calls = 0
        self.finished = threading.Event()

    def temperature(self, city: str) -> float:
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        self.finished.set()
        return self.value


class _FailingProvider:
    name = "failing"

    def __init__(self, error: Optional[Exception] = None, delay: float = 0.0) -> None:
        self.error = error or ProviderError("boom")
        self.delay = delay

    def temperature(self, city: str) -> float:
        if self.delay:
            time.sleep(self.delay)
        raise self.error


class _BlockingProvider:
    """Blocks until released or until ``limit`` seconds pass."""

    name = "blocking"

    def __init__(self, value: float = 0.0, limit: float = 2.0) -> None:
        self.value = value
        self.limit = limit
        self.release = threading.Event()
        self.finished = threading.Event()

    def temperature(self, city: str) -> float:
        self.release.wait(self.limit)
        self.finished.set()
        return self.value


def test_returns_mean_of_all_providers() -> None:
    aggregator = TemperatureAggregator(
        [_StaticProvider(300.0, delay=0.01), _StaticProvider(310.0, delay=0.02)],
        timeout=0.3,
    )

    assert aggregator.temperature("London") == pytest.approx(305.0)


def test_single_provider_value_is_returned() -> None:
    aggregator = TemperatureAggregator([_StaticProvider(12.5)])

    assert aggregator.temperature("Paris") == pytest.approx(12.5)


def test_result_does_not_depend_on_provider_order() -> None:
    values = [1.5, 20.0, -4.25, 7.0]
    results = set()
    for order in itertools.permutations(values):
        aggregator = TemperatureAggregator([_StaticProvider(v) for v in order], timeout=0.5)
        results.add(round(aggregator.temperature("Oslo"), 9))

    assert results == {round(sum(values) / len(values), 9)}


def test_every_provider_is_queried_once_per_call() -> None:
    providers = [_StaticProvider(1.0), _StaticProvider(3.0)]
    aggregator = TemperatureAggregator(providers)

    aggregator.temperature("Rome")

    assert [p.calls for p in providers] == [1, 1]


def test_same_provider_repeated_counts_each_time() -> None:
    provider = _StaticProvider(10.0)
    aggregator = TemperatureAggregator([provider, provider, _StaticProvider(40.0)])

    assert aggregator.temperature("Lima") == pytest.approx(20.0)
    assert provider.calls == 2


def test_provider_error_is_propagated_verbatim() -> None:
    error = ProviderError("upstream exploded")
    aggregator = TemperatureAggregator([_StaticProvider(1.0), _FailingProvider(error)])

    with pytest.raises(ProviderError) as excinfo:
        aggregator.temperature("Berlin")

    assert excinfo.value is error


def test_non_provider_exceptions_are_propagated_too() -> None:
    aggregator = TemperatureAggregator([_FailingProvider(KeyError("temp"))])

    with pytest.raises(KeyError):
        aggregator.temperature("Madrid")


def test_error_wins_without_waiting_for_slow_provider() -> None:
    slow = _StaticProvider(20.0, delay=0.2)
    aggregator = TemperatureAggregator([_FailingProvider(), slow], timeout=0.3)

    start = time.monotonic()
    with pytest.raises(ProviderError):
        aggregator.temperature("Tokyo")
    elapsed = time.monotonic() - start

    assert elapsed < 0.1


def test_error_wins_over_provider_blocked_past_deadline() -> None:
    blocked = _BlockingProvider()
    aggregator = TemperatureAggregator([blocked, _FailingProvider()], timeout=0.3)

    start = time.monotonic()
    try:
        with pytest.raises(ProviderError):
            aggregator.temperature("Cairo")
        assert time.monotonic() - start < 0.2
    finally:
        blocked.release.set()


def test_times_out_when_providers_are_too_slow() -> None:
    providers = [_StaticProvider(1.0, delay=0.5), _StaticProvider(2.0, delay=0.5)]
    aggregator = TemperatureAggregator(providers, timeout=0.3)

    start = time.monotonic()
    with pytest.raises(AggregationTimeout, match="api time out"):
        aggregator.temperature("Sydney")
    elapsed = time.monotonic() - start

    assert 0.28 <= elapsed < 0.45


def test_deadline_is_shared_across_arrivals() -> None:
    # every provider answers inside the timeout on its own, but not all of them
    # answer before the deadline measured from the start of the call
    providers = [
        _StaticProvider(1.0, delay=0.05),
        _StaticProvider(2.0, delay=0.1),
        _StaticProvider(3.0, delay=0.22),
    ]
    aggregator = TemperatureAggregator(providers, timeout=0.15)

    with pytest.raises(AggregationTimeout):
        aggregator.temperature("Delhi")


def test_timeout_when_one_provider_never_answers() -> None:
    blocked = _BlockingProvider(value=5.0)
    aggregator = TemperatureAggregator([_StaticProvider(1.0), blocked], timeout=0.1)

    try:
        with pytest.raises(AggregationTimeout):
            aggregator.temperature("Quito")
    finally:
        blocked.release.set()


def test_abandoned_queries_keep_running_after_timeout() -> None:
    blocked = _BlockingProvider(value=5.0)
    aggregator = TemperatureAggregator([blocked], timeout=0.05)

    with pytest.raises(AggregationTimeout):
        aggregator.temperature("Nairobi")

    assert not blocked.finished.is_set()
    blocked.release.set()
    assert blocked.finished.wait(1.0)


def test_calls_are_independent() -> None:
    blocked = _BlockingProvider(value=5.0, limit=0.2)
    slow_aggregator = TemperatureAggregator([blocked], timeout=0.05)
    with pytest.raises(AggregationTimeout):
        slow_aggregator.temperature("Lagos")

    # a late answer from the abandoned call must not leak into a new one
    aggregator = TemperatureAggregator([_StaticProvider(8.0)], timeout=0.3)
    blocked.release.set()
    assert aggregator.temperature("Lagos") == pytest.approx(8.0)


def test_rejects_empty_provider_set() -> None:
    with pytest.raises(NoProvidersConfigured):
        TemperatureAggregator([])


def test_rejects_non_positive_timeout() -> None:
    with pytest.raises(ValueError):
        TemperatureAggregator([_StaticProvider(1.0)], timeout=0)


def test_providers_are_stored_as_tuple() -> None:
    providers = [_StaticProvider(1.0)]
    aggregator = TemperatureAggregator(providers)
    providers.append(_StaticProvider(2.0))

    assert len(aggregator.providers) == 1
    assert aggregator.temperature("Lisbon") == pytest.approx(1.0)


def test_error_wins_over_success_ready_at_same_time() -> None:
    error = ProviderError("late but ready")
    outcomes: "queue.SimpleQueue[QueryOutcome]" = queue.SimpleQueue()
    outcomes.put(QueryOutcome(provider="static", value=1.0))
    outcomes.put(QueryOutcome(provider="failing", error=error))
    aggregator = TemperatureAggregator([_StaticProvider(1.0), _FailingProvider(error)])

    with pytest.raises(ProviderError) as excinfo:
        aggregator._collect(outcomes, 2, time.monotonic() + 1.0, "Bogota")

    assert excinfo.value is error


def test_deadline_wins_over_ready_outcome() -> None:
    outcomes: "queue.SimpleQueue[QueryOutcome]" = queue.SimpleQueue()
    outcomes.put(QueryOutcome(provider="static", value=1.0))
    aggregator = TemperatureAggregator([_StaticProvider(1.0)])

    with pytest.raises(AggregationTimeout):
        aggregator._collect(outcomes, 1, time.monotonic() - 0.01, "Bogota")


def test_failed_thread_start_still_ends_the_call(monkeypatch, caplog) -> None:
    blocked = _BlockingProvider(value=1.0)
    started = []
    real_start = threading.Thread.start

    def start(thread):
        if started:
            raise RuntimeError("can't start new thread")
        started.append(thread)
        real_start(thread)

    monkeypatch.setattr(threading.Thread, "start", start)
    aggregator = TemperatureAggregator([blocked, _StaticProvider(2.0)], timeout=0.3)

    with caplog.at_level(logging.DEBUG, logger="multiweather.services.aggregator"):
        with pytest.raises(RuntimeError, match="can't start new thread"):
            aggregator.temperature("Accra")
        blocked.release.set()
        started[0].join(1.0)

    assert "Discarding late result from blocking" in caplog.text
