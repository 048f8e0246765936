"""Core abstractions for the temperature aggregation domain."""
from __future__ import annotations

from typing import Protocol


class TemperatureProvider(Protocol):
    """A data source capable of returning the current temperature of a city."""

    def temperature(self, city: str) -> float:
        """Return the current temperature for ``city`` or raise on failure."""
        ...
