from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class QueryOutcome:
    """Result of a single provider query within one aggregation call.

    Exactly one of ``value`` and ``error`` is set. ``provider`` is kept for
    logging only.
    """

    provider: str
    value: Optional[float] = None
    error: Optional[BaseException] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


__all__ = ["QueryOutcome"]
