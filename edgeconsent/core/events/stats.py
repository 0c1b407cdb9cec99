from __future__ import annotations

import collections
import threading
from typing import Any, Dict


class StatsCounter:
    """Thread-safe totals for the event bus."""

    TOTALS = ("published", "dropped", "delivered", "unmatched", "handler_errors")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._totals: "collections.Counter[str]" = collections.Counter()
        self._per_type: "collections.Counter[str]" = collections.Counter()
        self._gauges: Dict[str, int] = {"queue_depth": 0, "subscribers": 0}

    def inc(self, name: str, n: int = 1) -> None:
        with self._lock:
            self._totals[name] += int(n)

    def published(self, event_type: str) -> None:
        with self._lock:
            self._totals["published"] += 1
            self._per_type[event_type] += 1

    def gauge(self, name: str, value: int) -> None:
        with self._lock:
            self._gauges[name] = int(value)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            out: Dict[str, Any] = {f"{k}_total": int(self._totals[k]) for k in self.TOTALS}
            out.update(self._gauges)
            out["per_type_published"] = dict(self._per_type)
            return out
