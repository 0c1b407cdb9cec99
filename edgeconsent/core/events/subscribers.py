from __future__ import annotations

import json
import logging
import os
import threading

from edgeconsent.core.events.models import BaseEvent
from edgeconsent.core.events.redaction import redact


class CoreEventJsonlSubscriber:
    """
    Appends every event to logs/events/core_events.jsonl. Payloads are
    redacted here, on write; handlers receive them untouched.
    """

    def __init__(self, *, path: str = os.path.join("logs", "events", "core_events.jsonl")):
        self.path = path
        self._lock = threading.Lock()
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)

    def __call__(self, ev: BaseEvent) -> None:
        line = json.dumps(redact(ev.model_dump(mode="json")), ensure_ascii=False)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")


class DebugLogSubscriber:
    def __init__(self, *, logger: logging.Logger):
        self.logger = logger

    def __call__(self, ev: BaseEvent) -> None:
        self.logger.debug(f"[{ev.source_subsystem.value}] {ev.event_type} {ev.severity.value}: {redact(ev.payload)}")
