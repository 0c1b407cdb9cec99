from __future__ import annotations

import collections
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from edgeconsent.core.events.dispatcher import SubscriberWorker
from edgeconsent.core.events.models import BaseEvent, EventSeverity, SourceSubsystem
from edgeconsent.core.events.redaction import redact
from edgeconsent.core.events.stats import StatsCounter


ERROR_EVENT = "error.raised"

Handler = Callable[[BaseEvent], None]


class OverflowPolicy(str, Enum):
    DROP_OLDEST = "DROP_OLDEST"
    DROP_NEWEST = "DROP_NEWEST"


class EventBusConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    max_queue_size: int = Field(default=1000, ge=10, le=100_000)
    overflow_policy: OverflowPolicy = OverflowPolicy.DROP_OLDEST
    shutdown_grace_seconds: float = Field(default=5.0, ge=0.1, le=60.0)
    keep_recent: int = Field(default=200, ge=10, le=10_000)


@dataclass
class _Subscription:
    pattern: str
    handler: Handler
    priority: int
    worker: SubscriberWorker

    def matches(self, event_type: str) -> bool:
        return _match(self.pattern, event_type)


class EventBus:
    """
    In-process event bus.

    Publishing only appends to a bounded queue; a dispatcher thread fans each
    event out to the worker of every matching subscription. A subscriber sees
    events in publish order. A failing handler is logged, reported and
    re-published as `error.raised`; it never affects other subscribers.

    With `autostart=False` events are queued but not dispatched until
    `start()`, so handlers registered late still see them.
    """

    def __init__(self, *, cfg: EventBusConfig, logger=None, error_reporter=None, autostart: bool = True):
        self.cfg = cfg
        self.logger = logger
        self.error_reporter = error_reporter

        self._lock = threading.Lock()
        self._cv = threading.Condition(self._lock)
        self._queue: Deque[BaseEvent] = collections.deque()
        self._subs: List[_Subscription] = []
        self._accepting = bool(cfg.enabled)
        self._running = False
        self._in_flight = 0
        self._stats = StatsCounter()
        self._recent: Deque[Dict[str, Any]] = collections.deque(maxlen=int(cfg.keep_recent))
        self._thread: Optional[threading.Thread] = None
        if autostart:
            self.start()

    def start(self) -> None:
        if self._running or not self._accepting:
            return
        self._running = True
        self._thread = threading.Thread(target=self._dispatch_loop, name="eventbus-dispatch", daemon=True)
        self._thread.start()

    def subscribe(self, pattern: str, handler: Handler, priority: int = 50) -> None:
        """
        `pattern` is an exact event type ("consent.update_consent"), a type
        prefix ("consent.*") or "*" for everything. Lower priority values are
        fed first.
        """
        if not callable(handler):
            raise ValueError("handler must be callable")
        with self._lock:
            worker = SubscriberWorker(name=f"eventbus-sub-{len(self._subs) + 1}", handler=lambda ev, h=handler: self._safe_handle(h, ev))
            self._subs.append(_Subscription(pattern=str(pattern), handler=handler, priority=int(priority), worker=worker))
            self._subs.sort(key=lambda s: s.priority)
            self._stats.gauge("subscribers", len(self._subs))

    def unsubscribe(self, handler: Handler) -> int:
        with self._lock:
            gone = [s for s in self._subs if s.handler == handler]
            self._subs = [s for s in self._subs if s.handler != handler]
            self._stats.gauge("subscribers", len(self._subs))
        for s in gone:
            s.worker.stop(0.5)
        return len(gone)

    def publish(self, ev: BaseEvent) -> bool:
        if not self._accepting:
            return False
        with self._lock:
            if len(self._queue) >= int(self.cfg.max_queue_size):
                self._stats.inc("dropped")
                if self.cfg.overflow_policy == OverflowPolicy.DROP_NEWEST:
                    return False
                self._queue.popleft()
            self._queue.append(ev)
            self._stats.published(ev.event_type)
            self._stats.gauge("queue_depth", len(self._queue))
            self._recent.appendleft(redact(ev.model_dump(mode="json")))
            self._cv.notify()
        return True

    def flush(self, timeout: float = 2.0) -> bool:
        """
        Block until every queued event has been handled by its subscribers.
        Returns False on timeout.
        """
        deadline = time.time() + float(timeout)
        while time.time() < deadline:
            with self._lock:
                idle = not self._queue and self._in_flight == 0
                subs = list(self._subs)
            if idle and all(s.worker.idle() for s in subs):
                return True
            time.sleep(0.01)
        return False

    def get_stats(self) -> Dict[str, Any]:
        out = self._stats.snapshot()
        with self._lock:
            out["recent"] = list(self._recent)[:50]
        out["running"] = self._running
        return out

    def shutdown(self, grace_seconds: Optional[float] = None) -> None:
        self._accepting = False
        grace = float(self.cfg.shutdown_grace_seconds if grace_seconds is None else grace_seconds)
        deadline = time.time() + grace
        while self._running and time.time() < deadline:
            with self._lock:
                if not self._queue:
                    break
            time.sleep(0.05)
        self._running = False
        with self._lock:
            self._cv.notify_all()
        if self._thread is not None:
            self._thread.join(timeout=max(0.1, grace))
        with self._lock:
            subs, self._subs = self._subs, []
            self._stats.gauge("subscribers", 0)
            self._stats.gauge("queue_depth", len(self._queue))
        for s in subs:
            s.worker.stop(0.5)

    # ---- internals ----
    def _dispatch_loop(self) -> None:
        while self._running:
            with self._lock:
                if not self._queue:
                    self._stats.gauge("queue_depth", 0)
                    self._cv.wait(timeout=0.2)
                    continue
                ev = self._queue.popleft()
                self._in_flight += 1
                self._stats.gauge("queue_depth", len(self._queue))
                targets = [s for s in self._subs if s.matches(ev.event_type)]
            try:
                for s in targets:
                    s.worker.submit(ev)
            finally:
                with self._lock:
                    self._in_flight -= 1
            if targets:
                self._stats.inc("delivered", len(targets))
            else:
                self._stats.inc("unmatched")

    def _safe_handle(self, handler: Handler, ev: BaseEvent) -> None:
        try:
            handler(ev)
        except Exception as e:  # noqa: BLE001
            self._on_handler_error(handler, ev, e)

    def _on_handler_error(self, handler: Handler, ev: BaseEvent, e: Exception) -> None:
        name = getattr(handler, "__name__", type(handler).__name__)
        self._stats.inc("handler_errors")
        if self.logger is not None:
            self.logger.warning(f"Event handler {name} failed for {ev.event_type}: {e}")
        if self.error_reporter is not None:
            try:
                self.error_reporter.report_exception(e, trace_id=ev.trace_id or "eventbus", subsystem="events", context={"event_type": ev.event_type})
            except OSError:
                pass
        # a failing error handler must not feed itself
        if ev.event_type == ERROR_EVENT:
            return
        self.publish(
            BaseEvent(
                event_type=ERROR_EVENT,
                trace_id=ev.trace_id,
                source_subsystem=SourceSubsystem.telemetry,
                severity=EventSeverity.ERROR,
                payload={"handler": name, "event_type": ev.event_type, "error": str(e)[:500]},
            )
        )


def _match(pattern: str, event_type: str) -> bool:
    if pattern == "*":
        return True
    if pattern.endswith(".*"):
        return event_type.startswith(pattern[:-1])
    return pattern == event_type
