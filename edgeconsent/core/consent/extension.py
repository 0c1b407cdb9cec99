from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from edgeconsent.core.consent.manager import ConsentStateManager
from edgeconsent.core.consent.models import Consents
from edgeconsent.core.events.models import BaseEvent, SourceSubsystem
from edgeconsent.core.events.registry import event_type_for


# event types
CONSENT = "consent"
EDGE = "edge"
CONFIGURATION = "configuration"
HUB = "hub"

# event sources
UPDATE_CONSENT = "update_consent"
CONSENT_PREFERENCE = "consent_preference"
RESPONSE_CONTENT = "response_content"
REQUEST_CONTENT = "request_content"
BOOTED = "booted"

DEFAULT_CONSENTS_KEY = "consent.default"

Handler = Callable[[BaseEvent], None]


def _iso_utc(ts: float) -> str:
    return datetime.fromtimestamp(float(ts), tz=timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ConsentExtension:
    """
    Glue between the event bus and ConsentStateManager.

    Incoming events are routed through a dispatch table keyed by
    (event type, event source). The extension subscribes once with a
    wildcard so every event reaches the manager in publish order.

    After every change to the effective consents (stored preferences layered
    over configured defaults) a `consent.response_content` event is published.
    """

    def __init__(self, *, manager: ConsentStateManager, event_bus: Any, logger: Any = None):
        self.manager = manager
        self.event_bus = event_bus
        self.logger = logger
        self._lock = threading.Lock()
        self._defaults: Optional[Consents] = None
        self._registered = False
        self._handlers: Dict[Tuple[str, str], Handler] = {
            (CONSENT, UPDATE_CONSENT): self.handle_consent_update,
            (EDGE, CONSENT_PREFERENCE): self.handle_edge_consent_preference,
            (CONFIGURATION, RESPONSE_CONTENT): self.handle_configuration_response,
            (HUB, BOOTED): self.handle_event_hub_boot,
            (CONSENT, REQUEST_CONTENT): self.handle_request_content,
        }

    # ---- registration ----
    def register(self) -> None:
        if self._registered:
            return
        self.event_bus.subscribe("*", self.dispatch, priority=10)
        self._registered = True

    def unregister(self) -> None:
        if not self._registered:
            return
        self.event_bus.unsubscribe(self.dispatch)
        self._registered = False

    def handled_event_types(self) -> list[str]:
        return sorted(event_type_for(t, s) for t, s in self._handlers)

    def dispatch(self, ev: Optional[BaseEvent]) -> None:
        if ev is None:
            self._debug("Event is null. Ignoring the event.")
            return
        handler = self._handlers.get(ev.type_and_source)
        if handler is None:
            return
        handler(ev)

    # ---- handlers ----
    def handle_consent_update(self, ev: BaseEvent) -> None:
        if not ev.payload:
            self._debug(f"{ev.event_type} - Event data is empty. Ignoring the event.")
            return
        update = Consents(ev.payload)
        if update.is_empty():
            self._debug(f"{ev.event_type} - No consents in event data. Ignoring the event.")
            return
        if update.timestamp is None:
            update = update.with_timestamp(_iso_utc(ev.timestamp))
        self.manager.merge_and_persist(update)
        self._publish_change(ev.trace_id)

    def handle_edge_consent_preference(self, ev: BaseEvent) -> None:
        if not ev.payload:
            self._debug(f"{ev.event_type} - Event data is empty. Ignoring the event.")
            return
        self.manager.merge_and_persist(Consents(ev.payload))
        self._publish_change(ev.trace_id)

    def handle_configuration_response(self, ev: BaseEvent) -> None:
        if not ev.payload:
            self._debug(f"{ev.event_type} - Event data is empty. Ignoring the event.")
            return
        raw_defaults = ev.payload.get(DEFAULT_CONSENTS_KEY)
        if not isinstance(raw_defaults, dict):
            return
        before = self.effective_consents()
        with self._lock:
            self._defaults = Consents(raw_defaults)
        if self.effective_consents() != before:
            self._publish_change(ev.trace_id)

    def handle_event_hub_boot(self, ev: BaseEvent) -> None:
        self._publish_change(ev.trace_id)

    def handle_request_content(self, ev: BaseEvent) -> None:
        self._publish_change(ev.trace_id)

    # ---- reads ----
    def default_consents(self) -> Optional[Consents]:
        with self._lock:
            return self._defaults

    def effective_consents(self) -> Optional[Consents]:
        current = self.manager.get_current_consents()
        defaults = self.default_consents()
        if defaults is None:
            return current
        return defaults.merged_with(current)

    # ---- internals ----
    def _publish_change(self, trace_id: Optional[str]) -> None:
        effective = self.effective_consents()
        payload = effective.as_dict() if effective is not None else {}
        self.event_bus.publish(
            BaseEvent(
                event_type=event_type_for(CONSENT, RESPONSE_CONTENT),
                trace_id=trace_id,
                source_subsystem=SourceSubsystem.consent,
                payload=payload,
            )
        )

    def _debug(self, msg: str) -> None:
        if self.logger is not None:
            self.logger.debug(f"ConsentExtension - {msg}")
