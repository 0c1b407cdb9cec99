"""
Core internal event bus.

Consent handlers are registered here by the consent extension; the bus
itself knows nothing about consent semantics.
"""

from edgeconsent.core.events.redaction import redact
from edgeconsent.core.events.models import BaseEvent, EventSeverity, SourceSubsystem
from edgeconsent.core.events.bus import EventBus, OverflowPolicy, EventBusConfig

__all__ = [
    "redact",
    "BaseEvent",
    "EventSeverity",
    "SourceSubsystem",
    "EventBus",
    "OverflowPolicy",
    "EventBusConfig",
]
