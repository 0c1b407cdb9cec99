from __future__ import annotations


def event_type_for(event_type: str, event_source: str) -> str:
    return f"{event_type}.{event_source}"
