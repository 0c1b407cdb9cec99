from __future__ import annotations

import json
import time
import uuid
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventSeverity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SourceSubsystem(str, Enum):
    consent = "consent"
    edge = "edge"
    configuration = "configuration"
    hub = "hub"
    telemetry = "telemetry"
    app = "app"


class BaseEvent(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    event_type: str
    timestamp: float = Field(default_factory=lambda: time.time())
    trace_id: Optional[str] = None
    source_subsystem: SourceSubsystem
    severity: EventSeverity = EventSeverity.INFO
    payload: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("event_type")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v = str(v or "").strip()
        if not v:
            raise ValueError("event_type required")
        return v

    @field_validator("payload")
    @classmethod
    def _jsonable(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        # delivered verbatim; sinks that persist events redact on write
        if not isinstance(v, dict):
            raise ValueError("payload must be an object")
        try:
            json.dumps(v, ensure_ascii=False)
        except Exception as e:  # noqa: BLE001
            raise ValueError("payload must be JSON-serializable") from e
        return v

    @property
    def type_and_source(self) -> tuple[str, str]:
        """
        Split "<type>.<source>" into its two halves. A type with no source
        yields an empty source.
        """
        head, _, tail = self.event_type.partition(".")
        return head, tail
