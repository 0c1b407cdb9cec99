from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from edgeconsent.core.consent.manager import ConsentManagerConfig
from edgeconsent.core.events.bus import EventBusConfig


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    log_dir: str = "logs"
    level: str = "INFO"
    max_bytes: int = Field(default=1_000_000, ge=10_000)
    backup_count: int = Field(default=5, ge=0, le=100)
    ops_log: str = "logs/ops.jsonl"
    errors_log: str = "logs/errors.jsonl"
    events_log: Optional[str] = "logs/events/core_events.jsonl"
    include_tracebacks: bool = False

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        v = str(v or "").upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("unknown log level")
        return v


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    consent: ConsentManagerConfig = Field(default_factory=ConsentManagerConfig)
    events: EventBusConfig = Field(default_factory=EventBusConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
