from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from edgeconsent.core.events import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ConsentError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


# ---- Core types ----
class ConfigError(ConsentError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class StoreUnavailableError(ConsentError):
    def __init__(self, user_message: str = "Consent storage is unavailable.", **ctx: Any):
        super().__init__("store_unavailable", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class StoreWriteError(ConsentError):
    def __init__(self, user_message: str = "Consent preferences could not be saved.", **ctx: Any):
        super().__init__("store_write_failed", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class ConsentParseError(ConsentError):
    def __init__(self, user_message: str = "Stored consent preferences are unreadable.", **ctx: Any):
        super().__init__("consent_parse_error", user_message, severity=Severity.WARN, recoverable=True, context=ctx)
