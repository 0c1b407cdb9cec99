from __future__ import annotations

import threading
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from edgeconsent.core.consent.models import Consents
from edgeconsent.core.consent.store import KeyValueStore, StoreProvider
from edgeconsent.core.errors import ConsentParseError, StoreUnavailableError, StoreWriteError


class ConsentManagerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    enabled: bool = True
    datastore_name: str = Field(default="com.adobe.edge.consent", min_length=1)
    preferences_key: str = Field(default="consent:preferences", min_length=1)
    data_dir: str = "runtime/datastore"
    backup_keep: int = Field(default=10, ge=1, le=200)


class ConsentStateManager:
    """
    Owns the current consent preferences and their durable record.

    The snapshot is loaded once at construction. Storage problems (no store,
    missing record, corrupt record, failed write) are logged and absorbed:
    reads fall back to "unknown" (None) and writes are skipped while the
    in-memory value still advances.

    Reads and merges are serialized by a single lock, so concurrent callers
    cannot lose each other's updates.
    """

    def __init__(
        self,
        *,
        store_provider: Optional[StoreProvider],
        cfg: Optional[ConsentManagerConfig] = None,
        ops: Any = None,
        logger: Any = None,
        error_reporter: Any = None,
    ):
        self.cfg = cfg or ConsentManagerConfig()
        self.store_provider = store_provider
        self.ops = ops
        self.logger = logger
        self.error_reporter = error_reporter

        self._lock = threading.Lock()
        self._current: Optional[Consents] = None
        if self.cfg.enabled:
            with self._lock:
                self._current = self._load_locked()

    # ---- reads ----
    def get_current_consents(self) -> Optional[Consents]:
        with self._lock:
            return self._current

    # ---- writes ----
    def merge_and_persist(self, new_consents: Optional[Consents]) -> None:
        with self._lock:
            if new_consents is None or new_consents.is_empty():
                if self._current is None:
                    if new_consents is None:
                        self._ops("consent.merge", "skipped", {"reason": "nothing_to_merge"})
                        return
                    self._current = new_consents
            elif self._current is None:
                self._current = new_consents
            else:
                self._current = self._current.merged_with(new_consents)
            self._persist_locked(self._current)

    def reload(self) -> Optional[Consents]:
        with self._lock:
            self._current = self._load_locked() if self.cfg.enabled else None
            return self._current

    def reset(self) -> None:
        """
        Forget all preferences: current becomes unknown and the durable
        record is removed (best effort).
        """
        with self._lock:
            self._current = None
            st = self._resolve_store("reset")
            if st is None:
                return
            try:
                ok = st.remove(self.cfg.preferences_key)
            except Exception as e:  # noqa: BLE001
                self._report(e, "consent.persist", action="remove")
                return
            self._ops("consent.reset", "ok" if ok else "failed", {})

    # ---- internals ----
    def _resolve_store(self, op: str) -> Optional[KeyValueStore]:
        if not self.cfg.enabled:
            return None
        if self.store_provider is None:
            self._report(StoreUnavailableError(op=op, reason="no_provider"), "consent.load" if op == "load" else "consent.persist")
            return None
        try:
            st = self.store_provider(self.cfg.datastore_name)
        except Exception as e:  # noqa: BLE001
            self._report(StoreUnavailableError(op=op, reason="provider_error", error=str(e)[:200]), "consent.load" if op == "load" else "consent.persist")
            return None
        if st is None:
            self._report(StoreUnavailableError(op=op, reason="no_store"), "consent.load" if op == "load" else "consent.persist")
        return st

    def _load_locked(self) -> Optional[Consents]:
        st = self._resolve_store("load")
        if st is None:
            return None
        try:
            raw = st.get_string(self.cfg.preferences_key)
        except Exception as e:  # noqa: BLE001
            self._report(e, "consent.load", action="get")
            return None
        if raw is None:
            self._ops("consent.load", "missing", {})
            return None
        try:
            loaded = Consents.from_json(raw)
        except ConsentParseError as e:
            self._report(e, "consent.load", action="parse")
            return None
        self._ops("consent.load", "ok", {"empty": loaded.is_empty()})
        return loaded

    def _persist_locked(self, consents: Consents) -> bool:
        st = self._resolve_store("persist")
        if st is None:
            return False
        key = self.cfg.preferences_key
        action = "remove" if consents.is_empty() else "put"
        try:
            if action == "remove":
                ok = st.remove(key)
            else:
                ok = st.put_string(key, consents.to_json())
        except Exception as e:  # noqa: BLE001
            self._report(e, "consent.persist", action=action)
            return False
        if not ok:
            self._report(StoreWriteError(action=action), "consent.persist")
            return False
        self._ops("consent.persist", "ok", {"action": action})
        return True

    def _report(self, exc: BaseException, subsystem: str, **ctx: Any) -> None:
        if self.logger is not None:
            self.logger.warning(f"{subsystem} failed: {exc.__class__.__name__}: {exc}")
        if self.error_reporter is not None:
            try:
                self.error_reporter.report_exception(exc, trace_id="consent", subsystem=subsystem, context=ctx)
            except Exception:
                pass
        self._ops(subsystem, "error", {"error": exc.__class__.__name__, **ctx})

    def _ops(self, event: str, outcome: str, details: Dict[str, Any]) -> None:
        if self.ops is None:
            return
        try:
            self.ops.log(trace_id="consent", event=event, outcome=outcome, details=details)
        except OSError:
            pass
