from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Optional

from edgeconsent.core.config.manager import ConfigManager
from edgeconsent.core.config.models import AppConfig
from edgeconsent.core.config.paths import ConfigFsPaths
from edgeconsent.core.consent.extension import ConsentExtension
from edgeconsent.core.consent.manager import ConsentStateManager
from edgeconsent.core.consent.store import FileStoreProvider
from edgeconsent.core.error_reporter import ErrorReporter, ErrorReporterConfig
from edgeconsent.core.events.bus import EventBus
from edgeconsent.core.events.subscribers import CoreEventJsonlSubscriber, DebugLogSubscriber
from edgeconsent.core.logger import setup_logging
from edgeconsent.core.ops_log import OpsLogger


def _under(root: str, path: str) -> str:
    return path if os.path.isabs(path) else os.path.join(root, path)


@dataclass
class ConsentRuntime:
    cfg: AppConfig
    logger: Any
    ops: OpsLogger
    error_reporter: ErrorReporter
    event_bus: EventBus
    manager: ConsentStateManager
    extension: ConsentExtension

    @classmethod
    def build(cls, *, root: str = ".", logger: Optional[Any] = None) -> "ConsentRuntime":
        cfg = ConfigManager(fs=ConfigFsPaths(root), logger=logger).load_all()
        lc = cfg.logging
        if logger is None:
            logger = setup_logging(_under(root, lc.log_dir), level=lc.level, max_bytes=lc.max_bytes, backup_count=lc.backup_count)
        ops = OpsLogger(path=_under(root, lc.ops_log))
        reporter = ErrorReporter(path=_under(root, lc.errors_log), cfg=ErrorReporterConfig(include_tracebacks=lc.include_tracebacks))

        bus = EventBus(cfg=cfg.events, logger=logger, error_reporter=reporter, autostart=False)
        if lc.events_log:
            bus.subscribe("*", CoreEventJsonlSubscriber(path=_under(root, lc.events_log)), priority=90)
        if lc.level == "DEBUG":
            bus.subscribe("*", DebugLogSubscriber(logger=logger), priority=95)

        provider = FileStoreProvider(data_dir=_under(root, cfg.consent.data_dir), backup_keep=cfg.consent.backup_keep, logger=logger)
        manager = ConsentStateManager(store_provider=provider, cfg=cfg.consent, ops=ops, logger=logger, error_reporter=reporter)
        extension = ConsentExtension(manager=manager, event_bus=bus, logger=logger)
        extension.register()
        bus.start()
        return cls(cfg=cfg, logger=logger, ops=ops, error_reporter=reporter, event_bus=bus, manager=manager, extension=extension)

    def shutdown(self) -> None:
        self.event_bus.flush(timeout=float(self.cfg.events.shutdown_grace_seconds))
        self.extension.unregister()
        self.event_bus.shutdown()
