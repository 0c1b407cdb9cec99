from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ValidationError

from edgeconsent.core.config.io import (
    ensure_dirs,
    read_json_file,
    recover_from_corrupt,
    snapshot_last_known_good,
    write_json_file,
)
from edgeconsent.core.config.models import AppConfig, LoggingConfig
from edgeconsent.core.config.paths import ConfigFsPaths
from edgeconsent.core.consent.manager import ConsentManagerConfig
from edgeconsent.core.errors import ConfigError
from edgeconsent.core.events.bus import EventBusConfig


class ConfigManager:
    """
    Loads config/*.json into a validated AppConfig.

    Missing files are created with defaults. A corrupt file is moved aside
    and replaced by its last-known-good copy, or by defaults. A file that
    parses but fails validation is a hard error.
    """

    FILES = {
        "consent": ConsentManagerConfig,
        "events": EventBusConfig,
        "logging": LoggingConfig,
    }

    def __init__(self, *, fs: Optional[ConfigFsPaths] = None, logger=None, read_only: bool = False):
        self.fs = fs or ConfigFsPaths(".")
        self.logger = logger
        self.read_only = read_only
        self._cfg: Optional[AppConfig] = None

    def load_all(self) -> AppConfig:
        ensure_dirs(self.fs.config_dir, self.fs.backups_dir, self.fs.last_known_good_dir)
        raw: Dict[str, Any] = {}
        for name, model in self.FILES.items():
            raw[name] = self._load_file(name, model)
        try:
            cfg = AppConfig.model_validate(raw)
        except ValidationError as e:
            raise ConfigError("Invalid configuration.", error=str(e)[:500]) from e
        if not self.read_only:
            for name in self.FILES:
                snapshot_last_known_good(getattr(self.fs, name), self.fs.last_known_good_dir)
        self._cfg = cfg
        return cfg

    def get(self) -> AppConfig:
        if self._cfg is None:
            return self.load_all()
        return self._cfg

    def _load_file(self, name: str, model: type[BaseModel]) -> Dict[str, Any]:
        path = getattr(self.fs, name)
        rr = read_json_file(path)
        data = rr.data
        if not rr.ok:
            if rr.error == "missing":
                data = model().model_dump(mode="json")
                if not self.read_only:
                    write_json_file(path, data)
            else:
                if self.logger is not None:
                    self.logger.warning(f"Config {name}.json unreadable ({rr.error}); recovering.")
                data, recovered = recover_from_corrupt(path, self.fs.backups_dir, self.fs.last_known_good_dir)
                if not recovered:
                    data = model().model_dump(mode="json")
                    if not self.read_only:
                        write_json_file(path, data)
        try:
            return model.model_validate(data).model_dump(mode="json")
        except ValidationError as e:
            raise ConfigError(f"Invalid {name}.json.", file=path, error=str(e)[:500]) from e
