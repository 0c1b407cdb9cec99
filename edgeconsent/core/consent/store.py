from __future__ import annotations

import os
import threading
from typing import Callable, Dict, Optional, Protocol, runtime_checkable

from edgeconsent.core.consent.io import DataStorePaths, atomic_write_json, ensure_dirs, quarantine_corrupt, read_json


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Synchronous, local, string-keyed store.

    `put_string` and `remove` return False when the change could not be
    committed.
    """

    def get_string(self, key: str) -> Optional[str]: ...

    def put_string(self, key: str, value: str) -> bool: ...

    def remove(self, key: str) -> bool: ...


# Resolves a store by name. Returns None when storage is not available.
StoreProvider = Callable[[str], Optional[KeyValueStore]]


class MemoryStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._lock = threading.Lock()
        self._data: Dict[str, str] = dict(initial or {})

    def get_string(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def put_string(self, key: str, value: str) -> bool:
        with self._lock:
            self._data[key] = str(value)
        return True

    def remove(self, key: str) -> bool:
        with self._lock:
            self._data.pop(key, None)
        return True

    def snapshot(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._data)


class JsonFileStore:
    """
    One JSON object file per store name, mapping keys to string values.

    A corrupt file reads as empty (and is copied aside for inspection) but is
    left in place until the next successful write.
    """

    def __init__(self, *, paths: DataStorePaths, backup_keep: int = 10, logger=None):
        self.paths = paths
        self.backup_keep = int(backup_keep)
        self.logger = logger
        self._lock = threading.Lock()
        ensure_dirs(self.paths)

    def get_string(self, key: str) -> Optional[str]:
        with self._lock:
            data = self._read_locked()
        value = data.get(key)
        return value if isinstance(value, str) else None

    def put_string(self, key: str, value: str) -> bool:
        with self._lock:
            data = self._read_locked()
            data[str(key)] = str(value)
            return self._write_locked(data)

    def remove(self, key: str) -> bool:
        with self._lock:
            data = self._read_locked()
            if key not in data:
                return True
            data.pop(key, None)
            return self._write_locked(data)

    def _read_locked(self) -> Dict[str, object]:
        ok, data, err = read_json(self.paths.store_path)
        if ok:
            return data
        if err and err != "missing":
            dst = quarantine_corrupt(self.paths, keep=self.backup_keep)
            if dst is not None and self.logger is not None:
                self.logger.warning(f"Data store {self.paths.store_name} unreadable ({err}); copy kept at {dst}")
        return {}

    def _write_locked(self, data: Dict[str, object]) -> bool:
        try:
            atomic_write_json(self.paths.store_path, data, backups_dir=self.paths.backups_dir, keep=self.backup_keep)
        except OSError as e:
            if self.logger is not None:
                self.logger.warning(f"Data store {self.paths.store_name} write failed: {e}")
            return False
        return True


class FileStoreProvider:
    def __init__(self, *, data_dir: str, backup_keep: int = 10, logger=None):
        self.data_dir = str(data_dir)
        self.backup_keep = int(backup_keep)
        self.logger = logger
        self._lock = threading.Lock()
        self._stores: Dict[str, JsonFileStore] = {}

    def __call__(self, name: str) -> Optional[KeyValueStore]:
        with self._lock:
            st = self._stores.get(name)
            if st is None:
                try:
                    st = JsonFileStore(paths=DataStorePaths(data_dir=self.data_dir, store_name=name), backup_keep=self.backup_keep, logger=self.logger)
                except OSError as e:
                    if self.logger is not None:
                        self.logger.warning(f"Data store directory {os.path.abspath(self.data_dir)} unavailable: {e}")
                    return None
                self._stores[name] = st
            return st
