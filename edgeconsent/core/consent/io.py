from __future__ import annotations

import hashlib
import json
import os
import shutil
import tempfile
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class DataStorePaths:
    data_dir: str = os.path.join("runtime", "datastore")
    store_name: str = "com.adobe.edge.consent"

    @property
    def store_path(self) -> str:
        return os.path.join(self.data_dir, f"{self.store_name}.json")

    @property
    def backups_dir(self) -> str:
        return os.path.join(self.data_dir, "backups")


def ensure_dirs(paths: DataStorePaths) -> None:
    os.makedirs(paths.data_dir, exist_ok=True)
    os.makedirs(paths.backups_dir, exist_ok=True)


def _ts() -> str:
    return time.strftime("%Y%m%d_%H%M%S", time.gmtime())


def read_json(path: str) -> Tuple[bool, Dict[str, Any], Optional[str]]:
    if not os.path.exists(path):
        return False, {}, "missing"
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
        if not isinstance(obj, dict):
            return False, {}, "not_object"
        return True, obj, None
    except json.JSONDecodeError as e:
        return False, {}, f"corrupt_json:{e}"
    except (OSError, UnicodeDecodeError) as e:
        return False, {}, str(e)


def atomic_write_json(path: str, obj: Dict[str, Any], *, backups_dir: str, keep: int = 10) -> None:
    """
    Write `obj` to a temp file beside `path`, fsync, then os.replace.
    The previous file (if any) is copied into `backups_dir` first.
    Raises OSError if the write itself fails; backup failures are ignored.
    """
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    os.makedirs(backups_dir, exist_ok=True)

    base = os.path.basename(path)
    if os.path.exists(path):
        b = os.path.join(backups_dir, f"{base}.{_ts()}.{time.time_ns() % 1_000_000:06d}.bak")
        try:
            shutil.copy2(path, b)
        except OSError:
            pass
        enforce_backup_retention(backups_dir, prefix=base + ".", keep=keep)

    fd, tmp = tempfile.mkstemp(prefix=".tmp_store_", suffix=".json", dir=os.path.dirname(path) or ".")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(obj, f, indent=2, ensure_ascii=False)
            f.write("\n")
            try:
                f.flush()
                os.fsync(f.fileno())
            except OSError:
                pass
        os.replace(tmp, path)
    finally:
        try:
            if os.path.exists(tmp):
                os.remove(tmp)
        except OSError:
            pass


def enforce_backup_retention(backups_dir: str, *, prefix: str, keep: int, suffix: str = ".bak") -> None:
    try:
        files = [os.path.join(backups_dir, f) for f in os.listdir(backups_dir) if f.startswith(prefix) and f.endswith(suffix)]
    except OSError:
        return
    files.sort(key=lambda p: os.path.getmtime(p), reverse=True)
    for p in files[int(keep) :]:
        try:
            os.remove(p)
        except OSError:
            pass


def quarantine_corrupt(paths: DataStorePaths, *, keep: int = 10) -> Optional[str]:
    """
    Copy a corrupt store file into backups/<name>.<digest>.corrupt.json.

    The copy is named by a digest of the file content, so the same corrupt
    file is kept once however often it is read. Returns the new copy's path,
    or None if nothing was copied. The original stays in place until the
    next successful write replaces it.
    """
    try:
        with open(paths.store_path, "rb") as f:
            digest = hashlib.sha256(f.read()).hexdigest()[:16]
    except OSError:
        return None
    base = os.path.basename(paths.store_path)
    dst = os.path.join(paths.backups_dir, f"{base}.{digest}.corrupt.json")
    if os.path.exists(dst):
        return None
    try:
        os.makedirs(paths.backups_dir, exist_ok=True)
        shutil.copy2(paths.store_path, dst)
    except OSError:
        return None
    enforce_backup_retention(paths.backups_dir, prefix=base + ".", keep=keep, suffix=".corrupt.json")
    return dst
