from __future__ import annotations

import argparse
import os
import shutil

from edgeconsent.core.config import ConfigManager
from edgeconsent.core.config.paths import ConfigFsPaths
from edgeconsent.core.consent.io import DataStorePaths


def _newest_backup(paths: DataStorePaths) -> str | None:
    prefix = os.path.basename(paths.store_path) + "."
    if not os.path.isdir(paths.backups_dir):
        return None
    items = [os.path.join(paths.backups_dir, f) for f in os.listdir(paths.backups_dir) if f.startswith(prefix) and f.endswith(".bak")]
    if not items:
        return None
    return max(items, key=lambda p: os.path.getmtime(p))


def main() -> None:
    ap = argparse.ArgumentParser(description="Restore the consent data store from its newest backup.")
    ap.add_argument("--root", default=".")
    args = ap.parse_args()

    cfg = ConfigManager(fs=ConfigFsPaths(args.root), logger=None, read_only=True).load_all()
    data_dir = cfg.consent.data_dir if os.path.isabs(cfg.consent.data_dir) else os.path.join(args.root, cfg.consent.data_dir)
    paths = DataStorePaths(data_dir=data_dir, store_name=cfg.consent.datastore_name)
    src = _newest_backup(paths)
    if src is None:
        raise SystemExit("No backup found.")
    shutil.copy2(src, paths.store_path)
    print(f"Restored {paths.store_path} from {src}")


if __name__ == "__main__":
    main()
