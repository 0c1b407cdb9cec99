from __future__ import annotations

import json
import sys

from edgeconsent.core.config import ConfigManager
from edgeconsent.core.config.paths import ConfigFsPaths


def main() -> None:
    root = sys.argv[1] if len(sys.argv) > 1 else "."
    cfg = ConfigManager(fs=ConfigFsPaths(root), logger=None, read_only=True).load_all()
    print(json.dumps(cfg.model_dump(mode="json"), indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
