from __future__ import annotations

import copy
from typing import Any, Dict, Mapping, Optional


def deep_merge(base: Optional[Mapping[str, Any]], incoming: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Merge `incoming` into a copy of `base`.

    Keys present only in `base` survive. For keys present in `incoming`, the
    incoming value wins unless both sides hold mappings, in which case the
    two mappings are merged key by key. Neither argument is mutated.

    Merging is not timestamp-aware: an older `metadata.time` in `incoming`
    still overwrites a newer one in `base`.
    """
    out: Dict[str, Any] = copy.deepcopy(dict(base or {}))
    for key, value in (incoming or {}).items():
        current = out.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            out[key] = deep_merge(current, value)
        else:
            out[key] = copy.deepcopy(value)
    return out
