from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple


SAMPLE_METADATA_TIMESTAMP = "2019-09-23T18:15:45Z"
SAMPLE_METADATA_TIMESTAMP_OTHER = "2020-07-23T18:16:45Z"

PREFERENCES_KEY = "consent:preferences"
DATASTORE_NAME = "com.adobe.edge.consent"


def consents_map(collect: Optional[str] = None, ad_id: Optional[str] = None, personalize: Optional[str] = None, time: Optional[str] = None) -> Dict[str, Any]:
    consents: Dict[str, Any] = {}
    if collect is not None:
        consents["collect"] = {"val": collect}
    if ad_id is not None:
        consents["adID"] = {"val": ad_id}
    if personalize is not None:
        consents["personalize"] = {"val": personalize}
    if time is not None:
        consents["metadata"] = {"time": time}
    return {"consents": consents}


def consents_json(*args: Any, **kwargs: Any) -> str:
    return json.dumps(consents_map(*args, **kwargs), separators=(",", ":"))


class FakeStore:
    """
    Records every call. `writable=False` makes put/remove report failure;
    `raise_on_get` makes reads blow up.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})
        self.calls: List[Tuple[str, ...]] = []
        self.writable = True
        self.raise_on_get = False

    def get_string(self, key: str) -> Optional[str]:
        self.calls.append(("get", key))
        if self.raise_on_get:
            raise OSError("disk gone")
        return self.data.get(key)

    def put_string(self, key: str, value: str) -> bool:
        self.calls.append(("put", key, value))
        if not self.writable:
            return False
        self.data[key] = value
        return True

    def remove(self, key: str) -> bool:
        self.calls.append(("remove", key))
        if not self.writable:
            return False
        self.data.pop(key, None)
        return True

    def puts(self) -> List[Tuple[str, ...]]:
        return [c for c in self.calls if c[0] == "put"]

    def removes(self) -> List[Tuple[str, ...]]:
        return [c for c in self.calls if c[0] == "remove"]


class SwitchableProvider:
    """Store provider whose store can be pulled away mid-run."""

    def __init__(self, store: Optional[FakeStore]):
        self.store = store
        self.requested: List[str] = []

    def __call__(self, name: str) -> Optional[FakeStore]:
        self.requested.append(name)
        return self.store


class DummyLogger:
    def __init__(self) -> None:
        self.warnings: List[str] = []

    def debug(self, *_a, **_k): ...
    def info(self, *_a, **_k): ...
    def error(self, *_a, **_k): ...

    def warning(self, msg, *_a, **_k):
        self.warnings.append(str(msg))
