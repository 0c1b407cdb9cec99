from __future__ import annotations

import copy
import json
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from edgeconsent.core.consent.merge import deep_merge
from edgeconsent.core.errors import ConsentParseError


CONSENTS_KEY = "consents"
METADATA_KEY = "metadata"
TIME_KEY = "time"
VALUE_KEY = "val"

COLLECT = "collect"
AD_ID = "adID"
PERSONALIZE = "personalize"


class ConsentsEnvelope(BaseModel):
    """
    Shape check for a stored document. Categories and metadata stay opaque;
    only the wrapper must be an object when present.
    """

    model_config = ConfigDict(extra="allow")
    consents: Optional[Dict[str, Any]] = None


class Consents:
    """
    Immutable consent document.

    Wraps an ordered tree such as::

        {"consents": {"collect": {"val": "y"},
                      "adID": {"val": "n"},
                      "metadata": {"time": "2021-03-26T17:45:09Z"}}}

    The backing mapping is deep-copied on the way in and on the way out,
    so a snapshot handed to a caller can never be changed behind the
    manager's back.
    """

    __slots__ = ("_data",)

    def __init__(self, raw_map: Optional[Mapping[str, Any]] = None):
        if raw_map is not None and not isinstance(raw_map, Mapping):
            raise TypeError("consents must be built from a mapping")
        self._data: Dict[str, Any] = copy.deepcopy(dict(raw_map or {}))

    # ---- construction ----
    @classmethod
    def empty(cls) -> "Consents":
        return cls({})

    @classmethod
    def from_json(cls, raw: str) -> "Consents":
        try:
            ConsentsEnvelope.model_validate_json(raw)
            obj = json.loads(raw)
        except (ValidationError, ValueError, TypeError) as e:
            raise ConsentParseError(error=str(e)[:200]) from e
        return cls(obj)

    # ---- views ----
    def as_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)

    def to_json(self) -> str:
        return json.dumps(self._data, ensure_ascii=False, separators=(",", ":"))

    def is_empty(self) -> bool:
        if not self._data:
            return True
        if set(self._data) == {CONSENTS_KEY}:
            wrapped = self._data[CONSENTS_KEY]
            return isinstance(wrapped, Mapping) and not wrapped
        return False

    def get(self, *path: str) -> Any:
        node: Any = self._data
        for part in path:
            if not isinstance(node, Mapping) or part not in node:
                return None
            node = node[part]
        return copy.deepcopy(node)

    def category_value(self, category: str) -> Optional[str]:
        return self.get(CONSENTS_KEY, category, VALUE_KEY)

    @property
    def collect(self) -> Optional[str]:
        return self.category_value(COLLECT)

    @property
    def ad_id(self) -> Optional[str]:
        return self.category_value(AD_ID)

    @property
    def personalize(self) -> Optional[str]:
        return self.category_value(PERSONALIZE)

    @property
    def timestamp(self) -> Optional[str]:
        # nested under the wrapper, or a top-level sibling of it
        ts = self.get(CONSENTS_KEY, METADATA_KEY, TIME_KEY)
        return ts if ts is not None else self.get(METADATA_KEY, TIME_KEY)

    # ---- derivation ----
    def merged_with(self, other: Optional["Consents"]) -> "Consents":
        if other is None:
            return self
        return Consents(deep_merge(self._data, other._data))

    def with_timestamp(self, ts: str) -> "Consents":
        return Consents(deep_merge(self._data, {CONSENTS_KEY: {METADATA_KEY: {TIME_KEY: str(ts)}}}))

    # ---- dunder ----
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Consents):
            return NotImplemented
        return self._data == other._data

    def __hash__(self) -> int:
        return hash(self.to_json())

    def __repr__(self) -> str:
        return f"Consents({self._data!r})"
