"""
Consent preferences: the immutable document, the deep merge, durable
key-value stores, and the state manager that ties them together.
"""

from edgeconsent.core.consent.manager import ConsentManagerConfig, ConsentStateManager
from edgeconsent.core.consent.models import Consents
from edgeconsent.core.consent.store import FileStoreProvider, JsonFileStore, KeyValueStore, MemoryStore

__all__ = [
    "Consents",
    "ConsentManagerConfig",
    "ConsentStateManager",
    "FileStoreProvider",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
]
