"""Key/value store adapters.

Components only talk to the :class:`Store` protocol; the in-memory store
backs tests and local runs, the REST store talks to the Realtime Database.
"""

from carcare.store.base import Store, is_empty, join_path, split_path
from carcare.store.memory import InMemoryStore
from carcare.store.rest import RestStore

__all__ = [
    "InMemoryStore",
    "RestStore",
    "Store",
    "is_empty",
    "join_path",
    "split_path",
]
