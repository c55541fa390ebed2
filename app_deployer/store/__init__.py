"""
The store module provides the object store the reconciler reads from and
writes to.

- Uses NamedResource as the key for all objects.
- Stores values as dataclass instances from manifest.py for type safety.
- Updates are guarded by the object's resourceVersion (optimistic concurrency).

This abstract interface allows for various implementations (in-memory, a
cluster API client, etc.).
"""

from .store import Store, StoreEvent, StoreListener
from .in_memory import InMemoryStore
from .deadline import DeadlineStore

__all__ = [
    "Store",
    "StoreEvent",
    "StoreListener",
    "InMemoryStore",
    "DeadlineStore",
]
