"""Store module for holding the objects converged by the reconciler."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import TypeVar

from app_deployer.manifest import NamedResource, ObjectManifest

T = TypeVar("T", bound=ObjectManifest)


class StoreEvent(str, Enum):
    """Enum for store events."""

    OBJECT_ADDED = "object_added"
    OBJECT_UPDATED = "object_updated"


StoreListener = Callable[[StoreEvent, NamedResource], None]


class Store(ABC):
    """Abstract base class for a typed object store with optimistic concurrency.

    Objects returned by the store are copies owned by the caller; changes to
    them are only persisted by `update_object`.
    """

    @abstractmethod
    async def get_object(self, resource_id: NamedResource, cls: type[T]) -> T:
        """Retrieve an object by resource identity and type.

        Raises:
            ObjectNotFoundError: If the object does not exist.
        """

    @abstractmethod
    async def list_objects(self, cls: type[T], namespace: str | None = None) -> list[T]:
        """List all objects of a type, optionally restricted to a namespace."""

    @abstractmethod
    async def create_object(self, obj: T) -> T:
        """Create a new object and return the stored copy.

        Raises:
            AlreadyExistsError: If an object with the same identity exists.
        """

    @abstractmethod
    async def update_object(self, obj: T) -> T:
        """Replace an existing object and return the stored copy.

        The object's `metadata.resource_version` must match the stored version.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            ConflictError: If the object was changed since it was read.
        """

    @abstractmethod
    def add_listener(self, callback: StoreListener) -> Callable[[], None]:
        """Register a callback invoked after an object is added or updated.

        Returns a callable that can be called to remove the listener.
        """
