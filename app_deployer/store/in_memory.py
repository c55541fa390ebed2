"""Module for in memory object store."""

import copy
import itertools
import logging
import uuid
from collections.abc import Callable
from typing import TypeVar

from app_deployer.manifest import NamedResource, ObjectManifest
from app_deployer.exceptions import (
    AlreadyExistsError,
    ConflictError,
    ObjectNotFoundError,
)

from .store import Store, StoreEvent, StoreListener


_LOGGER = logging.getLogger(__name__)

T = TypeVar("T", bound=ObjectManifest)


class InMemoryStore(Store):
    """In-memory implementation of the Store interface.

    Objects are keyed by NamedResource and copied on the way in and out so
    callers never share state with the store. Every write assigns a new
    resourceVersion from a store-wide counter.
    """

    def __init__(self) -> None:
        """Initialize the InMemoryStore."""
        self._objects: dict[NamedResource, ObjectManifest] = {}
        self._listeners: list[StoreListener] = []
        self._versions = itertools.count(1)

    async def get_object(self, resource_id: NamedResource, cls: type[T]) -> T:
        """Retrieve an object by resource identity and type."""
        if (obj := self._objects.get(resource_id)) is None:
            raise ObjectNotFoundError(f"Object {resource_id} not found")
        if not isinstance(obj, cls):
            raise ValueError(
                f"Object {resource_id.namespaced_name} is not of type {cls.__name__} (was {obj.__class__.__name__})"
            )
        return copy.deepcopy(obj)

    async def list_objects(self, cls: type[T], namespace: str | None = None) -> list[T]:
        """List all objects of a type, optionally restricted to a namespace."""
        return [
            copy.deepcopy(obj)
            for resource_id, obj in sorted(self._objects.items())
            if isinstance(obj, cls)
            and (namespace is None or resource_id.namespace == namespace)
        ]

    async def create_object(self, obj: T) -> T:
        """Create a new object and return the stored copy."""
        resource_id = obj.resource_id
        if resource_id in self._objects:
            raise AlreadyExistsError(f"Object {resource_id} already exists")
        stored = copy.deepcopy(obj)
        stored.metadata.uid = stored.metadata.uid or str(uuid.uuid4())
        stored.metadata.resource_version = str(next(self._versions))
        _LOGGER.debug("Adding object %s to store", resource_id)
        self._objects[resource_id] = stored
        self._fire_event(StoreEvent.OBJECT_ADDED, resource_id)
        return copy.deepcopy(stored)

    async def update_object(self, obj: T) -> T:
        """Replace an existing object and return the stored copy."""
        resource_id = obj.resource_id
        if (existing := self._objects.get(resource_id)) is None:
            raise ObjectNotFoundError(f"Object {resource_id} not found")
        if existing.metadata.resource_version != obj.metadata.resource_version:
            raise ConflictError(
                f"Object {resource_id} was modified (resourceVersion "
                f"{obj.metadata.resource_version} != {existing.metadata.resource_version})"
            )
        stored = copy.deepcopy(obj)
        stored.metadata.uid = existing.metadata.uid
        stored.metadata.resource_version = str(next(self._versions))
        _LOGGER.debug(
            "Updating object %s to resourceVersion %s",
            resource_id,
            stored.metadata.resource_version,
        )
        self._objects[resource_id] = stored
        self._fire_event(StoreEvent.OBJECT_UPDATED, resource_id)
        return copy.deepcopy(stored)

    def add_listener(self, callback: StoreListener) -> Callable[[], None]:
        """Register a callback invoked after an object is added or updated."""

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        self._listeners.append(callback)
        return remove

    def _fire_event(self, event: StoreEvent, resource_id: NamedResource) -> None:
        for cb in list(self._listeners):  # Iterate over a copy for safe removal
            try:
                cb(event, resource_id)
            except Exception:
                _LOGGER.exception("Store listener callback failed for event %s", event)
