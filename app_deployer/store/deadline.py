"""A store wrapper that bounds the duration of every store call."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from app_deployer.manifest import NamedResource, ObjectManifest
from app_deployer.exceptions import TransientStoreError

from .store import Store, StoreListener

_LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10

T = TypeVar("T", bound=ObjectManifest)
R = TypeVar("R")


class DeadlineStore(Store):
    """Delegates to another store, failing calls that exceed a deadline.

    An expired deadline raises TransientStoreError so the reconcile pass is
    retried rather than failed permanently.
    """

    def __init__(
        self, store: Store, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    ) -> None:
        """Initialize DeadlineStore."""
        self._store = store
        self._timeout_seconds = timeout_seconds

    async def _call(self, op: str, target: str, coro: Awaitable[R]) -> R:
        try:
            async with asyncio.timeout(self._timeout_seconds):
                return await coro
        except TimeoutError as err:
            _LOGGER.warning(
                "Store %s of %s timed out after %ss", op, target, self._timeout_seconds
            )
            raise TransientStoreError(
                f"Store {op} of {target} timed out after {self._timeout_seconds}s"
            ) from err

    async def get_object(self, resource_id: NamedResource, cls: type[T]) -> T:
        return await self._call(
            "get", str(resource_id), self._store.get_object(resource_id, cls)
        )

    async def list_objects(self, cls: type[T], namespace: str | None = None) -> list[T]:
        return await self._call(
            "list",
            f"{cls.kind}/{namespace or '*'}",
            self._store.list_objects(cls, namespace),
        )

    async def create_object(self, obj: T) -> T:
        return await self._call(
            "create", str(obj.resource_id), self._store.create_object(obj)
        )

    async def update_object(self, obj: T) -> T:
        return await self._call(
            "update", str(obj.resource_id), self._store.update_object(obj)
        )

    def add_listener(self, callback: StoreListener) -> Callable[[], None]:
        return self._store.add_listener(callback)
