"""Reconcile queue that delivers change notifications to the reconciler.

The queue stands in for the watch and work-queue machinery of a cluster
controller runtime:

- Store change events are mapped to reconcile keys. Changes to the desired
  state object reconcile that object's key; changes to BuildConfigs and
  DeploymentConfigs reconcile the desired state key of their namespace.
- A key is never reconciled by two workers at the same time. A key that
  changes while it is being reconciled is reconciled again afterwards.
- A pass that returns RETRY is requeued with exponential backoff. FATAL
  passes are logged and dropped until the next change.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
import logging

from app_deployer.manifest import (
    BUILD_CONFIG_KIND,
    DEPLOYMENT_CONFIG_KIND,
    NamedResource,
    ObjectKey,
)
from app_deployer.store import Store, StoreEvent

from .reconciler import Reconciler, ReconcileResult

__all__ = ["ReconcileQueue", "QueueConfig"]

_LOGGER = logging.getLogger(__name__)

WATCHED_KINDS = {BUILD_CONFIG_KIND, DEPLOYMENT_CONFIG_KIND}


@dataclass
class QueueConfig:
    """Configuration for the ReconcileQueue.

    Attributes:
        workers: Number of keys reconciled concurrently.
        base_delay: Delay in seconds before the first retry of a key.
        max_delay: Upper bound in seconds of the retry delay.
        max_retries: Number of consecutive retries after which a key is
            dropped, or None to retry forever.
    """

    workers: int = 2
    base_delay: float = 0.005
    max_delay: float = 300.0
    max_retries: int | None = None


class ReconcileQueue:
    """Serializes reconcile passes per key and retries them with backoff."""

    def __init__(self, reconciler: Reconciler, config: QueueConfig | None = None) -> None:
        """Initialize ReconcileQueue."""
        self._reconciler = reconciler
        self._config = config or QueueConfig()
        self._queue: asyncio.Queue[ObjectKey] = asyncio.Queue()
        self._queued: set[ObjectKey] = set()
        self._processing: set[ObjectKey] = set()
        self._dirty: set[ObjectKey] = set()
        self._delayed: dict[ObjectKey, asyncio.TimerHandle] = {}
        self._failures: dict[ObjectKey, int] = {}
        self._workers: list[asyncio.Task[None]] = []
        self._idle = asyncio.Event()
        self._idle.set()
        self._remove_listener: Callable[[], None] | None = None
        self.results: dict[ObjectKey, ReconcileResult] = {}

    def watch(self, store: Store) -> None:
        """Enqueue keys for changes to objects in the store."""
        source = self._reconciler.desired_state_source

        def listener(event: StoreEvent, resource_id: NamedResource) -> None:
            if not resource_id.namespace:
                return
            if source.is_source(resource_id):
                key = ObjectKey(resource_id.namespace, resource_id.name)
            elif resource_id.kind in WATCHED_KINDS:
                key = source.watch_key(resource_id.namespace)
            else:
                return
            _LOGGER.debug("%s %s, enqueue %s", resource_id, event.value, key)
            self.enqueue(key)

        self._remove_listener = store.add_listener(listener)

    def enqueue(self, key: ObjectKey) -> None:
        """Schedule a reconcile pass for the key."""
        if (handle := self._delayed.pop(key, None)) is not None:
            handle.cancel()
        if key in self._processing:
            self._dirty.add(key)
        elif key not in self._queued:
            self._queued.add(key)
            self._queue.put_nowait(key)
        self._update_idle()

    def start(self) -> None:
        """Start the worker tasks."""
        if self._workers:
            return
        _LOGGER.debug("Starting %d reconcile workers", self._config.workers)
        self._workers = [
            asyncio.create_task(self._worker(), name=f"reconcile-worker-{i}")
            for i in range(self._config.workers)
        ]

    async def block_till_done(self) -> None:
        """Wait until no key is queued, waiting for a retry, or being reconciled.

        The workers must have been started.
        """
        await self._idle.wait()

    async def close(self) -> None:
        """Stop watching the store and cancel the workers."""
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        for handle in self._delayed.values():
            handle.cancel()
        self._delayed.clear()
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()

    async def _worker(self) -> None:
        while True:
            key = await self._queue.get()
            self._queued.discard(key)
            self._processing.add(key)
            try:
                result = await self._reconciler.reconcile(key)
            except Exception:
                _LOGGER.exception("Reconcile of %s raised an unexpected error", key)
                result = ReconcileResult.RETRY
            finally:
                self._processing.discard(key)
                self._queue.task_done()
            self.results[key] = result
            self._handle_result(key, result)
            if key in self._dirty:
                self._dirty.discard(key)
                self.enqueue(key)
            self._update_idle()

    def _handle_result(self, key: ObjectKey, result: ReconcileResult) -> None:
        if result != ReconcileResult.RETRY:
            if result == ReconcileResult.FATAL:
                _LOGGER.error("Reconcile of %s failed permanently, not retrying", key)
            self._failures.pop(key, None)
            return

        failures = self._failures.get(key, 0) + 1
        max_retries = self._config.max_retries
        if max_retries is not None and failures > max_retries:
            _LOGGER.error("Dropping %s after %d retries", key, max_retries)
            self._failures.pop(key, None)
            return
        self._failures[key] = failures
        delay = min(
            self._config.base_delay * 2 ** (failures - 1), self._config.max_delay
        )
        _LOGGER.info("Retrying %s in %.3fs (attempt %d)", key, delay, failures)
        self._delayed[key] = asyncio.get_running_loop().call_later(
            delay, self._requeue, key
        )

    def _requeue(self, key: ObjectKey) -> None:
        self._delayed.pop(key, None)
        self.enqueue(key)

    def _update_idle(self) -> None:
        if self._queued or self._processing or self._dirty or self._delayed:
            self._idle.clear()
        else:
            self._idle.set()
