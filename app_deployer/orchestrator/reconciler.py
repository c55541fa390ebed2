"""Reconciler for app-deployer.

This module provides the entry point invoked for every change notification.
It reads the desired version and runs the build and deployment
synchronizers in order, then classifies the outcome for the caller that
delivers notifications:

- CONVERGED: nothing more to do until the next external change.
- RETRY: a transient store failure or conflict; deliver the key again later.
- FATAL: an error that will not go away by retrying (e.g. a malformed image
  reference); surfaced in the logs and not retried.
"""

from dataclasses import dataclass, field
from enum import StrEnum
import logging

from app_deployer.build_controller import BuildSynchronizer
from app_deployer.deployment_controller import DeploymentTriggerSynchronizer
from app_deployer.desired_state import (
    ConfigMapDesiredStateSource,
    DesiredStateSource,
    DesiredVersion,
)
from app_deployer.exceptions import (
    ConflictError,
    FatalStoreError,
    ObjectNotFoundError,
    StoreException,
    TransientStoreError,
)
from app_deployer.manifest import ObjectKey
from app_deployer.status import ObjectError, SyncResult
from app_deployer.store import DeadlineStore, Store
from app_deployer.store.deadline import DEFAULT_TIMEOUT_SECONDS

_LOGGER = logging.getLogger(__name__)

RETRYABLE_ERRORS = (ConflictError, TransientStoreError)


class ReconcileResult(StrEnum):
    """Outcome of a reconcile pass."""

    CONVERGED = "Converged"
    RETRY = "Retry"
    FATAL = "Fatal"


@dataclass
class ReconcilerConfig:
    """Configuration for the Reconciler.

    Attributes:
        config_map_name: Name of the ConfigMap holding the desired version.
        config_map_key: Key within the ConfigMap holding the desired version.
        store_timeout: Deadline in seconds for each store call.
    """

    config_map_name: str
    config_map_key: str
    store_timeout: float = DEFAULT_TIMEOUT_SECONDS


@dataclass
class ReconcilePass:
    """Details of a single reconcile pass."""

    key: ObjectKey
    result: ReconcileResult = ReconcileResult.CONVERGED
    desired: DesiredVersion | None = None
    builds: SyncResult = field(default_factory=SyncResult)
    deployments: SyncResult = field(default_factory=SyncResult)
    error: StoreException | None = None

    @property
    def errors(self) -> list[ObjectError]:
        """Return the objects skipped because they are invalid."""
        return self.builds.errors + self.deployments.errors

    @property
    def writes(self) -> int:
        return self.builds.writes + self.deployments.writes


class Reconciler:
    """Runs one convergence pass for a reconcile key."""

    def __init__(
        self,
        store: Store,
        config: ReconcilerConfig,
        desired_state_source: DesiredStateSource | None = None,
    ) -> None:
        """Initialize the reconciler.

        Every store call made by the reconciler is bounded by
        `config.store_timeout`.
        """
        self._store = DeadlineStore(store, config.store_timeout)
        self._config = config
        self.desired_state_source = desired_state_source or ConfigMapDesiredStateSource(
            self._store, config.config_map_name, config.config_map_key
        )
        self._builds = BuildSynchronizer(self._store)
        self._deployments = DeploymentTriggerSynchronizer(self._store)

    async def reconcile(self, key: ObjectKey) -> ReconcileResult:
        """Run a reconcile pass for the key and return its outcome."""
        return (await self.reconcile_pass(key)).result

    async def reconcile_pass(self, key: ObjectKey) -> ReconcilePass:
        """Run a reconcile pass for the key and return its details."""
        _LOGGER.debug("Reconcile %s", key)
        current = ReconcilePass(key=key)
        try:
            await self._run(current)
        except StoreException as err:
            current.error = err
            current.result = _classify(err)
            _LOGGER.warning(
                "Reconcile of %s aborted with %s: %s (%s)",
                key,
                type(err).__name__,
                err,
                current.result,
            )
            return current

        if current.errors:
            current.result = ReconcileResult.FATAL
            for error in current.errors:
                _LOGGER.error("Reconcile of %s failed for %s", key, error)
        _LOGGER.info(
            "Reconcile of %s finished: %s (%d writes)",
            key,
            current.result,
            current.writes,
        )
        return current

    async def _run(self, current: ReconcilePass) -> None:
        key = current.key
        if (desired := await self.desired_state_source.fetch(key)) is None:
            return
        current.desired = desired
        try:
            current.builds = await self._builds.sync(key.namespace, desired)
        except ObjectNotFoundError as err:
            _LOGGER.debug("BuildConfigs of %s not found: %s", key.namespace, err)
        try:
            current.deployments = await self._deployments.sync(key.namespace, desired)
        except ObjectNotFoundError as err:
            _LOGGER.debug("DeploymentConfigs of %s not found: %s", key.namespace, err)


def _classify(err: StoreException) -> ReconcileResult:
    """Map an aborting store error to the outcome of the pass."""
    if isinstance(err, RETRYABLE_ERRORS):
        return ReconcileResult.RETRY
    if isinstance(err, FatalStoreError):
        return ReconcileResult.FATAL
    # Unclassified store errors get another chance.
    return ReconcileResult.RETRY
