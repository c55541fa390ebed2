"""
Deployment Controller implementation.

This controller converges the ImageChange triggers of DeploymentConfig
resources to the desired version. All stale triggers of a DeploymentConfig
are rewritten on a copy and persisted with a single update, so a
DeploymentConfig is written at most once per pass.
"""

import logging

from app_deployer.desired_state import DesiredVersion
from app_deployer.exceptions import InputException, ObjectNotFoundError
from app_deployer.image import parse_image_reference
from app_deployer.manifest import DeploymentConfig
from app_deployer.status import ObjectError, SyncResult
from app_deployer.store import Store

_LOGGER = logging.getLogger(__name__)


def retag_triggers(deployment_config: DeploymentConfig, version: str) -> int:
    """Point all ImageChange triggers at the version, returning the number changed.

    Every trigger is validated before any is changed, so an invalid reference
    leaves the DeploymentConfig untouched.
    """
    stale = []
    for trigger in deployment_config.spec.triggers:
        if not trigger.is_image_change:
            continue
        ref = trigger.image_change_params.from_  # type: ignore[union-attr]
        image = parse_image_reference(ref.name)
        if image.tag != version:
            stale.append((ref, image))
    for ref, image in stale:
        _LOGGER.debug(
            "%s trigger %s -> %s",
            deployment_config.resource_id,
            ref.name,
            image.with_tag(version),
        )
        ref.name = str(image.with_tag(version))
    return len(stale)


class DeploymentTriggerSynchronizer:
    """Converges the DeploymentConfigs of a namespace to the desired version."""

    def __init__(self, store: Store) -> None:
        """Initialize DeploymentTriggerSynchronizer."""
        self._store = store

    async def sync(self, namespace: str, desired: DesiredVersion) -> SyncResult:
        """Converge all DeploymentConfigs in the namespace.

        Invalid DeploymentConfigs are recorded in the result and skipped. Store
        errors abort the remaining DeploymentConfigs and are raised to the caller.
        """
        result = SyncResult()
        for deployment_config in await self._store.list_objects(
            DeploymentConfig, namespace
        ):
            resource_id = deployment_config.resource_id
            try:
                changed = retag_triggers(deployment_config, desired.version)
            except InputException as err:
                _LOGGER.error(
                    "Skipping %s: %s: %s", resource_id, type(err).__name__, err
                )
                result.errors.append(ObjectError(resource_id, err))
                continue
            if not changed:
                result.converged.append(resource_id)
                continue

            _LOGGER.info(
                "Updating %d image trigger(s) of %s to tag '%s'",
                changed,
                resource_id,
                desired.version,
            )
            try:
                await self._store.update_object(deployment_config)
            except ObjectNotFoundError:
                _LOGGER.info("%s was deleted during reconcile, skipping", resource_id)
                continue
            result.updated.append(resource_id)
        return result
