"""
Build Controller implementation.

This controller converges BuildConfig resources to the desired version. A
BuildConfig with a git source is drifted when the tag of its output image
differs from the desired version. Converging it rewrites the output tag and
the git ref, bumps the build counter and creates the matching Build, the
same way `oc start-build` would.

Key Concepts:
    - BuildConfig: A definition of how to produce an image from a source.
    - Build: An immutable, numbered execution of a BuildConfig, named
      `<buildconfig>-<number>` and owned by the BuildConfig.

Drift is always derived by comparing the stored object with the desired
version rather than remembered between passes. Creating a Build that
already exists (a redelivered pass) is treated as success.
"""

import logging

from app_deployer.desired_state import DesiredVersion
from app_deployer.exceptions import (
    AlreadyExistsError,
    InputException,
    ObjectNotFoundError,
)
from app_deployer.image import parse_image_reference
from app_deployer.manifest import (
    Build,
    BuildConfig,
    BuildSpec,
    BuildTriggerCause,
    ObjectMeta,
    OwnerReference,
)
from app_deployer.status import ObjectError, SyncResult
from app_deployer.store import Store

_LOGGER = logging.getLogger(__name__)

TRIGGER_MESSAGE = "AppDeployer"

BUILD_CONFIG_LABEL = "openshift.io/build-config.name"
BUILD_CONFIG_LABEL_DEPRECATED = "buildconfig"
BUILD_RUN_POLICY_LABEL = "openshift.io/build.start-policy"
BUILD_RUN_POLICY_SERIAL_LATEST_ONLY = "SerialLatestOnly"

BUILD_CONFIG_ANNOTATION = "openshift.io/build-config.name"
BUILD_NUMBER_ANNOTATION = "openshift.io/build.number"
BUILD_POD_NAME_ANNOTATION = "openshift.io/build.pod-name"


def build_name(build_config_name: str, number: int) -> str:
    """Return the name of the numbered build of a BuildConfig."""
    return f"{build_config_name}-{number}"


def new_build(build_config: BuildConfig) -> Build:
    """Return the Build for the current build counter of a BuildConfig."""
    number = build_config.status.last_version
    name = build_name(build_config.name, number)

    labels = dict(build_config.metadata.labels)
    labels[BUILD_CONFIG_LABEL_DEPRECATED] = build_config.name
    labels[BUILD_CONFIG_LABEL] = build_config.name
    labels[BUILD_RUN_POLICY_LABEL] = BUILD_RUN_POLICY_SERIAL_LATEST_ONLY

    annotations = {
        BUILD_CONFIG_ANNOTATION: build_config.name,
        BUILD_NUMBER_ANNOTATION: str(number),
        BUILD_POD_NAME_ANNOTATION: f"{name}-build",
    }

    return Build(
        metadata=ObjectMeta(
            name=name,
            namespace=build_config.namespace,
            labels=labels,
            annotations=annotations,
            owner_references=[
                OwnerReference(
                    api_version=BuildConfig.api_version,
                    kind=BuildConfig.kind,
                    name=build_config.name,
                    uid=build_config.metadata.uid,
                    controller=True,
                )
            ],
        ),
        spec=BuildSpec(
            **build_config.spec.common_fields(),
            triggered_by=[BuildTriggerCause(message=TRIGGER_MESSAGE)],
        ),
    )


class BuildSynchronizer:
    """Converges the BuildConfigs of a namespace to the desired version."""

    def __init__(self, store: Store) -> None:
        """Initialize BuildSynchronizer."""
        self._store = store

    async def sync(self, namespace: str, desired: DesiredVersion) -> SyncResult:
        """Converge all BuildConfigs in the namespace.

        Invalid BuildConfigs are recorded in the result and skipped. Store
        errors abort the remaining BuildConfigs and are raised to the caller.
        """
        result = SyncResult()
        for build_config in await self._store.list_objects(BuildConfig, namespace):
            try:
                await self._sync_build_config(build_config, desired.version, result)
            except InputException as err:
                _LOGGER.error(
                    "Skipping %s: %s: %s",
                    build_config.resource_id,
                    type(err).__name__,
                    err,
                )
                result.errors.append(ObjectError(build_config.resource_id, err))
        return result

    async def _sync_build_config(
        self, build_config: BuildConfig, version: str, result: SyncResult
    ) -> None:
        resource_id = build_config.resource_id
        if not build_config.is_git:
            _LOGGER.debug(
                "Skipping %s with source type %s",
                resource_id,
                build_config.spec.source.type,
            )
            return
        if (output := build_config.spec.output.to) is None:
            _LOGGER.debug("Skipping %s with no output image", resource_id)
            return

        image = parse_image_reference(output.name)
        if image.tag == version:
            _LOGGER.debug("%s already at tag '%s'", resource_id, version)
            result.converged.append(resource_id)
            return
        if (git := build_config.spec.source.git) is None:
            raise InputException(f"{resource_id} has source type Git but no git source")

        _LOGGER.info(
            "Updating %s output %s from tag '%s' to '%s'",
            resource_id,
            image.repository,
            image.tag,
            version,
        )
        output.name = str(image.with_tag(version))
        git.ref = version
        build_config.status.last_version += 1
        try:
            build_config = await self._store.update_object(build_config)
        except ObjectNotFoundError:
            _LOGGER.info("%s was deleted during reconcile, skipping", resource_id)
            return
        result.updated.append(resource_id)

        build = new_build(build_config)
        try:
            await self._store.create_object(build)
        except AlreadyExistsError:
            _LOGGER.info("%s already exists, not creating it again", build.resource_id)
            return
        _LOGGER.info("Created %s", build.resource_id)
        result.created.append(build.resource_id)
