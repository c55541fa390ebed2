"""Sources of the desired version that resources are converged to.

The desired version is an opaque string. The only source implemented today
reads one key of a well-known ConfigMap; the DesiredStateSource interface
lets a typed resource replace it without touching the synchronizers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging

from .exceptions import ObjectNotFoundError
from .manifest import CONFIG_MAP_KIND, ConfigMap, NamedResource, ObjectKey
from .store import Store

__all__ = [
    "DesiredVersion",
    "DesiredStateSource",
    "ConfigMapDesiredStateSource",
    "extract_desired_version",
]

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DesiredVersion:
    """The version resources should converge to.

    When the version is not present, `version` is the empty string and is
    still propagated to all managed resources.
    """

    version: str
    present: bool = True


def extract_desired_version(config_map: ConfigMap, key: str) -> DesiredVersion:
    """Read the desired version from the given key of a ConfigMap."""
    if key not in config_map.data:
        return DesiredVersion(version="", present=False)
    return DesiredVersion(version=str(config_map.data[key]))


class DesiredStateSource(ABC):
    """Provides the desired version for a reconcile key."""

    @abstractmethod
    async def fetch(self, key: ObjectKey) -> DesiredVersion | None:
        """Return the desired version, or None if the key needs no reconcile."""

    @abstractmethod
    def is_source(self, resource_id: NamedResource) -> bool:
        """Return True if changes to the resource change the desired version."""

    @abstractmethod
    def watch_key(self, namespace: str) -> ObjectKey:
        """Return the reconcile key for changes to resources in a namespace."""


class ConfigMapDesiredStateSource(DesiredStateSource):
    """Reads the desired version from a key of a named ConfigMap."""

    def __init__(self, store: Store, config_map_name: str, config_map_key: str) -> None:
        """Initialize ConfigMapDesiredStateSource."""
        self._store = store
        self._config_map_name = config_map_name
        self._config_map_key = config_map_key

    async def fetch(self, key: ObjectKey) -> DesiredVersion | None:
        resource_id = NamedResource(CONFIG_MAP_KIND, key.namespace, key.name)
        try:
            config_map = await self._store.get_object(resource_id, ConfigMap)
        except ObjectNotFoundError:
            _LOGGER.debug("ConfigMap %s not found, nothing to reconcile", resource_id)
            return None
        if config_map.name != self._config_map_name:
            return None
        desired = extract_desired_version(config_map, self._config_map_key)
        if desired.present:
            _LOGGER.info("Desired version is %s (%s)", desired.version, resource_id)
        else:
            _LOGGER.warning(
                "ConfigMap %s has no key '%s'; an empty tag will be applied to all managed resources",
                resource_id,
                self._config_map_key,
            )
        return desired

    def is_source(self, resource_id: NamedResource) -> bool:
        return (
            resource_id.kind == CONFIG_MAP_KIND
            and resource_id.name == self._config_map_name
        )

    def watch_key(self, namespace: str) -> ObjectKey:
        return ObjectKey(namespace, self._config_map_name)
