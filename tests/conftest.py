"""Test fixtures for app-deployer."""

from collections.abc import Callable
from typing import Any

import pytest

from app_deployer.manifest import BuildConfig, ConfigMap, DeploymentConfig
from app_deployer.store import InMemoryStore


@pytest.fixture(name="store")
def store_fixture() -> InMemoryStore:
    """Create an in-memory store for testing."""
    return InMemoryStore()


@pytest.fixture(name="make_config_map")
def make_config_map_fixture() -> Callable[..., ConfigMap]:
    """Return a factory for ConfigMaps in the `apps` namespace."""

    def make(name: str = "app-config", data: dict[str, str] | None = None) -> ConfigMap:
        return ConfigMap.parse_doc(
            {
                "apiVersion": "v1",
                "kind": "ConfigMap",
                "metadata": {"name": name, "namespace": "apps"},
                "data": {"version": "v3"} if data is None else data,
            }
        )

    return make


@pytest.fixture(name="make_build_config")
def make_build_config_fixture() -> Callable[..., BuildConfig]:
    """Return a factory for BuildConfigs in the `apps` namespace."""

    def make(
        name: str = "api",
        image: str | None = "registry/api:v2",
        source_type: str = "Git",
        ref: str = "v2",
        last_version: int = 5,
        labels: dict[str, str] | None = None,
    ) -> BuildConfig:
        source: dict[str, Any] = {"type": source_type}
        if source_type == "Git":
            source["git"] = {"uri": f"https://git.example.com/{name}.git", "ref": ref}
        spec: dict[str, Any] = {
            "source": source,
            "strategy": {"type": "Docker", "dockerStrategy": {"noCache": True}},
            "serviceAccount": "builder",
        }
        if image is not None:
            spec["output"] = {"to": {"kind": "DockerImage", "name": image}}
        return BuildConfig.parse_doc(
            {
                "apiVersion": "build.openshift.io/v1",
                "kind": "BuildConfig",
                "metadata": {
                    "name": name,
                    "namespace": "apps",
                    "labels": {"app": name} if labels is None else labels,
                },
                "spec": spec,
                "status": {"lastVersion": last_version},
            }
        )

    return make


@pytest.fixture(name="make_deployment_config")
def make_deployment_config_fixture() -> Callable[..., DeploymentConfig]:
    """Return a factory for DeploymentConfigs in the `apps` namespace."""

    def make(
        name: str = "api-deploy",
        images: list[str] | None = None,
        config_change: bool = True,
    ) -> DeploymentConfig:
        triggers: list[dict[str, Any]] = []
        if config_change:
            triggers.append({"type": "ConfigChange"})
        for i, image in enumerate(images or ["registry/api:v2"]):
            triggers.append(
                {
                    "type": "ImageChange",
                    "imageChangeParams": {
                        "automatic": True,
                        "containerNames": [f"container-{i}"],
                        "from": {"kind": "DockerImage", "name": image},
                    },
                }
            )
        return DeploymentConfig.parse_doc(
            {
                "apiVersion": "apps.openshift.io/v1",
                "kind": "DeploymentConfig",
                "metadata": {"name": name, "namespace": "apps"},
                "spec": {
                    "replicas": 1,
                    "selector": {"app": name},
                    "triggers": triggers,
                },
            }
        )

    return make
