"""Tests for desired_state."""

from collections.abc import Callable

from app_deployer.desired_state import (
    ConfigMapDesiredStateSource,
    DesiredVersion,
    extract_desired_version,
)
from app_deployer.manifest import ConfigMap, NamedResource, ObjectKey
from app_deployer.store import InMemoryStore


def test_extract_desired_version(make_config_map: Callable[..., ConfigMap]) -> None:
    """Test reading the version from the configured key only."""
    config_map = make_config_map(data={"version": "v3", "unrelated": "v9"})
    assert extract_desired_version(config_map, "version") == DesiredVersion("v3")


def test_extract_missing_key(make_config_map: Callable[..., ConfigMap]) -> None:
    """Test a missing key is distinct from an empty value."""
    missing = extract_desired_version(make_config_map(data={}), "version")
    assert missing == DesiredVersion(version="", present=False)

    empty = extract_desired_version(make_config_map(data={"version": ""}), "version")
    assert empty == DesiredVersion(version="", present=True)
    assert empty != missing


async def test_config_map_source(
    store: InMemoryStore, make_config_map: Callable[..., ConfigMap]
) -> None:
    """Test fetching the desired version through the store."""
    await store.create_object(make_config_map())
    await store.create_object(make_config_map(name="other-config"))
    source = ConfigMapDesiredStateSource(store, "app-config", "version")

    assert await source.fetch(ObjectKey("apps", "app-config")) == DesiredVersion("v3")
    # Unrelated ConfigMaps and missing ConfigMaps need no reconcile
    assert await source.fetch(ObjectKey("apps", "other-config")) is None
    assert await source.fetch(ObjectKey("apps", "missing")) is None
    assert await source.fetch(ObjectKey("other", "app-config")) is None


def test_config_map_source_keys(store: InMemoryStore) -> None:
    """Test mapping changed resources to reconcile keys."""
    source = ConfigMapDesiredStateSource(store, "app-config", "version")
    assert source.is_source(NamedResource("ConfigMap", "apps", "app-config"))
    assert not source.is_source(NamedResource("ConfigMap", "apps", "other"))
    assert not source.is_source(NamedResource("BuildConfig", "apps", "app-config"))
    assert source.watch_key("apps") == ObjectKey("apps", "app-config")
