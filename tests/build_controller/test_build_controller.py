"""Tests for the build controller."""

from collections.abc import Callable
from typing import TypeVar

import pytest

from app_deployer.build_controller import BuildSynchronizer, new_build
from app_deployer.desired_state import DesiredVersion
from app_deployer.exceptions import (
    ConflictError,
    InvalidImageReference,
    ObjectNotFoundError,
)
from app_deployer.manifest import Build, BuildConfig, NamedResource, ObjectManifest
from app_deployer.store import InMemoryStore, StoreEvent

T = TypeVar("T", bound=ObjectManifest)

V3 = DesiredVersion("v3")


class RecordingStore(InMemoryStore):
    """Store that records every write."""

    def __init__(self) -> None:
        super().__init__()
        self.writes: list[tuple[StoreEvent, NamedResource]] = []
        self.add_listener(lambda event, rid: self.writes.append((event, rid)))


@pytest.fixture(name="store")
def store_fixture() -> RecordingStore:
    """Create a store that records writes."""
    return RecordingStore()


async def test_converge_build_config(
    store: RecordingStore, make_build_config: Callable[..., BuildConfig]
) -> None:
    """Test a drifted BuildConfig is updated and a Build is created."""
    created = await store.create_object(make_build_config())
    store.writes.clear()

    result = await BuildSynchronizer(store).sync("apps", V3)

    bc_id = NamedResource("BuildConfig", "apps", "api")
    build_id = NamedResource("Build", "apps", "api-6")
    assert result.updated == [bc_id]
    assert result.created == [build_id]
    assert result.errors == []
    assert store.writes == [
        (StoreEvent.OBJECT_UPDATED, bc_id),
        (StoreEvent.OBJECT_ADDED, build_id),
    ]

    build_config = await store.get_object(bc_id, BuildConfig)
    assert build_config.spec.output.to
    assert build_config.spec.output.to.name == "registry/api:v3"
    assert build_config.spec.source.git
    assert build_config.spec.source.git.ref == "v3"
    assert build_config.status.last_version == 6

    build = await store.get_object(build_id, Build)
    assert build.spec.output.to
    assert build.spec.output.to.name == "registry/api:v3"
    assert build.spec.source == build_config.spec.source
    assert build.spec.strategy == build_config.spec.strategy
    assert build.spec.service_account == "builder"
    assert [cause.message for cause in build.spec.triggered_by] == ["AppDeployer"]
    assert build.metadata.labels == {
        "app": "api",
        "buildconfig": "api",
        "openshift.io/build-config.name": "api",
        "openshift.io/build.start-policy": "SerialLatestOnly",
    }
    assert build.metadata.annotations == {
        "openshift.io/build-config.name": "api",
        "openshift.io/build.number": "6",
        "openshift.io/build.pod-name": "api-6-build",
    }
    (owner,) = build.metadata.owner_references
    assert owner.api_version == "build.openshift.io/v1"
    assert owner.kind == "BuildConfig"
    assert owner.name == "api"
    assert owner.uid == created.metadata.uid
    assert owner.controller is True


async def test_converged_build_config(
    store: RecordingStore, make_build_config: Callable[..., BuildConfig]
) -> None:
    """Test a BuildConfig already at the desired tag is not written."""
    await store.create_object(make_build_config(image="registry/api:v3"))
    store.writes.clear()

    result = await BuildSynchronizer(store).sync("apps", V3)

    assert result.converged == [NamedResource("BuildConfig", "apps", "api")]
    assert result.writes == 0
    assert store.writes == []


@pytest.mark.parametrize("source_type", ["Binary", "Dockerfile"])
async def test_non_git_build_config(
    store: RecordingStore,
    make_build_config: Callable[..., BuildConfig],
    source_type: str,
) -> None:
    """Test BuildConfigs without a git source are never modified."""
    await store.create_object(make_build_config(source_type=source_type))
    store.writes.clear()

    result = await BuildSynchronizer(store).sync("apps", V3)

    assert result.writes == 0
    assert store.writes == []
    assert await store.list_objects(Build) == []


async def test_build_config_without_output(
    store: RecordingStore, make_build_config: Callable[..., BuildConfig]
) -> None:
    """Test BuildConfigs that push nowhere are skipped."""
    await store.create_object(make_build_config(image=None))
    store.writes.clear()

    result = await BuildSynchronizer(store).sync("apps", V3)
    assert result.writes == 0
    assert result.errors == []


async def test_invalid_image_isolated(
    store: RecordingStore, make_build_config: Callable[..., BuildConfig]
) -> None:
    """Test a malformed output is skipped while other BuildConfigs converge."""
    await store.create_object(make_build_config(name="broken", image="registry/broken"))
    await store.create_object(make_build_config(name="web", image="registry/web:v1"))

    result = await BuildSynchronizer(store).sync("apps", V3)

    (error,) = result.errors
    assert error.resource_id == NamedResource("BuildConfig", "apps", "broken")
    assert isinstance(error.error, InvalidImageReference)
    assert "InvalidImageReference" in str(error)
    assert result.updated == [NamedResource("BuildConfig", "apps", "web")]
    assert result.created == [NamedResource("Build", "apps", "web-6")]


async def test_git_source_missing(
    store: RecordingStore, make_build_config: Callable[..., BuildConfig]
) -> None:
    """Test a Git BuildConfig without git details is reported and skipped."""
    build_config = make_build_config()
    build_config.spec.source.git = None
    await store.create_object(build_config)
    store.writes.clear()

    result = await BuildSynchronizer(store).sync("apps", V3)

    (error,) = result.errors
    assert "no git source" in str(error.error)
    assert store.writes == []


async def test_build_already_exists(
    store: RecordingStore, make_build_config: Callable[..., BuildConfig]
) -> None:
    """Test a Build left by an earlier pass is not an error."""
    build_config = await store.create_object(make_build_config())
    build_config.status.last_version = 6
    await store.create_object(new_build(build_config))

    result = await BuildSynchronizer(store).sync("apps", V3)

    assert result.updated == [NamedResource("BuildConfig", "apps", "api")]
    assert result.created == []
    assert result.errors == []
    assert len(await store.list_objects(Build)) == 1


async def test_empty_desired_version(
    store: RecordingStore, make_build_config: Callable[..., BuildConfig]
) -> None:
    """Test a missing desired version propagates an empty tag."""
    await store.create_object(make_build_config())

    await BuildSynchronizer(store).sync("apps", DesiredVersion("", present=False))

    build_config = await store.get_object(
        NamedResource("BuildConfig", "apps", "api"), BuildConfig
    )
    assert build_config.spec.output.to
    assert build_config.spec.output.to.name == "registry/api:"
    assert build_config.spec.source.git
    assert build_config.spec.source.git.ref == ""

    # The empty tag is stable on the next pass
    result = await BuildSynchronizer(store).sync("apps", DesiredVersion("", present=False))
    assert result.writes == 0


class ConflictStore(RecordingStore):
    """Store where every update loses a race with another writer."""

    async def update_object(self, obj: T) -> T:
        raise ConflictError(f"Object {obj.resource_id} was modified")


async def test_conflict_aborts(make_build_config: Callable[..., BuildConfig]) -> None:
    """Test a conflict aborts the remaining BuildConfigs."""
    store = ConflictStore()
    await store.create_object(make_build_config(name="api"))
    await store.create_object(make_build_config(name="web"))
    store.writes.clear()

    with pytest.raises(ConflictError, match="BuildConfig/apps/api"):
        await BuildSynchronizer(store).sync("apps", V3)
    assert store.writes == []


class DeletedStore(RecordingStore):
    """Store where objects disappear between list and update."""

    async def update_object(self, obj: T) -> T:
        raise ObjectNotFoundError(f"Object {obj.resource_id} not found")


async def test_deleted_during_sync(make_build_config: Callable[..., BuildConfig]) -> None:
    """Test a BuildConfig deleted mid-pass is skipped without creating a Build."""
    store = DeletedStore()
    await store.create_object(make_build_config())

    result = await BuildSynchronizer(store).sync("apps", V3)

    assert result.updated == []
    assert result.created == []
    assert await store.list_objects(Build) == []


def test_new_build_copies_labels(make_build_config: Callable[..., BuildConfig]) -> None:
    """Test building a Build does not modify the BuildConfig labels."""
    build_config = make_build_config(labels={"app": "api"})
    build = new_build(build_config)
    build.metadata.labels["extra"] = "x"
    build.spec.source.type = "Binary"
    assert build_config.metadata.labels == {"app": "api"}
    assert build_config.spec.source.type == "Git"
    assert build.name == "api-5"
