"""Representation of the cluster objects read and written by app-deployer.

Objects are parsed from Kubernetes-shaped documents (e.g. the output of
`oc get -o yaml`) and serialized back to the same shape. Only the fields
needed to converge builds and deployments are modeled; everything else in
a spec is carried as an opaque mapping.
"""

from dataclasses import dataclass, field, fields
import copy
import logging
from typing import Any, ClassVar, TypeVar

from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig
from mashumaro.exceptions import InvalidFieldValue, MissingField

from .exceptions import InputException

__all__ = [
    "parse_raw_obj",
    "NamedResource",
    "ObjectKey",
    "ObjectMeta",
    "OwnerReference",
    "ConfigMap",
    "BuildConfig",
    "Build",
    "DeploymentConfig",
]

_LOGGER = logging.getLogger(__name__)


CONFIG_MAP_KIND = "ConfigMap"
BUILD_CONFIG_KIND = "BuildConfig"
BUILD_KIND = "Build"
DEPLOYMENT_CONFIG_KIND = "DeploymentConfig"

CORE_API_VERSION = "v1"
BUILD_API_VERSION = "build.openshift.io/v1"
APPS_API_VERSION = "apps.openshift.io/v1"

# Match a prefix of apiVersion to ensure we have the right type of object.
BUILD_DOMAIN = "build.openshift.io"
APPS_DOMAIN = "apps.openshift.io"

GIT_SOURCE_TYPE = "Git"
IMAGE_CHANGE_TRIGGER_TYPE = "ImageChange"
DOCKER_IMAGE_KIND = "DockerImage"
DEFAULT_RUN_POLICY = "Serial"


def _check_version(doc: dict[str, Any], version: str) -> None:
    """Assert that the resource has the specified version."""
    if not (api_version := doc.get("apiVersion")):
        raise InputException(f"Invalid object missing apiVersion: {doc}")
    if not api_version.startswith(version):
        raise InputException(f"Invalid object expected '{version}': {doc}")


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all manifest objects."""

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


@dataclass(frozen=True, order=True)
class NamedResource:
    """Identifier for a kubernetes resource."""

    kind: str
    namespace: str | None
    name: str

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the kind and namespaced name concatenated as an id."""
        return f"{self.kind}/{self.namespaced_name}"


@dataclass(frozen=True, order=True)
class ObjectKey:
    """The namespaced name delivered to the reconciler for a changed object."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class OwnerReference(BaseManifest):
    """A reference to the object that owns this one, used for garbage collection."""

    api_version: str = field(metadata=field_options(alias="apiVersion"))
    """The apiVersion of the owner."""

    kind: str
    """The kind of the owner."""

    name: str
    """The name of the owner."""

    uid: str | None = None
    """The uid of the owner."""

    controller: bool | None = None
    """True if the owner is the managing controller."""


@dataclass
class ObjectMeta(BaseManifest):
    """Metadata common to all persisted objects."""

    name: str
    """The name of the object."""

    namespace: str | None = None
    """The namespace of the object."""

    uid: str | None = None
    """Unique identifier assigned by the store on creation."""

    resource_version: str | None = field(
        metadata=field_options(alias="resourceVersion"), default=None
    )
    """Opaque token used for optimistic concurrency on update."""

    labels: dict[str, str] = field(default_factory=dict)
    """Labels on the object."""

    annotations: dict[str, str] = field(default_factory=dict)
    """Annotations on the object."""

    owner_references: list[OwnerReference] = field(
        metadata=field_options(alias="ownerReferences"), default_factory=list
    )
    """Objects that own this object."""


M = TypeVar("M", bound="ObjectManifest")


@dataclass
class ObjectManifest(BaseManifest):
    """Base class for top level objects persisted in the store."""

    kind: ClassVar[str]
    """The kind of the object."""

    api_version: ClassVar[str]
    """The apiVersion written when serializing the object."""

    domain: ClassVar[str]
    """The apiVersion prefix accepted when parsing the object."""

    metadata: ObjectMeta
    """Standard object metadata."""

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str | None:
        return self.metadata.namespace

    @property
    def resource_id(self) -> NamedResource:
        """Return the identity of the object in the store."""
        return NamedResource(self.kind, self.namespace, self.name)

    @classmethod
    def parse_doc(cls: type[M], doc: dict[str, Any]) -> M:
        """Parse the object from a kubernetes resource document."""
        if doc.get("kind") != cls.kind:
            raise InputException(f"Invalid {cls.__name__} kind: {doc.get('kind')}")
        _check_version(doc, cls.domain)
        if not (metadata := doc.get("metadata")):
            raise InputException(f"Invalid {cls.__name__} missing metadata: {doc}")
        if not metadata.get("name"):
            raise InputException(
                f"Invalid {cls.__name__} missing metadata.name: {doc}"
            )
        try:
            return cls.from_dict(doc)
        except (MissingField, InvalidFieldValue) as err:
            raise InputException(
                f"Invalid {cls.__name__} {metadata['name']}: {err}"
            ) from err

    def to_doc(self) -> dict[str, Any]:
        """Return the kubernetes resource document for the object."""
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            **self.to_dict(),
        }


@dataclass
class ConfigMap(ObjectManifest):
    """A ConfigMap is an API object used to store data in key-value pairs."""

    kind: ClassVar[str] = CONFIG_MAP_KIND
    api_version: ClassVar[str] = CORE_API_VERSION
    domain: ClassVar[str] = CORE_API_VERSION

    data: dict[str, str] = field(default_factory=dict)
    """The data in the ConfigMap."""


@dataclass
class ObjectReference(BaseManifest):
    """A reference to an image, e.g. a DockerImage or ImageStreamTag."""

    name: str
    """The image reference in the form `repository:tag`."""

    kind: str = DOCKER_IMAGE_KIND
    """The kind of the referenced object."""

    namespace: str | None = None
    """The namespace of the referenced object, if any."""


@dataclass
class GitBuildSource(BaseManifest):
    """A git repository to check out for a build."""

    uri: str
    """The URL of the repository."""

    ref: str | None = None
    """The branch, tag or commit to check out."""


@dataclass
class BuildSource(BaseManifest):
    """The input source of a build."""

    type: str
    """The kind of source, e.g. Git, Binary or Dockerfile."""

    git: GitBuildSource | None = None
    """The git source, when type is Git."""

    context_dir: str | None = field(
        metadata=field_options(alias="contextDir"), default=None
    )
    """Sub-directory of the source to build from."""


@dataclass
class BuildOutput(BaseManifest):
    """The destination of the produced image."""

    to: ObjectReference | None = None
    """The image the build pushes to."""


@dataclass
class CommonSpec(BaseManifest):
    """The part of a build specification shared by BuildConfigs and Builds."""

    source: BuildSource
    """Where the build gets its input from."""

    strategy: dict[str, Any] = field(default_factory=dict)
    """How the build is executed, carried as is."""

    output: BuildOutput = field(default_factory=BuildOutput)
    """Where the build output is pushed."""

    service_account: str | None = field(
        metadata=field_options(alias="serviceAccount"), default=None
    )
    """The service account the build runs as."""

    resources: dict[str, Any] | None = None
    """Compute resources for the build, carried as is."""

    def common_fields(self) -> dict[str, Any]:
        """Return a deep copy of the common specification fields."""
        return {
            f.name: copy.deepcopy(getattr(self, f.name)) for f in fields(CommonSpec)
        }


@dataclass
class BuildConfigSpec(CommonSpec):
    """The specification of a BuildConfig."""

    run_policy: str = field(
        metadata=field_options(alias="runPolicy"), default=DEFAULT_RUN_POLICY
    )
    """How new builds are scheduled relative to running ones."""

    triggers: list[dict[str, Any]] = field(default_factory=list)
    """Build triggers, carried as is."""


@dataclass
class BuildConfigStatus(BaseManifest):
    """Observed state of a BuildConfig."""

    last_version: int = field(metadata=field_options(alias="lastVersion"), default=0)
    """The number of the most recently created build."""


@dataclass
class BuildConfig(ObjectManifest):
    """A definition of how to produce an image from a source repository."""

    kind: ClassVar[str] = BUILD_CONFIG_KIND
    api_version: ClassVar[str] = BUILD_API_VERSION
    domain: ClassVar[str] = BUILD_DOMAIN

    spec: BuildConfigSpec
    """The build definition."""

    status: BuildConfigStatus = field(default_factory=BuildConfigStatus)
    """The build counter."""

    @property
    def is_git(self) -> bool:
        """Return True if the build checks out a git repository."""
        return self.spec.source.type == GIT_SOURCE_TYPE


@dataclass
class BuildTriggerCause(BaseManifest):
    """Records why a build was started."""

    message: str


@dataclass
class BuildSpec(CommonSpec):
    """The specification of a single Build."""

    triggered_by: list[BuildTriggerCause] = field(
        metadata=field_options(alias="triggeredBy"), default_factory=list
    )
    """The causes of this build."""


@dataclass
class Build(ObjectManifest):
    """A numbered, immutable execution of a BuildConfig."""

    kind: ClassVar[str] = BUILD_KIND
    api_version: ClassVar[str] = BUILD_API_VERSION
    domain: ClassVar[str] = BUILD_DOMAIN

    spec: BuildSpec
    """A copy of the owning BuildConfig's common spec."""


@dataclass
class DeploymentTriggerImageChangeParams(BaseManifest):
    """Parameters of an image change trigger."""

    from_: ObjectReference = field(metadata=field_options(alias="from"))
    """The image whose change rolls out the deployment."""

    automatic: bool = False
    """Whether a change of the image triggers a rollout."""

    container_names: list[str] = field(
        metadata=field_options(alias="containerNames"), default_factory=list
    )
    """The containers whose image is replaced."""


@dataclass
class DeploymentTriggerPolicy(BaseManifest):
    """A single trigger of a DeploymentConfig."""

    type: str
    """The trigger type, e.g. ConfigChange or ImageChange."""

    image_change_params: DeploymentTriggerImageChangeParams | None = field(
        metadata=field_options(alias="imageChangeParams"), default=None
    )
    """Parameters for an ImageChange trigger."""

    @property
    def is_image_change(self) -> bool:
        return (
            self.type == IMAGE_CHANGE_TRIGGER_TYPE
            and self.image_change_params is not None
        )


@dataclass
class DeploymentConfigSpec(BaseManifest):
    """The specification of a DeploymentConfig."""

    triggers: list[DeploymentTriggerPolicy] = field(default_factory=list)
    """Events that start a new rollout."""

    replicas: int | None = None
    selector: dict[str, str] | None = None
    template: dict[str, Any] | None = None


@dataclass
class DeploymentConfig(ObjectManifest):
    """A definition of a deployment rolled out when its images change."""

    kind: ClassVar[str] = DEPLOYMENT_CONFIG_KIND
    api_version: ClassVar[str] = APPS_API_VERSION
    domain: ClassVar[str] = APPS_DOMAIN

    spec: DeploymentConfigSpec = field(default_factory=DeploymentConfigSpec)
    """The deployment definition."""


KINDS: dict[str, type[ObjectManifest]] = {
    cls.kind: cls for cls in (ConfigMap, BuildConfig, Build, DeploymentConfig)
}


def parse_raw_obj(obj: dict[str, Any]) -> ObjectManifest:
    """Parse a raw kubernetes object into an ObjectManifest."""
    if not (kind := obj.get("kind")):
        raise InputException(f"Invalid object missing kind: {obj}")
    if (cls := KINDS.get(kind)) is None:
        raise InputException(f"Unsupported object kind {kind}")
    return cls.parse_doc(obj)
