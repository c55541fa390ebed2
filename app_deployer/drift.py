"""Report how far managed image references are from the desired version.

These helpers only read objects; they back the `status` command.
"""

from dataclasses import dataclass

from .exceptions import InvalidImageReference
from .image import parse_image_reference
from .manifest import BuildConfig, DeploymentConfig, NamedResource
from .status import DriftState


@dataclass
class ReferenceDrift:
    """The drift state of one image reference of a managed object."""

    resource_id: NamedResource
    image: str
    desired: str
    state: DriftState

    def as_row(self) -> dict[str, str]:
        return {
            "kind": self.resource_id.kind,
            "name": self.resource_id.name,
            "image": self.image,
            "desired": self.desired,
            "state": str(self.state),
        }


def _drift(resource_id: NamedResource, image: str, desired: str) -> ReferenceDrift:
    try:
        tag = parse_image_reference(image).tag
    except InvalidImageReference:
        state = DriftState.INVALID
    else:
        state = DriftState.CONVERGED if tag == desired else DriftState.DRIFTED
    return ReferenceDrift(resource_id, image, desired, state)


def build_config_drift(
    build_config: BuildConfig, desired: str
) -> ReferenceDrift | None:
    """Return the drift of a BuildConfig output, or None if it is not managed."""
    if not build_config.is_git or (output := build_config.spec.output.to) is None:
        return None
    return _drift(build_config.resource_id, output.name, desired)


def deployment_config_drift(
    deployment_config: DeploymentConfig, desired: str
) -> list[ReferenceDrift]:
    """Return the drift of every ImageChange trigger of a DeploymentConfig."""
    return [
        _drift(
            deployment_config.resource_id,
            trigger.image_change_params.from_.name,  # type: ignore[union-attr]
            desired,
        )
        for trigger in deployment_config.spec.triggers
        if trigger.is_image_change
    ]
