"""Helper functions for working with container image references."""

from dataclasses import dataclass
import logging

from .exceptions import InvalidImageReference

__all__ = ["ImageReference", "parse_image_reference"]

_LOGGER = logging.getLogger(__name__)

TAG_SEPARATOR = ":"


@dataclass(frozen=True)
class ImageReference:
    """An image reference split into its repository and tag."""

    repository: str
    tag: str

    def with_tag(self, tag: str) -> "ImageReference":
        """Return a reference to the same repository with a different tag."""
        return ImageReference(self.repository, tag)

    def __str__(self) -> str:
        return f"{self.repository}{TAG_SEPARATOR}{self.tag}"


def parse_image_reference(reference: str) -> ImageReference:
    """Split an image reference `repository:tag` at the last `:`.

    A colon that only separates a registry host from its port
    (e.g. `registry:5000/api`) is not a tag separator, so such a reference
    is rejected along with digest references (`repo@sha256:...`) and
    references that have no colon at all.
    """
    repository, sep, tag = reference.rpartition(TAG_SEPARATOR)
    if not sep or not repository or "/" in tag or "@" in repository:
        raise InvalidImageReference(reference)
    return ImageReference(repository, tag)
