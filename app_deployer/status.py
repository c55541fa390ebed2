"""Outcome of converging a batch of resources."""

from dataclasses import dataclass, field
from enum import StrEnum

from .exceptions import AppDeployerException
from .manifest import NamedResource


class DriftState(StrEnum):
    """Whether a managed image reference matches the desired version."""

    CONVERGED = "Converged"
    DRIFTED = "Drifted"
    INVALID = "Invalid"


@dataclass
class ObjectError:
    """An error that caused a single object to be skipped."""

    resource_id: NamedResource
    error: AppDeployerException

    def __str__(self) -> str:
        return f"{self.resource_id}: {type(self.error).__name__}: {self.error}"


@dataclass
class SyncResult:
    """Objects written or skipped by one synchronizer run over a namespace."""

    updated: list[NamedResource] = field(default_factory=list)
    """Objects whose image references were rewritten."""

    created: list[NamedResource] = field(default_factory=list)
    """Objects created, e.g. new Builds."""

    converged: list[NamedResource] = field(default_factory=list)
    """Objects that already matched the desired version."""

    errors: list[ObjectError] = field(default_factory=list)
    """Objects skipped because their contents are invalid."""

    @property
    def writes(self) -> int:
        """Return the number of store writes performed."""
        return len(self.updated) + len(self.created)
