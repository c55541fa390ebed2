"""Output of the app-deployer commands.

`reconcile` prints the converged objects as Kubernetes documents and
`status` prints a drift table with one row per managed image reference.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
import json
import sys
from typing import Any, TextIO

import yaml

from app_deployer.drift import ReferenceDrift
from app_deployer.manifest import ObjectManifest

__all__ = [
    "DriftTable",
    "ManifestFormatter",
    "YamlManifestFormatter",
    "JsonManifestFormatter",
    "FORMATTERS",
]

PADDING = 4

DRIFT_COLUMNS = ["kind", "name", "image", "desired", "state"]


class DriftTable:
    """Prints the drift of managed image references as aligned columns."""

    def __init__(self, columns: list[str] | None = None) -> None:
        """Initialize DriftTable with the row keys to print, in order."""
        self._columns = columns or DRIFT_COLUMNS

    def format(self, drifts: Iterable[ReferenceDrift]) -> Iterator[str]:
        """Yield the header line and one line per reference."""
        rows = [[drift.as_row()[key] for key in self._columns] for drift in drifts]
        if not rows:
            return
        table = [[column.upper() for column in self._columns]] + rows
        widths = [max(len(row[i]) for row in table) for i in range(len(self._columns))]
        for row in table:
            yield "".join(
                value.ljust(width + PADDING) for value, width in zip(row, widths)
            ).rstrip()

    def print(self, drifts: Iterable[ReferenceDrift], file: TextIO | None = None) -> None:
        for line in self.format(drifts):
            print(line, file=file or sys.stdout)


class ManifestFormatter(ABC):
    """Prints objects as the documents the cluster API would return."""

    def print(
        self, objects: Iterable[ObjectManifest], file: TextIO | None = None
    ) -> None:
        """Print the documents of the objects."""
        self.write([obj.to_doc() for obj in objects], file or sys.stdout)

    @abstractmethod
    def write(self, docs: list[dict[str, Any]], file: TextIO) -> None:
        """Write already serialized documents."""


class YamlManifestFormatter(ManifestFormatter):
    """A multi-document YAML stream with one document per object."""

    def write(self, docs: list[dict[str, Any]], file: TextIO) -> None:
        print(yaml.dump_all(docs, sort_keys=False, explicit_start=True), end="", file=file)


class JsonManifestFormatter(ManifestFormatter):
    """A JSON array of objects."""

    def write(self, docs: list[dict[str, Any]], file: TextIO) -> None:
        json.dump(docs, file, indent=4)
        print(file=file)


FORMATTERS: dict[str, type[ManifestFormatter]] = {
    "yaml": YamlManifestFormatter,
    "json": JsonManifestFormatter,
}
