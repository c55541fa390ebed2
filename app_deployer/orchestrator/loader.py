"""Loads the manifests the reconciler runs against from local YAML files.

Documents of kinds the reconciler does not work with are skipped.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncGenerator

import aiofiles
import yaml

from app_deployer.manifest import ObjectManifest, parse_raw_obj
from app_deployer.exceptions import AppDeployerException, InputException
from app_deployer.store import Store

__all__ = ["ResourceLoader", "LoadOptions", "load_store"]

_LOGGER = logging.getLogger(__name__)

MANIFEST_SUFFIXES = (".yaml", ".yml", ".json")
LIST_KIND = "List"


@dataclass
class LoadOptions:
    """Options for loading manifests.

    Attributes:
        path: A manifest file or a directory of manifests.
        recursive: Also load manifests from subdirectories of `path`.
        namespace: Namespace assigned to objects that do not set one, the
            way `oc apply -n` does.
    """

    path: Path
    recursive: bool = True
    namespace: str | None = None

    def __post_init__(self) -> None:
        self.path = Path(self.path).expanduser().resolve()


class ResourceLoader:
    """Parses the supported objects out of manifest files."""

    def __init__(self) -> None:
        self._processed_files: set[Path] = set()

    async def load(self, options: LoadOptions) -> AsyncGenerator[ObjectManifest, None]:
        """Yield every supported object found at the path."""
        _LOGGER.info("Loading resources from %s", options.path)

        if options.path.is_file():
            paths = [options.path]
        elif options.path.is_dir():
            paths = self._manifest_paths(options.path, options.recursive)
        elif not options.path.exists():
            raise AppDeployerException(f"Path does not exist: {options.path}")
        else:
            raise AppDeployerException(
                f"Path is not a file or directory: {options.path}"
            )

        for path in paths:
            async for obj in self._load_file(path):
                if obj.metadata.namespace is None and options.namespace:
                    _LOGGER.debug(
                        "Assigning namespace %s to %s", options.namespace, obj.resource_id
                    )
                    obj.metadata.namespace = options.namespace
                yield obj

    def _manifest_paths(self, path: Path, recursive: bool) -> list[Path]:
        result = []
        for entry in sorted(path.iterdir()):
            if entry.is_file() and entry.suffix.lower() in MANIFEST_SUFFIXES:
                result.append(entry)
            elif recursive and entry.is_dir():
                result.extend(self._manifest_paths(entry, recursive))
        return result

    async def _load_file(self, path: Path) -> AsyncGenerator[ObjectManifest, None]:
        if path in self._processed_files:
            _LOGGER.debug("Skipping already processed file: %s", path)
            return
        self._processed_files.add(path)

        try:
            async with aiofiles.open(str(path), encoding="utf-8") as f:
                content = await f.read()
        except OSError as e:
            raise AppDeployerException(f"Failed to read file {path}: {e}") from e

        try:
            docs: list[dict[str, Any]] = [
                doc for doc in yaml.safe_load_all(content) if doc
            ]
        except yaml.YAMLError as e:
            raise AppDeployerException(f"Invalid YAML in file {path}: {e}") from e

        for doc in docs:
            items = (doc.get("items") or []) if doc.get("kind") == LIST_KIND else [doc]
            for item in items:
                try:
                    yield parse_raw_obj(item)
                except InputException as e:
                    _LOGGER.info("Skipping document in %s: %s", path, e)


async def load_store(store: Store, options: LoadOptions) -> int:
    """Create every object found at the path in the store.

    Returns the number of objects loaded.
    """
    count = 0
    async for obj in ResourceLoader().load(options):
        await store.create_object(obj)
        count += 1
    _LOGGER.info("Loaded %d objects from %s", count, options.path)
    return count
