"""Flags and helpers shared by the app-deployer commands."""

import logging
import pathlib
from argparse import ArgumentParser

from app_deployer.orchestrator import LoadOptions, ReconcilerConfig, load_store
from app_deployer.store import InMemoryStore
from app_deployer.store.deadline import DEFAULT_TIMEOUT_SECONDS

_LOGGER = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"


def add_common_flags(args: ArgumentParser) -> None:
    """Add common flags to the arguments object."""
    args.add_argument(
        "--path",
        help="Path to a manifest file or a directory of manifests",
        type=pathlib.Path,
        required=True,
    )
    args.add_argument(
        "--config-map",
        help="Name of the ConfigMap holding the desired version",
        required=True,
    )
    args.add_argument(
        "--config-key",
        help="Key within the ConfigMap holding the desired version",
        required=True,
    )
    args.add_argument(
        "--namespace",
        "-n",
        help="Namespace of the ConfigMap and the resources it manages",
        default=DEFAULT_NAMESPACE,
    )
    args.add_argument(
        "--store-timeout",
        help="Deadline in seconds for each store call",
        type=float,
        default=DEFAULT_TIMEOUT_SECONDS,
    )


def reconciler_config(
    config_map: str, config_key: str, store_timeout: float
) -> ReconcilerConfig:
    """Build the reconciler configuration from command line flags."""
    return ReconcilerConfig(
        config_map_name=config_map,
        config_map_key=config_key,
        store_timeout=store_timeout,
    )


async def bootstrap(path: pathlib.Path, namespace: str) -> InMemoryStore:
    """Load the manifests at the path into a new store.

    Objects without a namespace are placed in `namespace`.
    """
    store = InMemoryStore()
    await load_store(store, LoadOptions(path=path, namespace=namespace))
    return store
