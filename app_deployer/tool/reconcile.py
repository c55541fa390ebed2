"""App-deployer reconcile action."""

import logging
import pathlib
import sys
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
from typing import cast

from app_deployer.exceptions import AppDeployerException
from app_deployer.manifest import Build, BuildConfig, DeploymentConfig, ObjectKey
from app_deployer.orchestrator import (
    QueueConfig,
    ReconcileQueue,
    Reconciler,
    ReconcileResult,
)

from . import common
from .format import FORMATTERS

_LOGGER = logging.getLogger(__name__)

# Local stores do not fail transiently, so a few retries are plenty.
MAX_RETRIES = 5

OUTPUT_KINDS = (BuildConfig, Build, DeploymentConfig)


class ReconcileAction:
    """Converge local manifests to the desired version."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "reconcile",
                help="Converge BuildConfigs and DeploymentConfigs to the desired version",
                description=(
                    "Load manifests into a local store, reconcile them against the "
                    "desired version in the ConfigMap and print the resulting "
                    "BuildConfigs, Builds and DeploymentConfigs."
                ),
            ),
        )
        common.add_common_flags(args)
        args.add_argument(
            "--output",
            "-o",
            choices=sorted(FORMATTERS),
            default="yaml",
            help="Output format of the command",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        path: pathlib.Path,
        config_map: str,
        config_key: str,
        namespace: str,
        store_timeout: float,
        output: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        store = await common.bootstrap(path, namespace)
        reconciler = Reconciler(
            store, common.reconciler_config(config_map, config_key, store_timeout)
        )
        key = ObjectKey(namespace, config_map)
        if await reconciler.desired_state_source.fetch(key) is None:
            raise AppDeployerException(f"ConfigMap {key} not found")

        queue = ReconcileQueue(reconciler, QueueConfig(max_retries=MAX_RETRIES))
        queue.watch(store)
        queue.start()
        queue.enqueue(key)
        try:
            await queue.block_till_done()
        finally:
            await queue.close()

        FORMATTERS[output]().print(
            [
                obj
                for cls in OUTPUT_KINDS
                for obj in await store.list_objects(cls, namespace)
            ]
        )

        result = queue.results.get(key, ReconcileResult.CONVERGED)
        print(f"{key}: {result}", file=sys.stderr)
        if result != ReconcileResult.CONVERGED:
            raise AppDeployerException(f"Reconcile of {key} did not converge: {result}")
