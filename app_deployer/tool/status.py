"""App-deployer status action."""

import logging
import pathlib
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
from typing import cast

from app_deployer.desired_state import ConfigMapDesiredStateSource
from app_deployer.drift import build_config_drift, deployment_config_drift
from app_deployer.exceptions import AppDeployerException
from app_deployer.manifest import BuildConfig, DeploymentConfig, ObjectKey

from . import common
from .format import DriftTable

_LOGGER = logging.getLogger(__name__)


class StatusAction:
    """Report drift of local manifests from the desired version."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "status",
                help="Print whether managed image references match the desired version",
                description=(
                    "Print every BuildConfig output and DeploymentConfig image "
                    "trigger with its drift state. Nothing is modified."
                ),
            ),
        )
        common.add_common_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        path: pathlib.Path,
        config_map: str,
        config_key: str,
        namespace: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        store = await common.bootstrap(path, namespace)
        source = ConfigMapDesiredStateSource(store, config_map, config_key)
        key = ObjectKey(namespace, config_map)
        if (desired := await source.fetch(key)) is None:
            raise AppDeployerException(f"ConfigMap {key} not found")

        drifts = [
            output_drift
            for build_config in await store.list_objects(BuildConfig, namespace)
            if (output_drift := build_config_drift(build_config, desired.version))
        ]
        for deployment_config in await store.list_objects(DeploymentConfig, namespace):
            drifts.extend(deployment_config_drift(deployment_config, desired.version))

        if not drifts:
            print(f"No managed resources found in namespace {namespace}")
            return
        DriftTable().print(drifts)
