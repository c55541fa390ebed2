"""Command line tool for converging local OpenShift manifests to a desired version."""

import argparse
import asyncio
import logging
import sys
import traceback

from app_deployer.exceptions import AppDeployerException
from . import reconcile, status

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Command line utility for converging builds and deployments to a desired version.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    reconcile.ReconcileAction.register(subparsers)
    status.StatusAction.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    """App-deployer command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        logging.basicConfig(level=args.log_level)

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except AppDeployerException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print("app-deployer error: ", err, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
