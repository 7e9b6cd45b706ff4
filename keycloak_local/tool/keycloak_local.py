"""Command line tool for deploying Keycloak to a local Minikube cluster."""

import argparse
import asyncio
import logging
import sys
import traceback

from keycloak_local.exceptions import DeployException
from . import deploy

_LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "[%(levelname)s] %(asctime)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="keycloak-local",
        description="Deploy Keycloak and Postgres to a local Minikube cluster.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
    )
    deploy.DeployAction.register(parser)
    return parser


def main(argv: list[str] | None = None) -> None:
    """Keycloak-local command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT
    )

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except DeployException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print("keycloak-local error: ", err, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
