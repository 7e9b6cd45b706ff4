"""Test helpers for keycloak-local tools."""

from keycloak_local.tool.keycloak_local import main


def run_main(args: list[str]) -> int:
    """Run the command line tool and return its exit code."""
    try:
        main(args)
    except SystemExit as err:
        return err.code if isinstance(err.code, int) else 1
    return 0
