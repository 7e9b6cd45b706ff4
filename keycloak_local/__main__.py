"""Run the keycloak-local command line tool with `python -m keycloak_local`."""

from keycloak_local.tool.keycloak_local import main

if __name__ == "__main__":
    main()
