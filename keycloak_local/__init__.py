"""
keycloak-local deploys Keycloak and its Postgres database into a local
Minikube cluster from static manifests.

The library exposes the pieces used by the `keycloak-local` command:
  - `config` resolves an environment name to its manifests
  - `template` renders the ingress template for the cluster address
  - `reconciler` applies the manifests and waits for readiness
"""

__all__ = [
    "cluster",
    "config",
    "exceptions",
    "kubectl",
    "minikube",
    "reconciler",
    "repair",
    "report",
    "template",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
