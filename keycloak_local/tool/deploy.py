"""Keycloak-local deploy action."""

from argparse import ArgumentParser
import logging
import pathlib

from keycloak_local.cluster import AddonControl, ClusterControl
from keycloak_local.config import EnvironmentRegistry, ReconcileOptions
from keycloak_local.kubectl import KubectlCluster
from keycloak_local.minikube import Minikube
from keycloak_local.reconciler import Reconciler
from keycloak_local.report import render_report

_LOGGER = logging.getLogger(__name__)


def build_controls(
    kube_context: str | None = None,
    minikube_profile: str | None = None,
) -> tuple[ClusterControl, AddonControl]:
    """Return the cluster and add-on controls backed by kubectl and minikube."""
    minikube = Minikube(profile=minikube_profile)
    return KubectlCluster(minikube, context=kube_context), minikube


class DeployAction:
    """Keycloak-local deploy action."""

    @classmethod
    def register(cls, args: ArgumentParser) -> ArgumentParser:
        """Register the deploy flags."""
        args.add_argument(
            "--env",
            required=True,
            help="Name of the environment to deploy, e.g. homolog or production",
        )
        args.add_argument(
            "--force",
            action="store_true",
            default=False,
            help="Delete and recreate existing Keycloak resources",
        )
        args.add_argument(
            "--path",
            type=pathlib.Path,
            default=pathlib.Path("."),
            help="Base directory that environment manifest paths are relative to",
        )
        args.add_argument(
            "--config",
            type=pathlib.Path,
            default=None,
            help="Optional YAML file listing the environments and their manifests",
        )
        args.add_argument(
            "--kube-context",
            type=str,
            default=None,
            help="The kubectl context to use instead of the current context",
        )
        args.add_argument(
            "--minikube-profile",
            type=str,
            default=None,
            help="The minikube profile to use instead of the default profile",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        env: str,
        force: bool,
        path: pathlib.Path,
        config: pathlib.Path | None,
        kube_context: str | None,
        minikube_profile: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        if config is not None:
            registry = EnvironmentRegistry.load(config)
            target = registry.resolve(env)
        else:
            registry = EnvironmentRegistry.default()
            target = registry.resolve(env, base_dir=path)

        options = ReconcileOptions(force=force)
        cluster, addons = build_controls(
            kube_context=kube_context, minikube_profile=minikube_profile
        )
        reconciler = Reconciler(cluster, addons, options)
        outcome = await reconciler.deploy(target)

        print(render_report(outcome, options))
        _LOGGER.info("Keycloak deployed successfully for %s environment", target.name)

