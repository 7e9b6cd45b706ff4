"""Library for issuing kubectl commands against the cluster.

This is the `ClusterControl` used by the command line tool:
```python
from keycloak_local.kubectl import KubectlCluster
from keycloak_local.minikube import Minikube

cluster = KubectlCluster(Minikube())
await cluster.apply(Path("keycloak/homolog/keycloak.yaml"))
await cluster.wait("deployment/postgres", "available", timeout=120)
```
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from . import command
from .cluster import ClusterControl, NamedResource
from .command import Command
from .exceptions import (
    ApplyFailure,
    KubectlException,
    ReadinessTimeout,
)
from .minikube import Minikube

__all__ = [
    "KubectlCluster",
]

_LOGGER = logging.getLogger(__name__)

KUBECTL_BIN = "kubectl"

# Extra time allowed for kubectl to report a timeout of its own
_WAIT_GRACE = 30.0


def _format_timeout(timeout: float) -> str:
    return f"{int(timeout)}s"


class KubectlCluster(ClusterControl):
    """A ClusterControl that shells out to kubectl."""

    def __init__(
        self,
        minikube: Minikube,
        context: str | None = None,
        namespace: str | None = None,
    ) -> None:
        """Initialize KubectlCluster."""
        self._minikube = minikube
        self._flags: list[str] = []
        if context:
            self._flags.extend(["--context", context])
        self._namespace = namespace

    def _command(
        self,
        args: list[str],
        namespace: str | None = None,
        exc: type[KubectlException] = KubectlException,
        timeout: float | None = command.DEFAULT_TIMEOUT,
    ) -> Command:
        cmd = [KUBECTL_BIN] + self._flags + args
        if namespace := namespace or self._namespace:
            cmd.extend(["--namespace", namespace])
        return Command(cmd, exc=exc, timeout=timeout)

    async def apply(self, manifest: Path) -> None:
        """Apply the manifest, raising ApplyFailure on error."""
        await command.run(
            self._command(["apply", "-f", str(manifest)], exc=ApplyFailure)
        )

    async def delete(
        self, resource: NamedResource, ignore_missing: bool = True
    ) -> None:
        """Delete the resource."""
        args = ["delete", resource.kind, resource.name]
        if ignore_missing:
            args.append("--ignore-not-found")
        await command.run(self._command(args, namespace=resource.namespace))

    async def get(self, resource: NamedResource) -> dict[str, Any] | None:
        """Return the resource object, or None if it could not be read."""
        cmd = self._command(
            ["get", resource.kind, resource.name, "-o", "yaml"],
            namespace=resource.namespace,
        )
        try:
            out = await command.run(cmd)
        except KubectlException as err:
            _LOGGER.debug("Unable to get %s: %s", resource, err)
            return None
        try:
            doc = yaml.safe_load(out)
        except yaml.YAMLError as err:
            _LOGGER.debug("Unable to parse command output: %s: %s", cmd, err)
            return None
        return doc if isinstance(doc, dict) else None

    async def wait(
        self,
        target: str,
        condition: str,
        timeout: float,
        selector: str | None = None,
        namespace: str | None = None,
    ) -> None:
        """Block until the condition is met, raising ReadinessTimeout otherwise."""
        args = ["wait", f"--for=condition={condition}", target]
        if selector:
            args.extend(["-l", selector])
        args.append(f"--timeout={_format_timeout(timeout)}")
        await command.run(
            self._command(
                args,
                namespace=namespace,
                exc=ReadinessTimeout,
                timeout=timeout + _WAIT_GRACE,
            )
        )

    async def pod_phases(
        self, selector: str, namespace: str | None = None
    ) -> list[str]:
        """Return the status phase of each pod matching the label selector."""
        cmd = self._command(
            ["get", "pods", "-l", selector, "-o", "yaml"], namespace=namespace
        )
        out = await command.run(cmd)
        try:
            doc = yaml.safe_load(out) or {}
        except yaml.YAMLError as err:
            raise KubectlException(
                f"Unable to parse command output: {cmd}: {err}"
            ) from err
        items = (doc.get("items") or []) if isinstance(doc, dict) else None
        if not isinstance(items, list):
            raise KubectlException(
                f"Unable to parse command output: {cmd}: expected a list of pods"
            )
        phases = []
        for item in items:
            status = item.get("status") if isinstance(item, dict) else None
            if not isinstance(status, dict):
                raise KubectlException(
                    f"Unable to parse command output: {cmd}: pod without a status"
                )
            phases.append(str(status.get("phase", "Unknown")))
        return phases

    async def address(self) -> str:
        """Return the externally reachable IP address of the cluster."""
        return await self._minikube.ip()
