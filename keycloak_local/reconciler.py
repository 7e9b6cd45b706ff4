"""Reconciler that brings the cluster in line with an environment's manifests.

A reconciliation pass renders the ingress template for the cluster address,
applies the workload and ingress manifests, then waits for Postgres and
Keycloak to become ready:
```python
from keycloak_local.reconciler import Reconciler

reconciler = Reconciler(cluster, addons, ReconcileOptions())
outcome = await reconciler.deploy(target)
```

The workload is handled differently depending on what is already present:
  - nothing deployed: apply the workload manifest
  - deployed and forced: delete the related resources, then apply
  - deployed: delete the ingress and re-apply the workload manifest, falling
    back to deleting the primary service when the apply is rejected

The ingress is applied with a bounded number of attempts, running the ingress
controller repair action between attempts. Failures past argument validation
are logged and never abort the pass.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
import logging
from pathlib import Path

from .cluster import AddonControl, ClusterControl, NamedResource
from .config import DeploymentTarget, ReconcileOptions
from .exceptions import (
    ApplyFailure,
    CommandException,
    ReadinessTimeout,
    RepairActionFailure,
)
from .repair import IngressControllerRepair
from .template import resolved_ingress

__all__ = [
    "IngressApply",
    "IngressState",
    "Reconciler",
    "ReconciliationOutcome",
    "WorkloadAction",
]

_LOGGER = logging.getLogger(__name__)

INGRESS_ADDON = "ingress"

Sleep = Callable[[float], Awaitable[None]]


class WorkloadAction(StrEnum):
    """How the workload manifest was brought to the cluster."""

    APPLIED = "applied"
    UPDATED = "updated"
    RECREATED = "recreated"


class IngressState(StrEnum):
    """Progress of the ingress apply."""

    NOT_ATTEMPTED = "NotAttempted"
    ATTEMPTING = "Attempting"
    SUCCEEDED = "Succeeded"
    EXHAUSTED = "ExhaustedFailure"


@dataclass
class ReconciliationOutcome:
    """Result of a reconciliation pass used to report back to the operator."""

    environment: str
    host: str
    workload: WorkloadAction = WorkloadAction.APPLIED
    workload_applied: bool = False
    ingress: IngressState = IngressState.NOT_ATTEMPTED
    ingress_attempts: int = 0
    database_ready: bool = False
    workload_ready: bool = False


class IngressApply:
    """Applies the ingress manifest, repairing the controller between attempts."""

    def __init__(
        self,
        cluster: ClusterControl,
        repair: Callable[[], Awaitable[None]],
        max_attempts: int,
        backoff: float,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize IngressApply."""
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1: {max_attempts}")
        self._cluster = cluster
        self._repair = repair
        self._max_attempts = max_attempts
        self._backoff = backoff
        self._sleep = sleep
        self.state = IngressState.NOT_ATTEMPTED
        self.attempts = 0

    async def _run_repair(self) -> None:
        try:
            await self._repair()
        except RepairActionFailure as err:
            _LOGGER.warning("%s", err)

    async def run(self, manifest: Path, remediation: str) -> IngressState:
        """Apply the manifest until it succeeds or the attempts are used up.

        The remediation text is logged when every attempt failed.
        """
        while self.attempts < self._max_attempts:
            self.attempts += 1
            self.state = IngressState.ATTEMPTING
            _LOGGER.info(
                "Applying ingress configuration (attempt %d/%d)...",
                self.attempts,
                self._max_attempts,
            )
            try:
                await self._cluster.apply(manifest)
            except ApplyFailure as err:
                _LOGGER.debug("Ingress apply failed: %s", err)
                if self.attempts < self._max_attempts:
                    _LOGGER.warning(
                        "Ingress apply failed, retrying in %s seconds...",
                        self._backoff,
                    )
                    await self._sleep(self._backoff)
                    await self._run_repair()
                    continue
                break
            self.state = IngressState.SUCCEEDED
            _LOGGER.info("Ingress applied successfully")
            return self.state

        self.state = IngressState.EXHAUSTED
        _LOGGER.error(
            "Failed to apply ingress after %d attempts. %s",
            self.attempts,
            remediation,
        )
        return self.state


class Reconciler:
    """Deploys an environment to the cluster."""

    def __init__(
        self,
        cluster: ClusterControl,
        addons: AddonControl,
        options: ReconcileOptions,
        sleep: Sleep = asyncio.sleep,
        repair: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize Reconciler.

        The sleep function is used for every fixed delay so that tests may
        replace it. The repair action defaults to IngressControllerRepair.
        """
        self._cluster = cluster
        self._addons = addons
        self._options = options
        self._sleep = sleep
        if repair is None:
            repair = IngressControllerRepair(
                cluster, addons, options.ingress_controller_timeout
            ).run
        self._repair = repair

    async def _delete(self, resource: NamedResource) -> None:
        try:
            await self._cluster.delete(resource)
        except CommandException as err:
            _LOGGER.warning("Failed to delete %s: %s", resource, err)

    async def _apply_workload(self, manifest: Path) -> bool:
        try:
            await self._cluster.apply(manifest)
        except ApplyFailure as err:
            _LOGGER.error("Failed to apply %s: %s", manifest, err)
            return False
        return True

    async def _update_workload(self, manifest: Path) -> bool:
        resources = self._options.resources
        _LOGGER.info("Attempting to update existing resources...")
        await self._delete(resources.ingress)
        await self._sleep(self._options.update_quiescence)
        try:
            await self._cluster.apply(manifest)
        except ApplyFailure as err:
            _LOGGER.warning(
                "Update failed, falling back to delete-and-apply: %s", err
            )
        else:
            _LOGGER.info("Resources updated successfully")
            return True
        await self._delete(resources.service)
        return await self._apply_workload(manifest)

    async def _recreate_workload(self, manifest: Path) -> bool:
        _LOGGER.info("Force recreate enabled - deleting existing Keycloak resources...")
        for resource in self._options.resources.recreate_set:
            await self._delete(resource)
        await self._sleep(self._options.force_quiescence)
        _LOGGER.info("Applying fresh Keycloak configuration...")
        return await self._apply_workload(manifest)

    async def apply_resources(
        self,
        target: DeploymentTarget,
        ingress_manifest: Path,
        outcome: ReconciliationOutcome,
    ) -> None:
        """Apply the workload and ingress manifests, updating the outcome."""
        resources = self._options.resources
        _LOGGER.info("Checking for existing Keycloak service...")
        if await self._cluster.get(resources.service) is None:
            _LOGGER.info(
                "No existing Keycloak service found, applying configuration..."
            )
            outcome.workload = WorkloadAction.APPLIED
            outcome.workload_applied = await self._apply_workload(target.workload)
        elif self._options.force:
            _LOGGER.warning("Keycloak service already exists")
            outcome.workload = WorkloadAction.RECREATED
            outcome.workload_applied = await self._recreate_workload(target.workload)
        else:
            _LOGGER.warning("Keycloak service already exists")
            outcome.workload = WorkloadAction.UPDATED
            outcome.workload_applied = await self._update_workload(target.workload)

        ingress = IngressApply(
            self._cluster,
            self._repair,
            self._options.max_ingress_attempts,
            self._options.ingress_backoff,
            sleep=self._sleep,
        )
        outcome.ingress = await ingress.run(
            ingress_manifest,
            remediation=(
                f"Apply {target.ingress} manually with {outcome.host} "
                "substituted for the host placeholder"
            ),
        )
        outcome.ingress_attempts = ingress.attempts

    async def _wait(
        self,
        description: str,
        target: str,
        condition: str,
        timeout: float,
        selector: str | None = None,
    ) -> bool:
        _LOGGER.info("Waiting for %s to be ready...", description)
        try:
            await self._cluster.wait(target, condition, timeout, selector=selector)
        except ReadinessTimeout as err:
            _LOGGER.debug("Readiness wait failed: %s", err)
            _LOGGER.warning(
                "Timeout waiting for %s to be ready, continuing anyway...", description
            )
            return False
        _LOGGER.info("%s is ready", description)
        return True

    async def wait_for_readiness(self, outcome: ReconciliationOutcome) -> None:
        """Wait for the database and the Keycloak pods, updating the outcome."""
        resources = self._options.resources
        outcome.database_ready = await self._wait(
            "PostgreSQL",
            str(resources.database),
            "available",
            self._options.database_timeout,
        )
        outcome.workload_ready = await self._wait(
            "Keycloak pods",
            "pod",
            "ready",
            self._options.workload_timeout,
            selector=resources.pod_selector,
        )

    async def _enable_ingress_addon(self) -> None:
        _LOGGER.info("Enabling Ingress addon for Minikube...")
        try:
            await self._addons.enable(INGRESS_ADDON)
        except CommandException as err:
            _LOGGER.warning("Failed to enable the ingress addon: %s", err)

    async def deploy(self, target: DeploymentTarget) -> ReconciliationOutcome:
        """Run a full reconciliation pass for the target."""
        _LOGGER.info("Starting deployment for %s environment...", target.name)
        address = await self._cluster.address()
        outcome = ReconciliationOutcome(
            environment=target.name, host=self._options.host(address)
        )
        async with resolved_ingress(target.ingress, outcome.host) as ingress_manifest:
            await self.apply_resources(target, ingress_manifest, outcome)
        await self.wait_for_readiness(outcome)
        await self._enable_ingress_addon()
        return outcome
