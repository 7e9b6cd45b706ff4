"""Repair action for the minikube ingress controller.

An ingress apply is rejected when the ingress-nginx admission webhook is
registered but its controller is not serving. The repair action makes a best
effort to bring the controller back, and as a last resort removes the webhook
configuration so that later applies are not blocked by it. Once removed, the
webhook is not re-created until the add-on is enabled again from scratch.
"""

from dataclasses import dataclass
import logging

from .cluster import AddonControl, ClusterControl, NamedResource
from .exceptions import CommandException, ReadinessTimeout, RepairActionFailure

__all__ = [
    "IngressControllerRepair",
    "IngressController",
]

_LOGGER = logging.getLogger(__name__)

RUNNING = "Running"


@dataclass(frozen=True)
class IngressController:
    """Names of the resources installed by the minikube ingress add-on."""

    addon: str = "ingress"
    namespace: str = "ingress-nginx"
    selector: str = "app.kubernetes.io/component=controller"
    webhook: NamedResource = NamedResource(
        "validatingwebhookconfiguration", "ingress-nginx-admission"
    )
    admission_service: NamedResource = NamedResource(
        "service", "ingress-nginx-controller-admission", "ingress-nginx"
    )


class IngressControllerRepair:
    """Best effort self healing for the ingress controller."""

    def __init__(
        self,
        cluster: ClusterControl,
        addons: AddonControl,
        timeout: float,
        controller: IngressController | None = None,
    ) -> None:
        """Initialize IngressControllerRepair."""
        self._cluster = cluster
        self._addons = addons
        self._timeout = timeout
        self._controller = controller or IngressController()

    async def _wait_for_controller(self) -> None:
        _LOGGER.info("Waiting for the ingress controller to be ready...")
        try:
            await self._cluster.wait(
                "pod",
                "ready",
                self._timeout,
                selector=self._controller.selector,
                namespace=self._controller.namespace,
            )
        except ReadinessTimeout:
            _LOGGER.warning("Timeout waiting for the ingress controller to be ready")
        else:
            _LOGGER.info("Ingress controller is ready")

    async def _controller_running(self) -> bool:
        phases = await self._cluster.pod_phases(
            self._controller.selector, namespace=self._controller.namespace
        )
        return bool(phases) and all(phase == RUNNING for phase in phases)

    async def _repair(self) -> None:
        addon = self._controller.addon
        if not await self._addons.is_enabled(addon):
            _LOGGER.warning("Ingress addon is not enabled, enabling it...")
            await self._addons.enable(addon)
            await self._wait_for_controller()

        if await self._cluster.get(self._controller.webhook) is None:
            _LOGGER.info("No ingress admission webhook registered")
            return

        if not await self._controller_running():
            _LOGGER.warning(
                "Ingress controller pods are not running, restarting addon..."
            )
            await self._addons.disable(addon)
            await self._addons.enable(addon)
            await self._wait_for_controller()

        if await self._cluster.get(self._controller.admission_service) is None:
            _LOGGER.error(
                "Admission service %s is missing, deleting webhook %s",
                self._controller.admission_service,
                self._controller.webhook,
            )
            await self._cluster.delete(self._controller.webhook)

    async def run(self) -> None:
        """Run the repair action, raising RepairActionFailure if it fails."""
        _LOGGER.info("Checking ingress controller health...")
        try:
            await self._repair()
        except CommandException as err:
            raise RepairActionFailure(
                f"Ingress controller repair failed: {err}"
            ) from err
