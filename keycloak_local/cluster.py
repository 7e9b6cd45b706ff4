"""Interfaces for the cluster and add-on control planes.

The reconciler only depends on these interfaces. `keycloak_local.kubectl` and
`keycloak_local.minikube` implement them by shelling out to the command line
tools.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

__all__ = [
    "NamedResource",
    "ClusterControl",
    "AddonControl",
]


@dataclass(frozen=True, order=True)
class NamedResource:
    """Identifier for a kubernetes resource."""

    kind: str
    name: str
    namespace: str | None = None

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the kind and namespaced name concatenated as an id."""
        return f"{self.kind}/{self.namespaced_name}"


class ClusterControl(ABC):
    """Operations issued against the cluster API server."""

    @abstractmethod
    async def apply(self, manifest: Path) -> None:
        """Apply the manifest, raising ApplyFailure on error."""

    @abstractmethod
    async def delete(
        self, resource: NamedResource, ignore_missing: bool = True
    ) -> None:
        """Delete the resource."""

    @abstractmethod
    async def get(self, resource: NamedResource) -> dict[str, Any] | None:
        """Return the resource object, or None if it could not be read."""

    @abstractmethod
    async def wait(
        self,
        target: str,
        condition: str,
        timeout: float,
        selector: str | None = None,
        namespace: str | None = None,
    ) -> None:
        """Block until the condition is met, raising ReadinessTimeout otherwise.

        The target is either a resource reference like `deployment/postgres` or
        a kind like `pod` combined with a label selector.
        """

    @abstractmethod
    async def pod_phases(
        self, selector: str, namespace: str | None = None
    ) -> list[str]:
        """Return the status phase of each pod matching the label selector."""

    @abstractmethod
    async def address(self) -> str:
        """Return the externally reachable IP address of the cluster."""


class AddonControl(ABC):
    """Operations that toggle optional cluster add-ons."""

    @abstractmethod
    async def is_enabled(self, addon: str) -> bool:
        """Return True if the named add-on is enabled."""

    @abstractmethod
    async def enable(self, addon: str) -> None:
        """Enable the named add-on."""

    @abstractmethod
    async def disable(self, addon: str) -> None:
        """Disable the named add-on."""
