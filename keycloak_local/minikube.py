"""Library for issuing minikube commands.

Minikube owns the cluster VM, so it is the source of the cluster address and
the switch for optional add-ons such as the ingress controller.
"""

import json
import logging

from . import command
from .cluster import AddonControl
from .command import Command
from .exceptions import MinikubeException

__all__ = [
    "Minikube",
]

_LOGGER = logging.getLogger(__name__)

MINIKUBE_BIN = "minikube"

# Enabling an add-on pulls images and can take a while
_ADDON_TIMEOUT = 600.0


class Minikube(AddonControl):
    """An AddonControl that shells out to minikube."""

    def __init__(self, profile: str | None = None) -> None:
        """Initialize Minikube."""
        self._flags: list[str] = []
        if profile:
            self._flags.extend(["--profile", profile])

    def _command(
        self, args: list[str], timeout: float | None = command.DEFAULT_TIMEOUT
    ) -> Command:
        return Command(
            [MINIKUBE_BIN] + args + self._flags, exc=MinikubeException, timeout=timeout
        )

    async def ip(self) -> str:
        """Return the IP address of the minikube node."""
        out = (await command.run(self._command(["ip"]))).strip()
        if not out:
            raise MinikubeException("minikube ip returned an empty address")
        return out

    async def addons(self) -> dict[str, bool]:
        """Return the enabled state of every known add-on."""
        out = await command.run(self._command(["addons", "list", "-o", "json"]))
        try:
            doc = json.loads(out)
        except json.JSONDecodeError as err:
            raise MinikubeException(
                f"Unable to parse minikube addons output: {err}"
            ) from err
        if not isinstance(doc, dict):
            raise MinikubeException(
                f"Unable to parse minikube addons output: expected an object: {out}"
            )
        return {
            name: str(info.get("Status", "")).lower() == "enabled"
            for name, info in doc.items()
            if isinstance(info, dict)
        }

    async def is_enabled(self, addon: str) -> bool:
        """Return True if the named add-on is enabled."""
        return (await self.addons()).get(addon, False)

    async def enable(self, addon: str) -> None:
        """Enable the named add-on."""
        _LOGGER.debug("Enabling minikube addon %s", addon)
        await command.run(
            self._command(["addons", "enable", addon], timeout=_ADDON_TIMEOUT)
        )

    async def disable(self, addon: str) -> None:
        """Disable the named add-on."""
        _LOGGER.debug("Disabling minikube addon %s", addon)
        await command.run(
            self._command(["addons", "disable", addon], timeout=_ADDON_TIMEOUT)
        )
