"""Fixtures for keycloak-local tests.

The fakes record every call made against the cluster so tests can assert on
the order of operations without a running cluster.
"""

from collections.abc import Generator
import logging
from pathlib import Path
from typing import Any

import pytest

from keycloak_local import command
from keycloak_local.cluster import AddonControl, ClusterControl, NamedResource
from keycloak_local.command import Command
from keycloak_local.config import DeploymentTarget
from keycloak_local.exceptions import ApplyFailure, ReadinessTimeout

_LOGGER = logging.getLogger(__name__)

ADDRESS = "192.168.49.2"
HOST = f"keycloak.{ADDRESS}.nip.io"

INGRESS_TEMPLATE = """\
apiVersion: networking.k8s.io/v1
kind: Ingress
metadata:
  name: keycloak
spec:
  tls:
    - hosts:
        - KEYCLOAK_HOST
  rules:
    - host: KEYCLOAK_HOST
"""

WORKLOAD = """\
apiVersion: v1
kind: Service
metadata:
  name: keycloak
"""


def is_rendered_ingress(manifest: Path) -> bool:
    """Return True for the temporary file written by the template resolver."""
    return manifest.name.startswith("keycloak-ingress-")


class FakeCluster(ClusterControl):
    """ClusterControl that records calls and returns canned results."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.existing: set[NamedResource] = set()
        self.workload_failures = 0
        self.ingress_failures = 0
        self.wait_timeouts: set[str] = set()
        self.phases: list[str] = ["Running"]
        self.rendered: list[tuple[Path, str]] = []

    async def apply(self, manifest: Path) -> None:
        if is_rendered_ingress(manifest):
            self.calls.append(("apply", "ingress"))
            self.rendered.append((manifest, manifest.read_text()))
            if self.ingress_failures:
                self.ingress_failures -= 1
                raise ApplyFailure(f"Command 'kubectl apply -f {manifest}' failed")
            return
        self.calls.append(("apply", manifest.name))
        if self.workload_failures:
            self.workload_failures -= 1
            raise ApplyFailure(f"Command 'kubectl apply -f {manifest}' failed")

    async def delete(
        self, resource: NamedResource, ignore_missing: bool = True
    ) -> None:
        self.calls.append(("delete", str(resource)))
        self.existing.discard(resource)

    async def get(self, resource: NamedResource) -> dict[str, Any] | None:
        self.calls.append(("get", str(resource)))
        if resource in self.existing:
            return {"kind": resource.kind, "metadata": {"name": resource.name}}
        return None

    async def wait(
        self,
        target: str,
        condition: str,
        timeout: float,
        selector: str | None = None,
        namespace: str | None = None,
    ) -> None:
        self.calls.append(("wait", target, condition, timeout, selector, namespace))
        if target in self.wait_timeouts or selector in self.wait_timeouts:
            raise ReadinessTimeout(f"timed out waiting for {target}")

    async def pod_phases(
        self, selector: str, namespace: str | None = None
    ) -> list[str]:
        self.calls.append(("pod_phases", selector, namespace))
        return list(self.phases)

    async def address(self) -> str:
        self.calls.append(("address",))
        return ADDRESS

    def names(self, name: str) -> list[tuple[Any, ...]]:
        """Return the recorded calls of a single method."""
        return [call for call in self.calls if call[0] == name]


class FakeAddons(AddonControl):
    """AddonControl backed by an in memory set of enabled add-ons."""

    def __init__(self, enabled: set[str] | None = None) -> None:
        self.enabled = enabled if enabled is not None else {"ingress"}
        self.calls: list[tuple[str, str]] = []

    async def is_enabled(self, addon: str) -> bool:
        self.calls.append(("is_enabled", addon))
        return addon in self.enabled

    async def enable(self, addon: str) -> None:
        self.calls.append(("enable", addon))
        self.enabled.add(addon)

    async def disable(self, addon: str) -> None:
        self.calls.append(("disable", addon))
        self.enabled.discard(addon)


class FakeRunner:
    """Replacement for command.run that records commands."""

    def __init__(self) -> None:
        self.commands: list[Command] = []
        self.outputs: list[str] = []
        self.fail = False

    async def __call__(self, cmd: Command) -> str:
        self.commands.append(cmd)
        if self.fail:
            raise cmd.exc(f"Command '{cmd}' failed with return code 1")
        return self.outputs.pop(0) if self.outputs else ""


class RecordingSleep:
    """Sleep replacement that records the requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture(name="cluster")
def cluster_fixture() -> FakeCluster:
    """Fixture for a fake cluster with no resources."""
    return FakeCluster()


@pytest.fixture(name="addons")
def addons_fixture() -> FakeAddons:
    """Fixture for fake add-ons with ingress enabled."""
    return FakeAddons()


@pytest.fixture(name="sleep")
def sleep_fixture() -> RecordingSleep:
    """Fixture for a sleep function that returns immediately."""
    return RecordingSleep()


@pytest.fixture(name="runner")
def runner_fixture(monkeypatch: pytest.MonkeyPatch) -> FakeRunner:
    """Fixture that captures commands instead of running them."""
    runner = FakeRunner()
    monkeypatch.setattr(command, "run", runner)
    return runner


@pytest.fixture(name="manifest_dir")
def manifest_dir_fixture(tmp_path: Path) -> Path:
    """Fixture for a directory with homolog and production manifests."""
    for env, ingress in (
        ("homolog", "keycloak-ingress_template.yaml"),
        ("production", "keycloak-ingress.yaml"),
    ):
        env_dir = tmp_path / "keycloak" / env
        env_dir.mkdir(parents=True)
        (env_dir / "keycloak.yaml").write_text(WORKLOAD)
        (env_dir / ingress).write_text(INGRESS_TEMPLATE)
    return tmp_path


@pytest.fixture(name="target")
def target_fixture(manifest_dir: Path) -> DeploymentTarget:
    """Fixture for the homolog deployment target."""
    return DeploymentTarget(
        name="homolog",
        workload=manifest_dir / "keycloak/homolog/keycloak.yaml",
        ingress=manifest_dir / "keycloak/homolog/keycloak-ingress_template.yaml",
    )


@pytest.fixture(autouse=True)
def debug_logging() -> Generator[None, None, None]:
    """Log everything while tests run so caplog can assert on it."""
    logging.getLogger("keycloak_local").setLevel(logging.DEBUG)
    yield
    logging.getLogger("keycloak_local").setLevel(logging.NOTSET)
