"""Tests for the keycloak-local command line tool."""

import functools
from pathlib import Path

import pytest
from syrupy.assertion import SnapshotAssertion

from keycloak_local.cluster import AddonControl, ClusterControl
from keycloak_local.config import KeycloakResources
from keycloak_local.reconciler import Reconciler
from keycloak_local.tool import deploy

from conftest import FakeAddons, FakeCluster, RecordingSleep

from . import run_main


class Controls:
    """Replacement for deploy.build_controls that returns fakes."""

    def __init__(self) -> None:
        self.cluster = FakeCluster()
        self.addons = FakeAddons()
        self.calls: list[dict[str, str | None]] = []

    def __call__(
        self,
        kube_context: str | None = None,
        minikube_profile: str | None = None,
    ) -> tuple[ClusterControl, AddonControl]:
        self.calls.append(
            {"kube_context": kube_context, "minikube_profile": minikube_profile}
        )
        return self.cluster, self.addons


@pytest.fixture(name="controls")
def controls_fixture(monkeypatch: pytest.MonkeyPatch) -> Controls:
    """Fixture that replaces the kubectl and minikube controls with fakes."""
    controls = Controls()
    monkeypatch.setattr(deploy, "build_controls", controls)
    return controls


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch: pytest.MonkeyPatch, sleep: RecordingSleep) -> None:
    """Fixture that skips the fixed delays of the reconciler."""
    monkeypatch.setattr(
        deploy, "Reconciler", functools.partial(Reconciler, sleep=sleep)
    )


def test_deploy_homolog(
    controls: Controls,
    manifest_dir: Path,
    capsys: pytest.CaptureFixture[str],
    snapshot: SnapshotAssertion,
) -> None:
    """Test a deployment with nothing in the cluster."""
    code = run_main(["--env", "homolog", "--path", str(manifest_dir)])
    assert code == 0

    assert capsys.readouterr().out.rstrip("\n") == snapshot

    assert controls.calls == [{"kube_context": None, "minikube_profile": None}]
    assert controls.cluster.names("apply") == [
        ("apply", "keycloak.yaml"),
        ("apply", "ingress"),
    ]
    assert controls.cluster.names("delete") == []


def test_deploy_force(controls: Controls, manifest_dir: Path) -> None:
    """Test the force flag recreates existing resources."""
    controls.cluster.existing.add(KeycloakResources().service)
    code = run_main(
        [
            "--env",
            "production",
            "--force",
            "--path",
            str(manifest_dir),
            "--kube-context",
            "minikube",
            "--minikube-profile",
            "keycloak",
        ]
    )
    assert code == 0
    assert len(controls.cluster.names("delete")) == 6
    assert controls.calls == [
        {"kube_context": "minikube", "minikube_profile": "keycloak"}
    ]


def test_deploy_ingress_exhausted(
    controls: Controls,
    manifest_dir: Path,
    capsys: pytest.CaptureFixture[str],
    sleep: RecordingSleep,
) -> None:
    """Test the exit code is zero when the ingress could not be applied."""
    controls.cluster.ingress_failures = 3
    code = run_main(["--env", "homolog", "--path", str(manifest_dir)])
    assert code == 0
    assert len(controls.cluster.names("apply")) == 4
    out = capsys.readouterr().out
    assert "Ingress was not applied after 3 attempts" in out
    assert sleep.delays == [10, 10]


def test_unknown_environment(
    controls: Controls, manifest_dir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test an environment that is not configured."""
    code = run_main(["--env", "staging", "--path", str(manifest_dir)])
    assert code == 1
    assert "Invalid environment 'staging'" in capsys.readouterr().err
    assert controls.calls == []
    assert controls.cluster.calls == []


def test_missing_manifest(
    controls: Controls, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test an environment whose manifest does not exist."""
    code = run_main(["--env", "homolog", "--path", str(tmp_path)])
    assert code == 1
    assert "not found" in capsys.readouterr().err
    assert controls.calls == []


def test_missing_env(controls: Controls, capsys: pytest.CaptureFixture[str]) -> None:
    """Test the environment flag is required."""
    code = run_main([])
    assert code != 0
    assert "--env" in capsys.readouterr().err
    assert controls.calls == []


def test_unknown_flag(controls: Controls, capsys: pytest.CaptureFixture[str]) -> None:
    """Test unknown flags are rejected with a usage message."""
    code = run_main(["--env", "homolog", "--recreate"])
    assert code != 0
    assert "usage:" in capsys.readouterr().err
    assert controls.calls == []


def test_config_file(controls: Controls, manifest_dir: Path) -> None:
    """Test environments loaded from a config file."""
    config_file = manifest_dir / "environments.yaml"
    config_file.write_text(
        """\
environments:
- name: staging
  workload: keycloak/homolog/keycloak.yaml
  ingress: keycloak/homolog/keycloak-ingress_template.yaml
"""
    )
    code = run_main(["--env", "staging", "--config", str(config_file)])
    assert code == 0
    assert len(controls.cluster.names("apply")) == 2
