"""Configuration for a keycloak-local deployment.

An environment name selects a `DeploymentTarget`, the pair of manifests
applied to the cluster:
```python
from keycloak_local import config

registry = config.EnvironmentRegistry.default()
target = registry.resolve("homolog", base_dir=Path("."))
print(target.workload, target.ingress)
```

The registry may also be loaded from a YAML file:
```yaml
environments:
- name: homolog
  workload: keycloak/homolog/keycloak.yaml
  ingress: keycloak/homolog/keycloak-ingress_template.yaml
```
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path

from mashumaro import DataClassDictMixin
from mashumaro.codecs.yaml import yaml_decode
from mashumaro.config import BaseConfig
from mashumaro.exceptions import InvalidFieldValue, MissingField
import yaml

from .cluster import NamedResource
from .exceptions import InputException, ManifestNotFound, UnknownEnvironment

__all__ = [
    "DeploymentTarget",
    "EnvironmentRegistry",
    "KeycloakResources",
    "ReconcileOptions",
]

_LOGGER = logging.getLogger(__name__)

HOMOLOG = "homolog"
PRODUCTION = "production"

HOST_PLACEHOLDER = "KEYCLOAK_HOST"
HOST_PREFIX = "keycloak"
WILDCARD_DOMAIN = "nip.io"
DEFAULT_REALM = "myrealm"


@dataclass(frozen=True)
class DeploymentTarget(DataClassDictMixin):
    """The manifests applied for a named environment."""

    name: str
    """The environment name, e.g. homolog."""

    workload: Path
    """Manifest with the Keycloak and Postgres workloads and services."""

    ingress: Path
    """Ingress manifest template containing the host placeholder."""

    def relative_to(self, base_dir: Path) -> "DeploymentTarget":
        """Return a copy with relative manifest paths anchored at base_dir."""
        return DeploymentTarget(
            name=self.name,
            workload=base_dir / self.workload,
            ingress=base_dir / self.ingress,
        )


_DEFAULT_TARGETS = [
    DeploymentTarget(
        name=HOMOLOG,
        workload=Path("keycloak/homolog/keycloak.yaml"),
        ingress=Path("keycloak/homolog/keycloak-ingress_template.yaml"),
    ),
    DeploymentTarget(
        name=PRODUCTION,
        workload=Path("keycloak/production/keycloak.yaml"),
        ingress=Path("keycloak/production/keycloak-ingress.yaml"),
    ),
]


@dataclass
class EnvironmentRegistry(DataClassDictMixin):
    """The set of environments that may be deployed."""

    environments: list[DeploymentTarget] = field(default_factory=list)

    class Config(BaseConfig):
        omit_none = True

    @classmethod
    def default(cls) -> "EnvironmentRegistry":
        """Return the built in homolog and production environments."""
        return cls(environments=list(_DEFAULT_TARGETS))

    @classmethod
    def parse_yaml(cls, content: str) -> "EnvironmentRegistry":
        """Parse a serialized environment registry."""
        try:
            registry = yaml_decode(content, cls)
        except (
            yaml.YAMLError,
            MissingField,
            InvalidFieldValue,
            TypeError,
            ValueError,
        ) as err:
            raise InputException(f"Unable to parse environment config: {err}") from err
        names = [target.name for target in registry.environments]
        if len(names) != len(set(names)):
            raise InputException(f"Duplicate environment names in config: {names}")
        return registry

    @classmethod
    def load(cls, path: Path) -> "EnvironmentRegistry":
        """Read an environment registry file.

        Relative manifest paths are anchored at the directory of the file.
        """
        if not path.is_file():
            raise InputException(f"Environment config file '{path}' not found")
        registry = cls.parse_yaml(path.read_text())
        return cls(
            environments=[
                target.relative_to(path.parent) for target in registry.environments
            ]
        )

    @property
    def names(self) -> list[str]:
        """Return the configured environment names."""
        return [target.name for target in self.environments]

    def resolve(self, name: str, base_dir: Path | None = None) -> DeploymentTarget:
        """Return the deployment target for the environment name.

        The workload manifest must exist; the ingress template is read later
        when the manifest is rendered.
        """
        target = next((t for t in self.environments if t.name == name), None)
        if target is None:
            raise UnknownEnvironment(name, self.names)
        if base_dir is not None:
            target = target.relative_to(base_dir)
        if not target.workload.is_file():
            raise ManifestNotFound(f"Configuration file '{target.workload}' not found")
        _LOGGER.debug(
            "Resolved environment %s to %s, %s", name, target.workload, target.ingress
        )
        return target


@dataclass(frozen=True)
class KeycloakResources:
    """Names of the cluster resources created by the workload manifests."""

    service: NamedResource = NamedResource("service", "keycloak")
    discovery_service: NamedResource = NamedResource("service", "keycloak-discovery")
    statefulset: NamedResource = NamedResource("statefulset", "keycloak")
    database: NamedResource = NamedResource("deployment", "postgres")
    database_service: NamedResource = NamedResource("service", "postgres")
    ingress: NamedResource = NamedResource("ingress", "keycloak")
    pod_selector: str = "app=keycloak"

    @property
    def recreate_set(self) -> list[NamedResource]:
        """Resources removed before a forced recreate, in deletion order."""
        return [
            self.service,
            self.discovery_service,
            self.statefulset,
            self.database,
            self.database_service,
            self.ingress,
        ]


@dataclass(frozen=True)
class ReconcileOptions:
    """Options for a single reconciliation pass.

    Durations are in seconds.
    """

    force: bool = False
    """Delete and recreate existing resources instead of updating them."""

    max_ingress_attempts: int = 3
    ingress_backoff: float = 10.0
    force_quiescence: float = 5.0
    update_quiescence: float = 2.0

    database_timeout: float = 120.0
    workload_timeout: float = 300.0
    ingress_controller_timeout: float = 300.0

    host_prefix: str = HOST_PREFIX
    wildcard_domain: str = WILDCARD_DOMAIN
    realm: str = DEFAULT_REALM
    admin_username: str = "admin"
    admin_password: str = "admin"

    resources: KeycloakResources = field(default_factory=KeycloakResources)

    def host(self, address: str) -> str:
        """Return the ingress host name for the cluster address."""
        return f"{self.host_prefix}.{address}.{self.wildcard_domain}"
