"""Exceptions related to keycloak-local."""

__all__ = [
    "DeployException",
    "InputException",
    "UsageError",
    "UnknownEnvironment",
    "ManifestNotFound",
    "CommandException",
    "KubectlException",
    "MinikubeException",
    "ApplyFailure",
    "ReadinessTimeout",
    "RepairActionFailure",
]


class DeployException(Exception):
    """Generic base exception used for this library."""


class InputException(DeployException):
    """Raised when the input files or values are not formatted as expected."""


class UsageError(InputException):
    """Raised when the command line arguments are not valid."""


class UnknownEnvironment(UsageError):
    """Raised when an environment name is not in the configured set."""

    def __init__(self, name: str, choices: list[str]) -> None:
        super().__init__(
            f"Invalid environment '{name}'; "
            f"supported environments: {', '.join(choices)}"
        )
        self.name = name
        self.choices = choices


class ManifestNotFound(InputException):
    """Raised when a manifest for the selected environment does not exist."""


class CommandException(DeployException):
    """Raised when there is a failure running a subcommand."""


class KubectlException(CommandException):
    """Raised when there is a failure running a kubectl command."""


class ApplyFailure(KubectlException):
    """Raised when `kubectl apply` of a manifest fails."""


class ReadinessTimeout(KubectlException):
    """Raised when `kubectl wait` does not observe the condition in time."""


class MinikubeException(CommandException):
    """Raised when there is a failure running a minikube command."""


class RepairActionFailure(DeployException):
    """Raised when the ingress controller repair action could not complete."""
