"""Final report printed after a deployment."""

from .config import ReconcileOptions
from .reconciler import IngressState, ReconciliationOutcome

__all__ = [
    "keycloak_url",
    "render_report",
]

BANNER = "*" * 70


def keycloak_url(host: str) -> str:
    """Return the base URL that Keycloak is served on."""
    return f"https://{host}"


def render_report(outcome: ReconciliationOutcome, options: ReconcileOptions) -> str:
    """Return the summary of the deployment for the operator."""
    url = keycloak_url(outcome.host)
    lines = [
        "",
        BANNER,
        f"KEYCLOAK DEPLOYMENT SUCCESSFUL - {outcome.environment} ENVIRONMENT",
        BANNER,
        f"Keycloak:                 {url}",
        f"Keycloak Admin Console:   {url}/admin",
        f"Keycloak Account Console: {url}/realms/{options.realm}/account",
        "",
        "Default Admin Credentials:",
        f"Username: {options.admin_username}",
        f"Password: {options.admin_password}",
        "",
    ]
    warnings = []
    if not outcome.workload_applied:
        warnings.append("Keycloak workload manifest was not applied")
    if outcome.ingress != IngressState.SUCCEEDED:
        warnings.append(
            f"Ingress was not applied after {outcome.ingress_attempts} attempts, "
            "apply it manually"
        )
    if not outcome.database_ready:
        warnings.append("PostgreSQL did not report ready")
    if not outcome.workload_ready:
        warnings.append("Keycloak pods did not report ready")
    if warnings:
        lines.append("Warnings:")
        lines.extend(f"  - {warning}" for warning in warnings)
        lines.append("")
    lines.append(BANNER)
    return "\n".join(lines)
