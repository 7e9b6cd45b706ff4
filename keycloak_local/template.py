"""Library for rendering the ingress manifest template.

The ingress template names its host with a placeholder token that is only
known once the cluster is running. The rendered manifest lives in a temporary
file for the duration of a reconciliation pass:
```python
from keycloak_local import template

async with template.resolved_ingress(path, "keycloak.192.168.49.2.nip.io") as rendered:
    await cluster.apply(rendered)
```
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
import logging
from pathlib import Path
import tempfile

import aiofiles

from .command import format_path
from .config import HOST_PLACEHOLDER
from .exceptions import ManifestNotFound

__all__ = [
    "render_ingress",
    "resolved_ingress",
]

_LOGGER = logging.getLogger(__name__)


def render_ingress(content: str, host: str, placeholder: str = HOST_PLACEHOLDER) -> str:
    """Replace every occurrence of the placeholder with the host."""
    return content.replace(placeholder, host)


@asynccontextmanager
async def resolved_ingress(
    template_path: Path, host: str, placeholder: str = HOST_PLACEHOLDER
) -> AsyncGenerator[Path, None]:
    """Context manager for a rendered copy of the ingress template.

    Each call writes to its own uniquely named temporary file, which is
    removed when the context exits whether or not an error was raised.
    """
    try:
        async with aiofiles.open(template_path) as template_file:
            content = await template_file.read()
    except FileNotFoundError as err:
        raise ManifestNotFound(
            f"Ingress template '{template_path}' not found"
        ) from err

    with tempfile.NamedTemporaryFile(
        mode="w+",
        prefix="keycloak-ingress-",
        suffix=".yaml",
    ) as temp_file:
        rendered_path = Path(temp_file.name)
        async with aiofiles.open(rendered_path, "w") as rendered_file:
            await rendered_file.write(render_ingress(content, host, placeholder))
        _LOGGER.debug(
            "Rendered %s for host %s to %s",
            format_path(template_path),
            host,
            rendered_path,
        )
        yield rendered_path
