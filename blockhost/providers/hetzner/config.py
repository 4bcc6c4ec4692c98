"""Hetzner Cloud provider configuration.

Immutable configuration dataclass for Hetzner Cloud provider.
"""

from __future__ import annotations

import os
import typing
from dataclasses import dataclass

from blockhost.core.exceptions import ConfigurationError

if typing.TYPE_CHECKING:
    from blockhost.bootstrap import TemplateRenderer
    from blockhost.orchestrator import Orchestrator, OrchestratorSettings

HCLOUD_API_BASE = "https://api.hetzner.cloud/v1"
TOKEN_ENV = "HCLOUD_TOKEN"


@dataclass(frozen=True, slots=True)
class Hetzner:
    """Hetzner Cloud provider configuration.

    Example:
        >>> from blockhost.providers.hetzner import Hetzner
        >>> provider = await Hetzner().create_provider()

    Args:
        token: API token. Falls back to HCLOUD_TOKEN env var.
        image: OS image name looked up in the image catalog. Default: ubuntu-22.04.
        request_timeout: Per-request HTTP timeout in seconds. Default: 30.
        api_url: API base URL, overridable for tests.
    """

    token: str | None = None
    image: str = "ubuntu-22.04"
    request_timeout: int = 30
    api_url: str = HCLOUD_API_BASE

    @property
    def type(self) -> str: return "hetzner"

    def resolve_token(self) -> str:
        token = self.token or os.environ.get(TOKEN_ENV)
        if not token:
            raise ConfigurationError(f"Hetzner API token not set. Pass token= or export {TOKEN_ENV}")
        return token

    async def create_provider(
        self,
        *,
        settings: OrchestratorSettings | None = None,
        template: TemplateRenderer | None = None,
    ) -> Orchestrator:
        from blockhost.orchestrator import Orchestrator

        from .adapter import HetznerAdapter
        return Orchestrator(HetznerAdapter(self), settings=settings, template=template)
