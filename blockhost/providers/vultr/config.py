"""Vultr provider configuration.

Immutable configuration dataclass for Vultr provider.
"""

from __future__ import annotations

import os
import typing
from dataclasses import dataclass

from blockhost.core.exceptions import ConfigurationError

if typing.TYPE_CHECKING:
    from blockhost.bootstrap import TemplateRenderer
    from blockhost.orchestrator import Orchestrator, OrchestratorSettings

VULTR_API_BASE = "https://api.vultr.com/v2"
TOKEN_ENV = "VULTR_API_KEY"
UBUNTU_2204_OS_ID = 1743


@dataclass(frozen=True, slots=True)
class Vultr:
    """Vultr provider configuration.

    Vultr has no block volumes in this integration; a descriptor asking
    for one is rejected before anything is created.

    Args:
        api_key: API key. Falls back to VULTR_API_KEY env var.
        os_id: Operating system catalog id. Default: 1743 (Ubuntu 22.04 x64).
        request_timeout: Per-request HTTP timeout in seconds. Default: 30.
        api_url: API base URL, overridable for tests.
    """

    api_key: str | None = None
    os_id: int = UBUNTU_2204_OS_ID
    request_timeout: int = 30
    api_url: str = VULTR_API_BASE

    @property
    def type(self) -> str: return "vultr"

    def resolve_token(self) -> str:
        token = self.api_key or os.environ.get(TOKEN_ENV)
        if not token:
            raise ConfigurationError(f"Vultr API key not set. Pass api_key= or export {TOKEN_ENV}")
        return token

    async def create_provider(
        self,
        *,
        settings: OrchestratorSettings | None = None,
        template: TemplateRenderer | None = None,
    ) -> Orchestrator:
        from blockhost.orchestrator import Orchestrator

        from .adapter import VultrAdapter
        return Orchestrator(VultrAdapter(self), settings=settings, template=template)
