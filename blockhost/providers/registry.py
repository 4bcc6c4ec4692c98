"""Provider registry.

Maps configuration objects and config-file type names onto providers.
Provider modules are imported lazily so only the selected backend loads.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from blockhost.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from blockhost.bootstrap import TemplateRenderer
    from blockhost.orchestrator import Orchestrator, OrchestratorSettings

    from .hetzner.config import Hetzner
    from .vultr.config import Vultr

    type ProviderConfig = Hetzner | Vultr

log = logger.bind(component="registry")


def provider_types() -> dict[str, type]:
    from .hetzner.config import Hetzner
    from .vultr.config import Vultr

    return {"hetzner": Hetzner, "vultr": Vultr}


async def create_provider(
    config: ProviderConfig,
    *,
    settings: OrchestratorSettings | None = None,
    template: TemplateRenderer | None = None,
) -> Orchestrator:
    """Create a ``ServerProvider`` for a configuration object.

    Raises:
        ConfigurationError: If no backend is registered for the config type.
    """
    from .hetzner.config import Hetzner
    from .vultr.config import Vultr

    log.debug("Creating provider for config={config_type}", config_type=type(config).__name__)

    match config:
        case Hetzner() | Vultr():
            return await config.create_provider(settings=settings, template=template)
        case _:
            raise ConfigurationError(
                f"No provider registered for {type(config).__name__}. "
                f"Available providers: {', '.join(provider_types())}"
            )
