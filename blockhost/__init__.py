"""Blockhost - provision game-server instances on any cloud.

Example:

    from blockhost import Hetzner, ResourceDescriptor, create_provider

    descriptor = ResourceDescriptor(name="mc1", region="fsn1", size="cpx11", volume_size=10)

    async with await create_provider(Hetzner()) as provider:
        server = await provider.create_server(descriptor)
        await provider.upload_plugin(server.id, descriptor, "plugins/foo.jar", "/minecraft/plugins")
        await provider.delete_server(server.id, descriptor)
"""

from blockhost.api import (
    ProvisioningState,
    ResourceDescriptor,
    ResourceResult,
    Role,
    ServerProvider,
)
from blockhost.bootstrap import ScriptTemplate, TemplateArgs, TemplateRenderer, TemplateVariant
from blockhost.config import load_config, load_settings, resolve_provider
from blockhost.core.exceptions import (
    BlockhostError,
    ConfigurationError,
    KeyMaterialError,
    NotFound,
    ProviderAPIError,
    ProvisioningTimeout,
    RemoteExecutionError,
    RollbackError,
    TeardownOrderingError,
)
from blockhost.logging import LogConfig, logging_enabled, setup_logging, teardown_logging
from blockhost.operator import PostProvisionOperator
from blockhost.orchestrator import Orchestrator, OrchestratorSettings
from blockhost.providers.hetzner import Hetzner
from blockhost.providers.registry import create_provider
from blockhost.providers.vultr import Vultr

__all__ = [
    "BlockhostError",
    "ConfigurationError",
    "Hetzner",
    "KeyMaterialError",
    "LogConfig",
    "NotFound",
    "Orchestrator",
    "OrchestratorSettings",
    "PostProvisionOperator",
    "ProviderAPIError",
    "ProvisioningState",
    "ProvisioningTimeout",
    "RemoteExecutionError",
    "ResourceDescriptor",
    "ResourceResult",
    "Role",
    "RollbackError",
    "ScriptTemplate",
    "ServerProvider",
    "TeardownOrderingError",
    "TemplateArgs",
    "TemplateRenderer",
    "TemplateVariant",
    "Vultr",
    "create_provider",
    "load_config",
    "load_settings",
    "logging_enabled",
    "resolve_provider",
    "setup_logging",
    "teardown_logging",
]
