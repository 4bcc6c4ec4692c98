"""TOML-based provider and orchestrator configuration.

Loads ~/.blockhost/defaults.toml (global) and blockhost.toml (project),
merges them, and resolves named providers into provider configs.

Example blockhost.toml:

    [providers.fsn]
    type = "hetzner"
    image = "ubuntu-22.04"

    [orchestrator]
    poll_interval = 2.0
    create_timeout = 600
"""

from __future__ import annotations

import dataclasses
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any

from blockhost.core.exceptions import ConfigurationError
from blockhost.orchestrator import OrchestratorSettings

if TYPE_CHECKING:
    from blockhost.providers.hetzner.config import Hetzner
    from blockhost.providers.vultr.config import Vultr

    type ProviderConfig = Hetzner | Vultr

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".blockhost" / "defaults.toml"
PROJECT_CONFIG_NAME = "blockhost.toml"


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    """Read and merge the global and project config files; project wins."""
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_cfg = _read_toml((project_dir or Path.cwd()) / PROJECT_CONFIG_NAME)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("providers", {})
    merged.setdefault("orchestrator", {})
    return merged


def _build_provider(name: str, raw: RawConfig) -> ProviderConfig:
    from blockhost.providers.registry import provider_types

    raw = dict(raw)
    provider_type = raw.pop("type", None)
    if provider_type is None:
        raise ConfigurationError(f"Provider '{name}' missing 'type' field")

    types = provider_types()
    cls = types.get(provider_type)
    if cls is None:
        raise ConfigurationError(f"Unknown provider type '{provider_type}'. Valid: {', '.join(types)}")
    try:
        return cls(**raw)
    except TypeError as e:
        raise ConfigurationError(f"Provider '{name}': {e}") from e


def resolve_provider(
    name: str,
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> ProviderConfig:
    """Build the provider config registered under ``[providers.<name>]``."""
    providers = load_config(project_dir=project_dir, global_path=global_path)["providers"]
    if name not in providers:
        raise ConfigurationError(
            f"Provider '{name}' not found. Available: {', '.join(providers) or 'none'}"
        )
    return _build_provider(name, providers[name])


def load_settings(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> OrchestratorSettings:
    """Build ``OrchestratorSettings`` from the ``[orchestrator]`` table."""
    raw = load_config(project_dir=project_dir, global_path=global_path)["orchestrator"]
    known = {f.name for f in dataclasses.fields(OrchestratorSettings)}
    unknown = set(raw) - known
    if unknown:
        raise ConfigurationError(f"Unknown orchestrator settings: {', '.join(sorted(unknown))}")
    return OrchestratorSettings(**raw)
