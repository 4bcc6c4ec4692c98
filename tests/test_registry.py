import pytest

from blockhost.core.exceptions import ConfigurationError
from blockhost.orchestrator import Orchestrator, OrchestratorSettings
from blockhost.providers.hetzner import Hetzner
from blockhost.providers.registry import create_provider, provider_types
from blockhost.providers.vultr import Vultr

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


def test_provider_types():
    assert provider_types() == {"hetzner": Hetzner, "vultr": Vultr}


@pytest.mark.asyncio
@pytest.mark.parametrize(("config", "name"), [(Hetzner(token="t"), "hetzner"), (Vultr(api_key="k"), "vultr")])
async def test_create_provider(config, name):
    settings = OrchestratorSettings(owner_tag="ops")
    provider = await create_provider(config, settings=settings)
    try:
        assert isinstance(provider, Orchestrator)
        assert provider.adapter.name == name
        assert provider.settings is settings
    finally:
        await provider.close()


@pytest.mark.asyncio
async def test_unknown_config():
    with pytest.raises(ConfigurationError, match="No provider registered"):
        await create_provider(object())  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_missing_credentials(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("HCLOUD_TOKEN", raising=False)
    with pytest.raises(ConfigurationError):
        await create_provider(Hetzner())
