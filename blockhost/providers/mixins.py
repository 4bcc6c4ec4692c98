"""Reusable pieces for adapters.

Error translation shared by every backend, plus mixins filling in the
capabilities a backend does not have so that each adapter only spells
out what it actually supports.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from blockhost.api.model import Action, BootScriptRecord, VolumeRecord
from blockhost.core.exceptions import ConfigurationError, NotFound, ProviderAPIError
from blockhost.infra.http import HttpError


@contextmanager
def api_stage(stage: str) -> Iterator[None]:
    """Translate ``HttpError`` raised inside the block into the blockhost hierarchy.

    404 becomes ``NotFound``; everything else ``ProviderAPIError`` carrying
    the HTTP status (0 for transport failures).
    """
    try:
        yield
    except HttpError as e:
        if e.status == 404:
            raise NotFound(e.body or "resource not found", stage=stage) from e
        raise ProviderAPIError(e.body or "request failed", stage=stage, status=e.status) from e


def first_or_none[T](items: list[T] | None) -> T | None:
    return items[0] if items else None


class NoVolumesMixin:
    """For backends that cannot attach block volumes at create time."""

    supports_volumes = False
    mount_point: str | None = None

    async def create_volume(self, name: str, size_gb: int, region: str) -> VolumeRecord:
        raise ConfigurationError(f"Cannot create volume {name}: block volumes are not supported")

    async def find_volume(self, name: str) -> VolumeRecord | None:
        return None

    async def detach_volume(self, volume: VolumeRecord) -> Action:
        raise NotFound(f"volume {volume.name}", stage="detach_volume")

    async def get_action(self, action_id: str) -> Action:
        raise NotFound(f"action {action_id}", stage="get_action")

    async def delete_volume(self, volume: VolumeRecord) -> None:
        raise NotFound(f"volume {volume.name}", stage="delete_volume")


class InlineBootDataMixin:
    """For backends that take boot data inline on the instance-create call."""

    uses_boot_scripts = False

    async def create_boot_script(self, name: str, content: str) -> BootScriptRecord:
        raise ConfigurationError(f"Cannot create boot script {name}: boot data is passed inline")

    async def find_boot_script(self, name: str) -> BootScriptRecord | None:
        return None

    async def delete_boot_script(self, script: BootScriptRecord) -> None:
        raise NotFound(f"boot script {script.name}", stage="delete_boot_script")
