"""Capability surface every cloud backend implements.

The orchestrator drives creation, polling and teardown through this
protocol only. Adapters translate one call into one backend request and
map backend failures onto ``ProviderAPIError`` / ``NotFound``; they never
sequence multi-step flows themselves.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from blockhost.api.model import (
    Action,
    BootScriptRecord,
    CreateRequest,
    InstanceRecord,
    SSHKeyRecord,
    VolumeRecord,
)


@runtime_checkable
class CloudAdapter(Protocol):
    """Thin per-provider binding.

    Attributes:
        name: Provider name used in logs ("hetzner", "vultr").
        supports_volumes: Whether block volumes can be attached at create time.
        uses_boot_scripts: Whether boot data must be stored as a separate
            boot-script resource instead of passed inline.
        mount_point: Device label a created volume shows up as on the instance.
        image: Base OS image identifier resolved against the catalog.
    """

    name: str
    supports_volumes: bool
    uses_boot_scripts: bool
    mount_point: str | None
    image: str

    # ─── SSH keys ────────────────────────────────────────────────────

    async def create_ssh_key(self, name: str, public_key: str) -> SSHKeyRecord: ...

    async def find_ssh_key(self, name: str) -> SSHKeyRecord | None: ...

    async def delete_ssh_key(self, key: SSHKeyRecord) -> None: ...

    # ─── Volumes ─────────────────────────────────────────────────────

    async def create_volume(self, name: str, size_gb: int, region: str) -> VolumeRecord: ...

    async def find_volume(self, name: str) -> VolumeRecord | None: ...

    async def detach_volume(self, volume: VolumeRecord) -> Action: ...

    async def get_action(self, action_id: str) -> Action: ...

    async def delete_volume(self, volume: VolumeRecord) -> None: ...

    # ─── Boot scripts ────────────────────────────────────────────────

    async def create_boot_script(self, name: str, content: str) -> BootScriptRecord: ...

    async def find_boot_script(self, name: str) -> BootScriptRecord | None: ...

    async def delete_boot_script(self, script: BootScriptRecord) -> None: ...

    # ─── Catalog ─────────────────────────────────────────────────────

    async def resolve_region(self, region: str) -> str: ...

    async def resolve_image(self, image: str) -> str: ...

    async def resolve_plan(self, size: str) -> str: ...

    # ─── Instances ───────────────────────────────────────────────────

    async def create_instance(self, request: CreateRequest) -> InstanceRecord: ...

    async def get_instance(self, instance_id: str) -> InstanceRecord: ...

    async def list_instances(self) -> Sequence[InstanceRecord]: ...

    async def delete_instance(self, instance_id: str) -> None: ...

    async def close(self) -> None: ...
