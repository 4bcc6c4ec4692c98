"""Vultr adapter.

Boot data lives in a separate "boot" startup-script resource referenced by
id from the instance-create call. Lookups by name scan the paginated list
endpoints since Vultr has no name filter.
"""

from __future__ import annotations

from collections.abc import Sequence

from blockhost.api.model import (
    BootScriptRecord,
    CreateRequest,
    InstanceRecord,
    SSHKeyRecord,
)
from blockhost.core.exceptions import NotFound

from ..mixins import NoVolumesMixin, api_stage
from .client import VultrClient
from .config import Vultr
from .types import InstanceCreateParams, InstanceResponse

UNASSIGNED_IP = "0.0.0.0"


def _to_instance(i: InstanceResponse) -> InstanceRecord:
    ip = i.get("main_ip") or ""
    return InstanceRecord(
        id=i["id"],
        name=i["label"],
        region=i["region"],
        public_ip=ip,
        status=i["status"],
        tags=tuple(i.get("tags") or ()),
        ready=i["status"] == "active" and ip not in ("", UNASSIGNED_IP),
    )


class VultrAdapter(NoVolumesMixin):
    """``CloudAdapter`` over the Vultr v2 REST API."""

    name = "vultr"
    uses_boot_scripts = True

    def __init__(self, config: Vultr, client: VultrClient | None = None) -> None:
        self.config = config
        self.image = str(config.os_id)
        self._client = client or VultrClient(config.resolve_token(), config)

    async def close(self) -> None:
        await self._client.close()

    # ─── SSH keys ────────────────────────────────────────────────────

    async def create_ssh_key(self, name: str, public_key: str) -> SSHKeyRecord:
        with api_stage("create_ssh_key"):
            key = await self._client.create_ssh_key(name, public_key)
        return SSHKeyRecord(id=key["id"], name=key["name"])

    async def find_ssh_key(self, name: str) -> SSHKeyRecord | None:
        with api_stage("find_ssh_key"):
            keys = await self._client.list_ssh_keys()
        for key in keys:
            if key["name"] == name:
                return SSHKeyRecord(id=key["id"], name=key["name"])
        return None

    async def delete_ssh_key(self, key: SSHKeyRecord) -> None:
        with api_stage("delete_ssh_key"):
            await self._client.delete_ssh_key(key.id)

    # ─── Boot scripts ────────────────────────────────────────────────

    async def create_boot_script(self, name: str, content: str) -> BootScriptRecord:
        with api_stage("create_boot_script"):
            script = await self._client.create_startup_script(name, content)
        return BootScriptRecord(id=script["id"], name=script["name"])

    async def find_boot_script(self, name: str) -> BootScriptRecord | None:
        with api_stage("find_boot_script"):
            scripts = await self._client.list_startup_scripts()
        for script in scripts:
            if script["name"] == name:
                return BootScriptRecord(id=script["id"], name=script["name"])
        return None

    async def delete_boot_script(self, script: BootScriptRecord) -> None:
        with api_stage("delete_boot_script"):
            await self._client.delete_startup_script(script.id)

    # ─── Catalog ─────────────────────────────────────────────────────

    async def resolve_region(self, region: str) -> str:
        with api_stage("resolve_region"):
            regions = await self._client.list_regions()
        if not any(r["id"] == region for r in regions):
            raise NotFound(f"region {region!r}", stage="resolve_region")
        return region

    async def resolve_image(self, image: str) -> str:
        with api_stage("resolve_image"):
            systems = await self._client.list_os()
        if not any(str(o["id"]) == image for o in systems):
            raise NotFound(f"os id {image!r}", stage="resolve_image")
        return image

    async def resolve_plan(self, size: str) -> str:
        with api_stage("resolve_plan"):
            plans = await self._client.list_plans()
        if not any(p["id"] == size for p in plans):
            raise NotFound(f"plan {size!r}", stage="resolve_plan")
        return size

    # ─── Instances ───────────────────────────────────────────────────

    async def create_instance(self, request: CreateRequest) -> InstanceRecord:
        params: InstanceCreateParams = {
            "region": request.region,
            "plan": request.plan,
            "os_id": int(request.image),
            "label": request.name,
            "hostname": request.name,
            "sshkey_id": [request.ssh_key.id],
            "tags": list(request.tags),
        }
        if request.boot_script is not None:
            params["script_id"] = request.boot_script.id

        with api_stage("create_instance"):
            instance = await self._client.create_instance(params)
        return _to_instance(instance)

    async def get_instance(self, instance_id: str) -> InstanceRecord:
        with api_stage("get_instance"):
            instance = await self._client.get_instance(instance_id)
        return _to_instance(instance)

    async def list_instances(self) -> Sequence[InstanceRecord]:
        with api_stage("list_instances"):
            instances = await self._client.list_instances()
        return [_to_instance(i) for i in instances]

    async def delete_instance(self, instance_id: str) -> None:
        with api_stage("delete_instance"):
            await self._client.delete_instance(instance_id)
