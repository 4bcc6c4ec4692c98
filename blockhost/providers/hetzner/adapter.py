"""Hetzner Cloud adapter.

Boot data is passed inline as ``user_data``; volumes are created up front,
attached and automounted by the server-create call, and detach returns an
action that must be polled until it leaves "running".
"""

from __future__ import annotations

from collections.abc import Sequence

from blockhost.api.model import (
    Action,
    CreateRequest,
    InstanceRecord,
    OperationStatus,
    SSHKeyRecord,
    VolumeRecord,
)
from blockhost.core.exceptions import NotFound

from ..mixins import InlineBootDataMixin, api_stage, first_or_none
from .client import HetznerClient
from .config import Hetzner
from .types import ActionResponse, ServerCreateParams, ServerResponse, VolumeResponse

_ACTION_STATUS: dict[str, OperationStatus] = {
    "running": "pending",
    "success": "success",
    "error": "failure",
}


def _numeric_id(value: str, stage: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise NotFound(f"invalid Hetzner id {value!r}", stage=stage) from None


def _to_volume(v: VolumeResponse) -> VolumeRecord:
    server = v.get("server")
    return VolumeRecord(id=str(v["id"]), name=v["name"], server_id=str(server) if server else None)


def _to_action(a: ActionResponse) -> Action:
    return Action(id=str(a["id"]), status=_ACTION_STATUS.get(a["status"], "pending"))


def _to_instance(s: ServerResponse) -> InstanceRecord:
    ipv4 = (s.get("public_net") or {}).get("ipv4") or {}
    ip = ipv4.get("ip", "")
    datacenter = s.get("datacenter") or {}
    return InstanceRecord(
        id=str(s["id"]),
        name=s["name"],
        region=datacenter.get("location", {}).get("name", ""),
        public_ip=ip,
        status=s["status"],
        tags=tuple(s.get("labels", {})),
        ready=s["status"] == "running" and bool(ip),
    )


class HetznerAdapter(InlineBootDataMixin):
    """``CloudAdapter`` over the Hetzner Cloud REST API."""

    name = "hetzner"
    supports_volumes = True
    mount_point = "sdb"

    def __init__(self, config: Hetzner, client: HetznerClient | None = None) -> None:
        self.config = config
        self.image = config.image
        self._client = client or HetznerClient(config.resolve_token(), config)

    async def close(self) -> None:
        await self._client.close()

    # ─── SSH keys ────────────────────────────────────────────────────

    async def create_ssh_key(self, name: str, public_key: str) -> SSHKeyRecord:
        with api_stage("create_ssh_key"):
            key = await self._client.create_ssh_key(name, public_key, labels={})
        return SSHKeyRecord(id=str(key["id"]), name=key["name"])

    async def find_ssh_key(self, name: str) -> SSHKeyRecord | None:
        with api_stage("find_ssh_key"):
            key = first_or_none(await self._client.find_ssh_keys(name))
        return SSHKeyRecord(id=str(key["id"]), name=key["name"]) if key else None

    async def delete_ssh_key(self, key: SSHKeyRecord) -> None:
        with api_stage("delete_ssh_key"):
            await self._client.delete_ssh_key(_numeric_id(key.id, "delete_ssh_key"))

    # ─── Volumes ─────────────────────────────────────────────────────

    async def create_volume(self, name: str, size_gb: int, region: str) -> VolumeRecord:
        with api_stage("create_volume"):
            volume = await self._client.create_volume(name, size_gb, region, labels={})
        return _to_volume(volume)

    async def find_volume(self, name: str) -> VolumeRecord | None:
        with api_stage("find_volume"):
            volume = first_or_none(await self._client.find_volumes(name))
        return _to_volume(volume) if volume else None

    async def detach_volume(self, volume: VolumeRecord) -> Action:
        with api_stage("detach_volume"):
            action = await self._client.detach_volume(_numeric_id(volume.id, "detach_volume"))
        return _to_action(action)

    async def get_action(self, action_id: str) -> Action:
        with api_stage("get_action"):
            action = await self._client.get_action(_numeric_id(action_id, "get_action"))
        return _to_action(action)

    async def delete_volume(self, volume: VolumeRecord) -> None:
        with api_stage("delete_volume"):
            await self._client.delete_volume(_numeric_id(volume.id, "delete_volume"))

    # ─── Catalog ─────────────────────────────────────────────────────

    async def resolve_region(self, region: str) -> str:
        with api_stage("resolve_region"):
            location = first_or_none(await self._client.find_locations(region))
        if location is None:
            raise NotFound(f"location {region!r}", stage="resolve_region")
        return location["name"]

    async def resolve_image(self, image: str) -> str:
        with api_stage("resolve_image"):
            found = first_or_none(await self._client.find_images(image))
        if found is None:
            raise NotFound(f"image {image!r}", stage="resolve_image")
        return found["name"] or str(found["id"])

    async def resolve_plan(self, size: str) -> str:
        with api_stage("resolve_plan"):
            server_type = first_or_none(await self._client.find_server_types(size))
        if server_type is None:
            raise NotFound(f"server type {size!r}", stage="resolve_plan")
        return server_type["name"]

    # ─── Instances ───────────────────────────────────────────────────

    async def create_instance(self, request: CreateRequest) -> InstanceRecord:
        params: ServerCreateParams = {
            "name": request.name,
            "server_type": request.plan,
            "image": request.image,
            "location": request.region,
            "ssh_keys": [_numeric_id(request.ssh_key.id, "create_instance")],
            "user_data": request.boot_data,
            "labels": {tag: "true" for tag in request.tags},
        }
        if request.volume is not None:
            params["volumes"] = [_numeric_id(request.volume.id, "create_instance")]
            params["automount"] = True

        with api_stage("create_instance"):
            server = await self._client.create_server(params)
        return _to_instance(server)

    async def get_instance(self, instance_id: str) -> InstanceRecord:
        with api_stage("get_instance"):
            server = await self._client.get_server(_numeric_id(instance_id, "get_instance"))
        return _to_instance(server)

    async def list_instances(self) -> Sequence[InstanceRecord]:
        with api_stage("list_instances"):
            servers = await self._client.list_servers()
        return [_to_instance(s) for s in servers]

    async def delete_instance(self, instance_id: str) -> None:
        with api_stage("delete_instance"):
            await self._client.delete_server(_numeric_id(instance_id, "delete_instance"))
