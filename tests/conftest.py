from __future__ import annotations

import itertools
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path

import pytest

from blockhost.api.model import (
    Action,
    BootScriptRecord,
    CreateRequest,
    InstanceRecord,
    ResourceDescriptor,
    SSHKeyRecord,
    VolumeRecord,
)
from blockhost.bootstrap import TemplateArgs
from blockhost.core.exceptions import NotFound, ProviderAPIError, RemoteExecutionError
from blockhost.operator import PostProvisionOperator
from blockhost.orchestrator import Orchestrator, OrchestratorSettings

PUBLIC_KEY = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIOMqqnkVzrm0SdG6UOoqKLsabgH5C9okWi0dh2l9GKJl user@host"
PUBLIC_IP = "203.0.113.10"


# ─── Fake cloud ──────────────────────────────────────────────────────


@dataclass
class FakeAdapter:
    """In-memory cloud recording every call in order.

    ``faults`` maps a method name to exceptions raised (one per call)
    before the method does anything.
    """

    name: str = "fake"
    supports_volumes: bool = True
    uses_boot_scripts: bool = False
    mount_point: str | None = "sdb"
    image: str = "ubuntu-22.04"
    polls_until_ready: int = 2
    action_polls: int = 2
    action_outcome: str = "success"
    delete_polls: int = 0

    calls: list[str] = field(default_factory=list)
    faults: dict[str, list[BaseException]] = field(default_factory=dict)
    keys: dict[str, SSHKeyRecord] = field(default_factory=dict)
    volumes: dict[str, VolumeRecord] = field(default_factory=dict)
    scripts: dict[str, BootScriptRecord] = field(default_factory=dict)
    instances: dict[str, InstanceRecord] = field(default_factory=dict)
    requests: list[CreateRequest] = field(default_factory=list)
    closed: bool = False

    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))
    _polls: dict[str, int] = field(default_factory=dict)
    _actions: dict[str, tuple[str, int]] = field(default_factory=dict)
    _deleting: dict[str, int] = field(default_factory=dict)

    def inject(self, method: str, *errors: BaseException) -> None:
        self.faults.setdefault(method, []).extend(errors)

    def add_instance(self, record: InstanceRecord) -> None:
        self.instances[record.id] = record
        self._polls[record.id] = self.polls_until_ready

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        pending = self.faults.get(method)
        if pending:
            raise pending.pop(0)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    # SSH keys

    async def create_ssh_key(self, name: str, public_key: str) -> SSHKeyRecord:
        self._enter("create_ssh_key")
        key = SSHKeyRecord(id=self._next_id("key"), name=name)
        self.keys[key.id] = key
        return key

    async def find_ssh_key(self, name: str) -> SSHKeyRecord | None:
        self._enter("find_ssh_key")
        return next((k for k in self.keys.values() if k.name == name), None)

    async def delete_ssh_key(self, key: SSHKeyRecord) -> None:
        self._enter("delete_ssh_key")
        if self.keys.pop(key.id, None) is None:
            raise NotFound(f"ssh key {key.id}", stage="delete_ssh_key")

    # Volumes

    async def create_volume(self, name: str, size_gb: int, region: str) -> VolumeRecord:
        self._enter("create_volume")
        volume = VolumeRecord(id=self._next_id("vol"), name=name)
        self.volumes[volume.id] = volume
        return volume

    async def find_volume(self, name: str) -> VolumeRecord | None:
        self._enter("find_volume")
        return next((v for v in self.volumes.values() if v.name == name), None)

    async def detach_volume(self, volume: VolumeRecord) -> Action:
        self._enter("detach_volume")
        if volume.id not in self.volumes:
            raise NotFound(f"volume {volume.id}", stage="detach_volume")
        if self.volumes[volume.id].server_id in self._deleting:
            raise ProviderAPIError("server is locked", stage="detach_volume", status=423)
        action_id = self._next_id("action")
        self._actions[action_id] = (volume.id, 0)
        return Action(id=action_id, status="pending")

    async def get_action(self, action_id: str) -> Action:
        self._enter("get_action")
        volume_id, seen = self._actions[action_id]
        seen += 1
        self._actions[action_id] = (volume_id, seen)
        if seen < self.action_polls:
            return Action(id=action_id, status="pending")
        if self.action_outcome == "success" and volume_id in self.volumes:
            self.volumes[volume_id] = replace(self.volumes[volume_id], server_id=None)
        return Action(id=action_id, status=self.action_outcome)  # type: ignore[arg-type]

    async def delete_volume(self, volume: VolumeRecord) -> None:
        self._enter("delete_volume")
        current = self.volumes.get(volume.id)
        if current is None:
            raise NotFound(f"volume {volume.id}", stage="delete_volume")
        if current.server_id is not None:
            raise ProviderAPIError("volume is attached", stage="delete_volume", status=422)
        del self.volumes[volume.id]

    # Boot scripts

    async def create_boot_script(self, name: str, content: str) -> BootScriptRecord:
        self._enter("create_boot_script")
        script = BootScriptRecord(id=self._next_id("script"), name=name)
        self.scripts[script.id] = script
        return script

    async def find_boot_script(self, name: str) -> BootScriptRecord | None:
        self._enter("find_boot_script")
        return next((s for s in self.scripts.values() if s.name == name), None)

    async def delete_boot_script(self, script: BootScriptRecord) -> None:
        self._enter("delete_boot_script")
        if self.scripts.pop(script.id, None) is None:
            raise NotFound(f"boot script {script.id}", stage="delete_boot_script")

    # Catalog

    async def resolve_region(self, region: str) -> str:
        self._enter("resolve_region")
        return region

    async def resolve_image(self, image: str) -> str:
        self._enter("resolve_image")
        return image

    async def resolve_plan(self, size: str) -> str:
        self._enter("resolve_plan")
        return size

    # Instances

    async def create_instance(self, request: CreateRequest) -> InstanceRecord:
        self._enter("create_instance")
        self.requests.append(request)
        record = InstanceRecord(
            id=self._next_id("i"),
            name=request.name,
            region=request.region,
            public_ip="",
            status="initializing",
            tags=request.tags,
        )
        self.add_instance(record)
        if request.volume is not None:
            self.volumes[request.volume.id] = replace(request.volume, server_id=record.id)
        return record

    async def get_instance(self, instance_id: str) -> InstanceRecord:
        self._enter("get_instance")
        if instance_id in self._deleting:
            self._deleting[instance_id] -= 1
            if self._deleting[instance_id] <= 0:
                self._finish_delete(instance_id)
            else:
                return replace(self.instances[instance_id], status="deleting", ready=False)
        record = self.instances.get(instance_id)
        if record is None:
            raise NotFound(f"instance {instance_id}", stage="get_instance")
        remaining = self._polls.get(instance_id, 0) - 1
        self._polls[instance_id] = remaining
        if remaining <= 0 and not record.ready:
            record = replace(record, status="running", public_ip=PUBLIC_IP, ready=True)
            self.instances[instance_id] = record
        return record

    async def list_instances(self) -> Sequence[InstanceRecord]:
        self._enter("list_instances")
        return list(self.instances.values())

    async def delete_instance(self, instance_id: str) -> None:
        """Start deleting; the instance lingers for ``delete_polls`` lookups."""
        self._enter("delete_instance")
        if instance_id not in self.instances:
            raise NotFound(f"instance {instance_id}", stage="delete_instance")
        if self.delete_polls > 0:
            self._deleting.setdefault(instance_id, self.delete_polls)
        else:
            self._finish_delete(instance_id)

    def _finish_delete(self, instance_id: str) -> None:
        self._deleting.pop(instance_id, None)
        del self.instances[instance_id]
        for volume_id, volume in list(self.volumes.items()):
            if volume.server_id == instance_id:
                self.volumes[volume_id] = replace(volume, server_id=None)

    async def close(self) -> None:
        self.closed = True


@dataclass
class FakeTemplate:
    renders: list[tuple[ResourceDescriptor, TemplateArgs]] = field(default_factory=list)

    def render(self, descriptor: ResourceDescriptor, args: TemplateArgs) -> str:
        self.renders.append((descriptor, args))
        return f"#!/bin/bash\necho {descriptor.name} mount={args.mount}\n"

    def render_update(self, descriptor: ResourceDescriptor) -> str:
        return f"#!/bin/bash\necho update {descriptor.name}\n"


# ─── Fake remote session ─────────────────────────────────────────────


@dataclass
class FakeSession:
    host: str
    user: str
    key_path: str
    port: int
    log: list[tuple[str, str]]
    fail_on: dict[str, RemoteExecutionError]

    async def __aenter__(self) -> FakeSession:
        if "connect" in self.fail_on:
            raise self.fail_on["connect"]
        self.log.append(("connect", f"{self.user}@{self.host}:{self.port}"))
        return self

    async def __aexit__(self, *_: object) -> None:
        self.log.append(("close", self.host))

    async def transfer_file(self, local_path: str, remote_path: str) -> None:
        if "transfer" in self.fail_on:
            raise self.fail_on["transfer"]
        self.log.append(("transfer", f"{Path(local_path).name}->{remote_path}"))

    async def execute_command(self, command: str) -> str:
        if "execute" in self.fail_on:
            raise self.fail_on["execute"]
        self.log.append(("execute", command))
        return ""


@dataclass
class FakeSessions:
    """Session factory handing out ``FakeSession`` objects sharing one log."""

    log: list[tuple[str, str]] = field(default_factory=list)
    fail_on: dict[str, RemoteExecutionError] = field(default_factory=dict)
    opened: list[FakeSession] = field(default_factory=list)

    def __call__(self, host: str, user: str, key_path: str, port: int) -> FakeSession:
        session = FakeSession(host, user, key_path, port, self.log, self.fail_on)
        self.opened.append(session)
        return session


# ─── Fixtures ────────────────────────────────────────────────────────


FAST_SETTINGS = OrchestratorSettings(
    poll_interval=0.0,
    create_timeout=2.0,
    detach_timeout=2.0,
    owner_tag="owner",
    rollback_attempts=3,
    rollback_delay=0.0,
)


@pytest.fixture
def adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def template() -> FakeTemplate:
    return FakeTemplate()


@pytest.fixture
def sessions() -> FakeSessions:
    return FakeSessions()


@pytest.fixture
def orchestrator(adapter: FakeAdapter, template: FakeTemplate, sessions: FakeSessions) -> Orchestrator:
    return Orchestrator(
        adapter,
        template=template,
        operator=PostProvisionOperator(template, session_factory=sessions),
        settings=FAST_SETTINGS,
    )


@pytest.fixture
def descriptor() -> ResourceDescriptor:
    return ResourceDescriptor(
        name="mc1",
        region="eu-1",
        size="cpx11",
        volume_size=10,
        edition="standard",
        public_key=PUBLIC_KEY,
        private_key_path="/keys/id_ed25519",
    )


@pytest.fixture
def public_key_file(tmp_path: Path) -> Path:
    path = tmp_path / "id_ed25519.pub"
    path.write_text(PUBLIC_KEY + "\n")
    return path
