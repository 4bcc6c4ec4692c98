"""Provider-agnostic data model shared by the orchestrator and adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Literal

from blockhost.core.exceptions import ConfigurationError

PROXY_EDITIONS = frozenset({"bungeecord", "waterfall", "velocity"})


class Role(Enum):
    """Selects which boot template variant an instance receives."""

    STANDARD = "standard"
    PROXY = "proxy"


class ProvisioningState(Enum):
    INITIATING = "initiating"
    AUX_PROVISIONING = "aux_provisioning"
    INSTANCE_REQUESTED = "instance_requested"
    POLLING = "polling"
    READY = "ready"
    FAILED = "failed"


type OperationStatus = Literal["pending", "success", "failure"]


@dataclass(frozen=True, slots=True)
class ResourceDescriptor:
    """Caller-supplied description of one logical resource.

    The name doubles as the instance display name and as the seed for
    every auxiliary resource name (see ``blockhost.naming``).

    Args:
        name: Logical name, unique among orchestrator-owned resources.
        region: Provider region/location identifier (e.g. "fsn1", "fra").
        size: Instance size or plan identifier (e.g. "cpx11", "vc2-1c-2gb").
        volume_size: Extra block volume in GB. 0 means no volume.
        edition: Server edition, also applied as a tag on the instance.
        ssh_port: Port the instance's SSH daemon listens on.
        public_key_path: Path to the public key registered on the provider.
        private_key_path: Private key used for remote sessions.
            Defaults to ``public_key_path`` without the ``.pub`` suffix.
        public_key: Inline public key material; takes precedence over the path.
        server_version: Server version handed to the boot template.
        memory: Java heap size handed to the boot template.
        role: Explicit role override. Derived from ``edition`` when omitted.
    """

    name: str
    region: str
    size: str
    volume_size: int = 0
    edition: str = "java"
    ssh_port: int = 22
    public_key_path: str = "~/.ssh/id_ed25519.pub"
    private_key_path: str | None = None
    public_key: str | None = None
    server_version: str = "latest"
    memory: str = "2G"
    role: Role | None = field(default=None)

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Resource name must not be empty")
        if self.volume_size < 0:
            raise ConfigurationError(f"Volume size must be >= 0, got {self.volume_size}")
        if not 0 < self.ssh_port < 65536:
            raise ConfigurationError(f"Invalid SSH port: {self.ssh_port}")

    @property
    def effective_role(self) -> Role:
        if self.role is not None:
            return self.role
        return Role.PROXY if self.edition.lower() in PROXY_EDITIONS else Role.STANDARD

    @property
    def is_proxy(self) -> bool:
        return self.effective_role is Role.PROXY

    @property
    def has_volume(self) -> bool:
        return self.volume_size > 0

    @property
    def private_key(self) -> str:
        if self.private_key_path:
            return str(Path(self.private_key_path).expanduser())
        public = Path(self.public_key_path).expanduser()
        return str(public.with_suffix("")) if public.suffix == ".pub" else str(public)


@dataclass(frozen=True, slots=True)
class SSHKeyRecord:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class VolumeRecord:
    id: str
    name: str
    server_id: str | None = None


@dataclass(frozen=True, slots=True)
class BootScriptRecord:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class Action:
    """A long-running provider operation (e.g. a volume detach)."""

    id: str
    status: OperationStatus

    @property
    def is_terminal(self) -> bool:
        return self.status != "pending"


@dataclass(frozen=True, slots=True)
class InstanceRecord:
    """Provider's live view of an instance, already normalised by the adapter.

    ``ready`` carries the provider-specific readiness rule (running/active
    plus whatever else the backend needs, such as an assigned address).
    """

    id: str
    name: str
    region: str
    public_ip: str
    status: str
    tags: tuple[str, ...] = ()
    ready: bool = False


@dataclass(frozen=True, slots=True)
class ResourceResult:
    """The only shape callers observe: stable across every provider."""

    id: str
    name: str
    region: str
    public_ip: str
    tags: str


@dataclass(frozen=True, slots=True)
class CreateRequest:
    """Everything an adapter needs to submit an instance-create call."""

    name: str
    plan: str
    image: str
    region: str
    ssh_key: SSHKeyRecord
    boot_data: str
    tags: tuple[str, ...]
    volume: VolumeRecord | None = None
    boot_script: BootScriptRecord | None = None


__all__ = [
    "PROXY_EDITIONS",
    "Action",
    "BootScriptRecord",
    "CreateRequest",
    "InstanceRecord",
    "OperationStatus",
    "ProvisioningState",
    "ResourceDescriptor",
    "ResourceResult",
    "Role",
    "SSHKeyRecord",
    "VolumeRecord",
]
