"""Hetzner Cloud API response types.

Only the fields the adapter reads are declared; the API returns more.
"""

from __future__ import annotations

from typing import Literal, NotRequired, TypedDict

type ActionStatus = Literal["running", "success", "error"]
type ServerStatus = Literal[
    "initializing", "starting", "running", "stopping", "off", "deleting", "migrating", "rebuilding", "unknown",
]

# =============================================================================
# Resources
# =============================================================================


class SSHKeyResponse(TypedDict):
    id: int
    name: str
    fingerprint: NotRequired[str]
    public_key: NotRequired[str]
    labels: NotRequired[dict[str, str]]


class LocationResponse(TypedDict):
    id: int
    name: str
    network_zone: NotRequired[str]


class ImageResponse(TypedDict):
    id: int
    name: str | None
    type: NotRequired[str]
    architecture: NotRequired[str]


class ServerTypeResponse(TypedDict):
    id: int
    name: str
    cores: NotRequired[int]
    memory: NotRequired[float]


class VolumeResponse(TypedDict):
    id: int
    name: str
    size: int
    server: int | None
    linux_device: NotRequired[str]
    location: NotRequired[LocationResponse]


class ActionResponse(TypedDict):
    id: int
    command: str
    status: ActionStatus
    progress: NotRequired[int]


class IPv4(TypedDict):
    ip: str


class PublicNet(TypedDict):
    ipv4: IPv4 | None


class Datacenter(TypedDict):
    name: str
    location: LocationResponse


class ServerResponse(TypedDict):
    id: int
    name: str
    status: ServerStatus
    public_net: PublicNet
    datacenter: Datacenter
    labels: dict[str, str]


class Pagination(TypedDict):
    page: int
    per_page: int
    next_page: int | None


class Meta(TypedDict):
    pagination: Pagination


# =============================================================================
# Request params
# =============================================================================


class ServerCreateParams(TypedDict):
    name: str
    server_type: str
    image: str
    location: str
    ssh_keys: list[int]
    user_data: str
    labels: dict[str, str]
    volumes: NotRequired[list[int]]
    automount: NotRequired[bool]
    start_after_create: NotRequired[bool]
