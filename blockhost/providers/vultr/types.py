"""Vultr API v2 response types.

Field names follow the v2 JSON exactly. Only fields the adapter reads are declared.
"""

from __future__ import annotations

from typing import Literal, NotRequired, TypedDict

type InstanceStatus = Literal["pending", "active", "suspended", "resizing"]


class SSHKeyResponse(TypedDict):
    id: str
    name: str
    ssh_key: NotRequired[str]
    date_created: NotRequired[str]


class StartupScriptResponse(TypedDict):
    id: str
    name: str
    type: NotRequired[Literal["boot", "pxe"]]
    script: NotRequired[str]


class RegionResponse(TypedDict):
    id: str
    city: NotRequired[str]
    country: NotRequired[str]


class PlanResponse(TypedDict):
    id: str
    vcpu_count: NotRequired[int]
    ram: NotRequired[int]
    locations: NotRequired[list[str]]


class OSResponse(TypedDict):
    id: int
    name: str
    family: NotRequired[str]


class InstanceResponse(TypedDict):
    id: str
    label: str
    hostname: NotRequired[str]
    region: str
    plan: NotRequired[str]
    main_ip: str
    status: InstanceStatus
    power_status: NotRequired[str]
    server_status: NotRequired[str]
    tags: NotRequired[list[str]]


class Links(TypedDict):
    next: str
    prev: str


class Meta(TypedDict):
    total: int
    links: Links


class InstanceCreateParams(TypedDict):
    region: str
    plan: str
    os_id: int
    label: str
    hostname: str
    sshkey_id: list[str]
    tags: list[str]
    script_id: NotRequired[str]
    user_data: NotRequired[str]
