"""Async HTTP client for the Vultr API v2."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any

from loguru import logger

from blockhost.infra.http import BearerAuth, HttpClient
from blockhost.infra.retry import RATE_LIMITED, READ_RETRYABLE, retry

from .types import (
    InstanceCreateParams,
    InstanceResponse,
    OSResponse,
    PlanResponse,
    RegionResponse,
    SSHKeyResponse,
    StartupScriptResponse,
)

if TYPE_CHECKING:
    from .config import Vultr

PER_PAGE = 100


class VultrClient:
    """Async HTTP client for Vultr.

    Returns TypedDicts directly from API responses. List endpoints are
    cursor-paginated through ``meta.links.next``.
    """

    def __init__(self, api_key: str, config: Vultr) -> None:
        self._log = logger.bind(provider="vultr", component="client")
        self._http = HttpClient(
            config.api_url,
            BearerAuth(api_key),
            timeout=config.request_timeout,
            default_headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> VultrClient:
        return self

    async def __aexit__(self, *_args: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.close()

    async def _paginate(self, path: str, key: str) -> list[Any]:
        items: list[Any] = []
        cursor = ""
        while True:
            params: dict[str, Any] = {"per_page": PER_PAGE}
            if cursor:
                params["cursor"] = cursor
            data = await self._http.request("GET", path, params=params)
            items.extend(data.get(key, []))
            cursor = data.get("meta", {}).get("links", {}).get("next", "")
            if not cursor:
                return items

    # =========================================================================
    # SSH Keys
    # =========================================================================

    @retry(on=RATE_LIMITED, max_attempts=3)
    async def create_ssh_key(self, name: str, public_key: str) -> SSHKeyResponse:
        self._log.debug("Creating SSH key {name}", name=name)
        data = await self._http.request("POST", "/ssh-keys", json={"name": name, "ssh_key": public_key})
        return data["ssh_key"]

    @retry(on=READ_RETRYABLE, max_attempts=3)
    async def list_ssh_keys(self) -> list[SSHKeyResponse]:
        return await self._paginate("/ssh-keys", "ssh_keys")

    async def delete_ssh_key(self, key_id: str) -> None:
        await self._http.request("DELETE", f"/ssh-keys/{key_id}")

    # =========================================================================
    # Startup Scripts
    # =========================================================================

    @retry(on=RATE_LIMITED, max_attempts=3)
    async def create_startup_script(self, name: str, content: str) -> StartupScriptResponse:
        self._log.debug("Creating startup script {name}", name=name)
        encoded = base64.b64encode(content.encode()).decode()
        data = await self._http.request(
            "POST", "/startup-scripts", json={"name": name, "script": encoded, "type": "boot"},
        )
        return data["startup_script"]

    @retry(on=READ_RETRYABLE, max_attempts=3)
    async def list_startup_scripts(self) -> list[StartupScriptResponse]:
        return await self._paginate("/startup-scripts", "startup_scripts")

    async def delete_startup_script(self, script_id: str) -> None:
        await self._http.request("DELETE", f"/startup-scripts/{script_id}")

    # =========================================================================
    # Catalog
    # =========================================================================

    @retry(on=READ_RETRYABLE, max_attempts=3)
    async def list_regions(self) -> list[RegionResponse]:
        return await self._paginate("/regions", "regions")

    @retry(on=READ_RETRYABLE, max_attempts=3)
    async def list_plans(self) -> list[PlanResponse]:
        return await self._paginate("/plans", "plans")

    @retry(on=READ_RETRYABLE, max_attempts=3)
    async def list_os(self) -> list[OSResponse]:
        return await self._paginate("/os", "os")

    # =========================================================================
    # Instances
    # =========================================================================

    async def create_instance(self, params: InstanceCreateParams) -> InstanceResponse:
        self._log.debug("Creating instance {label}", label=params["label"])
        data = await self._http.request("POST", "/instances", json=dict(params))
        return data["instance"]

    @retry(on=READ_RETRYABLE, max_attempts=3)
    async def get_instance(self, instance_id: str) -> InstanceResponse:
        data = await self._http.request("GET", f"/instances/{instance_id}")
        return data["instance"]

    @retry(on=READ_RETRYABLE, max_attempts=3)
    async def list_instances(self) -> list[InstanceResponse]:
        return await self._paginate("/instances", "instances")

    async def delete_instance(self, instance_id: str) -> None:
        self._log.debug("Deleting instance {instance_id}", instance_id=instance_id)
        await self._http.request("DELETE", f"/instances/{instance_id}")
