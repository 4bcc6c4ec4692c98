"""Async HTTP client for the Hetzner Cloud API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from loguru import logger

from blockhost.infra.http import BearerAuth, HttpClient
from blockhost.infra.retry import RATE_LIMITED, READ_RETRYABLE, retry

from .types import (
    ActionResponse,
    ImageResponse,
    LocationResponse,
    ServerCreateParams,
    ServerResponse,
    ServerTypeResponse,
    SSHKeyResponse,
    VolumeResponse,
)

if TYPE_CHECKING:
    from .config import Hetzner

PER_PAGE = 50


class HetznerClient:
    """Async HTTP client for Hetzner Cloud.

    Returns TypedDicts directly from API responses. Raises ``HttpError``;
    translation into provider errors is the adapter's job.

    Example:
        async with HetznerClient(token, config) as client:
            server = await client.get_server(42)
    """

    def __init__(self, token: str, config: Hetzner) -> None:
        self._log = logger.bind(provider="hetzner", component="client")
        self._http = HttpClient(
            config.api_url,
            BearerAuth(token),
            timeout=config.request_timeout,
            default_headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> HetznerClient:
        return self

    async def __aexit__(self, *_args: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.close()

    async def _paginate(self, path: str, key: str, params: dict[str, Any] | None = None) -> list[Any]:
        items: list[Any] = []
        page: int | None = 1
        while page is not None:
            data = await self._http.request(
                "GET", path, params={**(params or {}), "page": page, "per_page": PER_PAGE},
            )
            items.extend(data.get(key, []))
            page = data.get("meta", {}).get("pagination", {}).get("next_page")
        return items

    # =========================================================================
    # SSH Keys
    # =========================================================================

    @retry(on=RATE_LIMITED, max_attempts=3)
    async def create_ssh_key(self, name: str, public_key: str, labels: dict[str, str]) -> SSHKeyResponse:
        self._log.debug("Creating SSH key {name}", name=name)
        data = await self._http.request(
            "POST", "/ssh_keys", json={"name": name, "public_key": public_key, "labels": labels},
        )
        return data["ssh_key"]

    @retry(on=READ_RETRYABLE, max_attempts=3)
    async def find_ssh_keys(self, name: str) -> list[SSHKeyResponse]:
        data = await self._http.request("GET", "/ssh_keys", params={"name": name})
        return data.get("ssh_keys", [])

    async def delete_ssh_key(self, key_id: int) -> None:
        await self._http.request("DELETE", f"/ssh_keys/{key_id}")

    # =========================================================================
    # Volumes & Actions
    # =========================================================================

    @retry(on=RATE_LIMITED, max_attempts=3)
    async def create_volume(
        self, name: str, size: int, location: str, labels: dict[str, str],
    ) -> VolumeResponse:
        self._log.debug("Creating {size} GB volume {name} in {location}", size=size, name=name, location=location)
        data = await self._http.request(
            "POST",
            "/volumes",
            json={"name": name, "size": size, "location": location, "format": "ext4", "labels": labels},
        )
        return data["volume"]

    @retry(on=READ_RETRYABLE, max_attempts=3)
    async def find_volumes(self, name: str) -> list[VolumeResponse]:
        data = await self._http.request("GET", "/volumes", params={"name": name})
        return data.get("volumes", [])

    async def detach_volume(self, volume_id: int) -> ActionResponse:
        data = await self._http.request("POST", f"/volumes/{volume_id}/actions/detach")
        return data["action"]

    async def delete_volume(self, volume_id: int) -> None:
        await self._http.request("DELETE", f"/volumes/{volume_id}")

    @retry(on=READ_RETRYABLE, max_attempts=3)
    async def get_action(self, action_id: int) -> ActionResponse:
        data = await self._http.request("GET", f"/actions/{action_id}")
        return data["action"]

    # =========================================================================
    # Catalog
    # =========================================================================

    @retry(on=READ_RETRYABLE, max_attempts=3)
    async def find_locations(self, name: str) -> list[LocationResponse]:
        data = await self._http.request("GET", "/locations", params={"name": name})
        return data.get("locations", [])

    @retry(on=READ_RETRYABLE, max_attempts=3)
    async def find_images(self, name: str) -> list[ImageResponse]:
        data = await self._http.request("GET", "/images", params={"name": name})
        return data.get("images", [])

    @retry(on=READ_RETRYABLE, max_attempts=3)
    async def find_server_types(self, name: str) -> list[ServerTypeResponse]:
        data = await self._http.request("GET", "/server_types", params={"name": name})
        return data.get("server_types", [])

    # =========================================================================
    # Servers
    # =========================================================================

    async def create_server(self, params: ServerCreateParams) -> ServerResponse:
        self._log.debug("Creating server {name}", name=params["name"])
        data = await self._http.request("POST", "/servers", json=dict(params))
        return data["server"]

    @retry(on=READ_RETRYABLE, max_attempts=3)
    async def get_server(self, server_id: int) -> ServerResponse:
        data = await self._http.request("GET", f"/servers/{server_id}")
        return data["server"]

    @retry(on=READ_RETRYABLE, max_attempts=3)
    async def list_servers(self) -> list[ServerResponse]:
        return await self._paginate("/servers", "servers")

    async def delete_server(self, server_id: int) -> None:
        self._log.debug("Deleting server {server_id}", server_id=server_id)
        await self._http.request("DELETE", f"/servers/{server_id}")
