from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Final, Protocol, runtime_checkable

import aiohttp
from loguru import logger

USER_AGENT: Final = "blockhost/0.1"
_BODY_PREVIEW: Final = 500

# ─── Errors ──────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class HttpError(Exception):
    """Non-2xx reply, or a transport failure (``status == 0``).

    ``retry_after`` carries the server's ``Retry-After`` hint in seconds
    when one was sent with a 429/503.
    """

    status: int
    body: str
    retry_after: float | None = None

    def __str__(self) -> str:
        return f"HTTP {self.status}: {self.body}"

    @property
    def is_transport(self) -> bool:
        return self.status == 0


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        # HTTP-date form; callers fall back to their own backoff
        return None


# ─── Auth ────────────────────────────────────────────────────────────


@runtime_checkable
class Auth(Protocol):
    async def headers(self) -> dict[str, str]: ...


class BearerAuth:
    """Static API token, as used by both Hetzner Cloud and Vultr."""

    def __init__(self, token: str) -> None:
        self._token = token

    async def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
        }

    def __repr__(self) -> str:
        return "BearerAuth(token=***)"


# ─── Client ──────────────────────────────────────────────────────────


class HttpClient:
    """JSON client for provider REST APIs over a lazily created aiohttp session.

    One client per adapter; nothing is shared between instances. Every
    failure surfaces as ``HttpError`` so adapters only map one type.
    """

    def __init__(
        self,
        base_url: str,
        auth: Auth | None = None,
        *,
        timeout: float = 30,
        default_headers: dict[str, str] | None = None,
        user_agent: str = USER_AGENT,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = auth
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers = {"User-Agent": user_agent, **(default_headers or {})}
        self._session: aiohttp.ClientSession | None = None
        self._log = logger.bind(component="http")

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _session_for_request(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def _request_headers(self) -> dict[str, str]:
        if self._auth is None:
            return dict(self._headers)
        return {**self._headers, **await self._auth.headers()}

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | list[Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and decode the JSON reply.

        Returns:
            The decoded body, or ``None`` for empty replies (204, DELETE).

        Raises:
            HttpError: On any status >= 400, timeout or connection failure.
        """
        session = await self._session_for_request()
        headers = await self._request_headers()
        url = f"{self._base_url}{path}"
        started = time.monotonic()

        try:
            async with session.request(method, url, headers=headers, json=json, params=params) as resp:
                await self._raise_for_status(resp, method, path)
                payload = await self._decode(resp)
        except aiohttp.ClientResponseError as e:
            raise HttpError(status=e.status, body=e.message) from e
        except aiohttp.ClientError as e:
            raise HttpError(status=0, body=f"{method} {path}: {e}") from e
        except TimeoutError as e:
            raise HttpError(status=0, body=f"{method} {path} timed out") from e

        self._log.debug(
            "{method} {path} -> {status} in {ms:.0f}ms",
            method=method, path=path, status=resp.status, ms=(time.monotonic() - started) * 1000,
        )
        return payload

    async def _raise_for_status(self, resp: aiohttp.ClientResponse, method: str, path: str) -> None:
        if resp.status < 400:
            return
        body = await resp.text()
        self._log.warning(
            "{method} {path} failed with HTTP {status}: {body}",
            method=method, path=path, status=resp.status, body=body[:_BODY_PREVIEW],
        )
        raise HttpError(
            status=resp.status,
            body=body,
            retry_after=_parse_retry_after(resp.headers.get("Retry-After")),
        )

    @staticmethod
    async def _decode(resp: aiohttp.ClientResponse) -> Any:
        if not await resp.read():
            return None
        return await resp.json(content_type=None)

    # ─── Lifecycle ───────────────────────────────────────────────────

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> HttpClient:
        await self._session_for_request()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
