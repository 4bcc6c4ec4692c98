from __future__ import annotations

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from blockhost.infra.http import BearerAuth, HttpClient, HttpError

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


def make_app(*, token: str = "valid-token") -> web.Application:
    app = web.Application()

    async def json_echo(request: web.Request) -> web.Response:
        if request.headers.get("Authorization", "") != f"Bearer {token}":
            return web.Response(status=401, text="unauthorized")
        body = await request.json() if request.can_read_body else {}
        return web.json_response({"echo": body, "params": dict(request.query)})

    async def empty(_: web.Request) -> web.Response:
        return web.Response(status=204)

    async def not_found(_: web.Request) -> web.Response:
        return web.json_response({"error": {"code": "not_found"}}, status=404)

    async def server_error(_: web.Request) -> web.Response:
        return web.Response(status=500, text="internal server error")

    async def slow(_: web.Request) -> web.Response:
        await asyncio.sleep(1)
        return web.json_response({})

    async def limited(_: web.Request) -> web.Response:
        return web.json_response(
            {"error": {"code": "rate_limit_exceeded"}}, status=429, headers={"Retry-After": "5"},
        )

    async def agent(request: web.Request) -> web.Response:
        return web.json_response({"user_agent": request.headers.get("User-Agent")})

    app.router.add_route("*", "/echo", json_echo)
    app.router.add_get("/empty", empty)
    app.router.add_get("/not-found", not_found)
    app.router.add_get("/server-error", server_error)
    app.router.add_get("/slow", slow)
    app.router.add_get("/limited", limited)
    app.router.add_get("/agent", agent)
    return app


@pytest.fixture
async def server():
    srv = TestServer(make_app())
    await srv.start_server()
    yield srv
    await srv.close()


@pytest.fixture
def base_url(server: TestServer) -> str:
    return f"http://{server.host}:{server.port}"


# ─── BearerAuth ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_bearer_auth_headers():
    h = await BearerAuth("my-token").headers()
    assert h["Authorization"] == "Bearer my-token"
    assert h["Accept"] == "application/json"


# ─── Requests ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_get_json(base_url: str):
    async with HttpClient(base_url, BearerAuth("valid-token")) as http:
        result = await http.request("GET", "/echo", params={"name": "mc1-ssh"})
    assert result["params"]["name"] == "mc1-ssh"


@pytest.mark.asyncio
async def test_post_json(base_url: str):
    async with HttpClient(base_url, BearerAuth("valid-token")) as http:
        result = await http.request("POST", "/echo", json={"name": "mc1"})
    assert result["echo"]["name"] == "mc1"


@pytest.mark.asyncio
async def test_default_headers_sent(base_url: str):
    async with HttpClient(
        base_url, BearerAuth("valid-token"), default_headers={"Content-Type": "application/json"},
    ) as http:
        result = await http.request("POST", "/echo", json={"a": 1})
    assert result["echo"] == {"a": 1}


@pytest.mark.asyncio
async def test_user_agent_sent(base_url: str):
    async with HttpClient(base_url, user_agent="blockhost-tests/1") as http:
        result = await http.request("GET", "/agent")
    assert result["user_agent"] == "blockhost-tests/1"


def test_bearer_auth_repr_hides_token():
    assert "secret" not in repr(BearerAuth("secret"))


@pytest.mark.asyncio
async def test_empty_body_returns_none(base_url: str):
    async with HttpClient(base_url) as http:
        assert await http.request("GET", "/empty") is None


# ─── Errors ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_http_error_on_4xx(base_url: str):
    async with HttpClient(base_url) as http:
        with pytest.raises(HttpError) as exc_info:
            await http.request("GET", "/not-found")
    assert exc_info.value.status == 404
    assert "not_found" in exc_info.value.body


@pytest.mark.asyncio
async def test_http_error_on_5xx(base_url: str):
    async with HttpClient(base_url) as http:
        with pytest.raises(HttpError) as exc_info:
            await http.request("GET", "/server-error")
    assert exc_info.value.status == 500
    assert str(exc_info.value) == "HTTP 500: internal server error"


@pytest.mark.asyncio
async def test_rate_limit_carries_retry_after(base_url: str):
    async with HttpClient(base_url) as http:
        with pytest.raises(HttpError) as exc_info:
            await http.request("GET", "/limited")
    assert exc_info.value.status == 429
    assert exc_info.value.retry_after == 5.0
    assert not exc_info.value.is_transport


@pytest.mark.asyncio
async def test_unauthorized(base_url: str):
    async with HttpClient(base_url, BearerAuth("wrong")) as http:
        with pytest.raises(HttpError) as exc_info:
            await http.request("GET", "/echo")
    assert exc_info.value.status == 401


@pytest.mark.asyncio
async def test_timeout_maps_to_http_error(base_url: str):
    async with HttpClient(base_url, timeout=0.1) as http:
        with pytest.raises(HttpError) as exc_info:
            await http.request("GET", "/slow")
    assert exc_info.value.status == 0


@pytest.mark.asyncio
async def test_connection_refused():
    async with HttpClient("http://127.0.0.1:1") as http:
        with pytest.raises(HttpError) as exc_info:
            await http.request("GET", "/anything")
    assert exc_info.value.is_transport
    assert "GET /anything" in exc_info.value.body


# ─── Lifecycle ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_close_is_idempotent(base_url: str):
    http = HttpClient(base_url)
    await http.request("GET", "/empty")
    await http.close()
    await http.close()


@pytest.mark.asyncio
async def test_session_recreated_after_close(base_url: str):
    http = HttpClient(base_url)
    await http.request("GET", "/empty")
    await http.close()
    assert await http.request("GET", "/empty") is None
    await http.close()
