from __future__ import annotations

import asyncio

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from pynvmeofgw._transport import HttpTransport, normalize_base_url
from pynvmeofgw.exceptions import GwRejectedError, GwTransportError
from pynvmeofgw.models.ana import AnaGroupState, AnaInfo, NqnAnaStates
from pynvmeofgw.models.state import AnaState
from pynvmeofgw.rpc import GatewayRpcClient


async def _echo(request: web.Request) -> web.Response:
    payload = await request.json()
    return web.json_response({"status": 0, "echo": payload, "agent": request.headers.get("user-agent")})


async def _empty(_request: web.Request) -> web.Response:
    return web.Response(text="")


async def _bad_request(_request: web.Request) -> web.Response:
    return web.Response(status=400, text="invalid nqn")


async def _too_many(_request: web.Request) -> web.Response:
    return web.Response(status=429, text="slow down")


async def _unavailable(_request: web.Request) -> web.Response:
    return web.Response(status=503, text="starting")


async def _not_json(_request: web.Request) -> web.Response:
    return web.Response(text="<html>")


async def _not_utf8(_request: web.Request) -> web.Response:
    return web.Response(body=b'{"status":0,"x":"\xff\xfe"}', content_type="application/json")


async def _list(_request: web.Request) -> web.Response:
    return web.json_response([1, 2])


async def _slow(_request: web.Request) -> web.Response:
    await asyncio.sleep(0.5)
    return web.json_response({})


def _app() -> web.Application:
    app = web.Application()
    app.router.add_post("/v1/echo", _echo)
    app.router.add_post("/v1/empty", _empty)
    app.router.add_post("/v1/bad", _bad_request)
    app.router.add_post("/v1/busy", _too_many)
    app.router.add_post("/v1/down", _unavailable)
    app.router.add_post("/v1/html", _not_json)
    app.router.add_post("/v1/not-utf8", _not_utf8)
    app.router.add_post("/v1/list", _list)
    app.router.add_post("/v1/slow", _slow)
    return app


@pytest.mark.parametrize(
    ("address", "expected"),
    [
        ("127.0.0.1:5500", "http://127.0.0.1:5500"),
        ("gw.example:5500/", "http://gw.example:5500"),
        ("https://gw.example:5500", "https://gw.example:5500"),
    ],
)
def test_normalize_base_url(address: str, expected: str) -> None:
    assert normalize_base_url(address) == expected


@pytest.mark.asyncio
async def test_post_json_status_mapping() -> None:
    async with TestServer(_app()) as server, aiohttp.ClientSession() as session:
        transport = HttpTransport(f"{server.host}:{server.port}", session, timeout=0.1)

        reply = await transport.post_json("/v1/echo", {"id": 3})
        assert reply["echo"] == {"id": 3}
        assert reply["agent"] == "pynvmeofgw"

        assert await transport.post_json("/v1/empty", {}) == {}

        with pytest.raises(GwRejectedError) as rejected:
            await transport.post_json("/v1/bad", {})
        assert rejected.value.code == 400

        with pytest.raises(GwTransportError) as busy:
            await transport.post_json("/v1/busy", {})
        assert busy.value.status_code == 429

        with pytest.raises(GwTransportError) as down:
            await transport.post_json("/v1/down", {})
        assert down.value.status_code == 503

        with pytest.raises(GwTransportError, match="Invalid JSON"):
            await transport.post_json("/v1/html", {})

        with pytest.raises(GwTransportError, match="not UTF-8"):
            await transport.post_json("/v1/not-utf8", {})

        with pytest.raises(GwTransportError, match="not a JSON object"):
            await transport.post_json("/v1/list", {})

        with pytest.raises(GwTransportError):
            await transport.post_json("/v1/slow", {})


@pytest.mark.asyncio
async def test_post_json_connection_refused() -> None:
    async with TestServer(web.Application()) as server:
        address = f"{server.host}:{server.port}"

    async with aiohttp.ClientSession() as session:
        transport = HttpTransport(address, session, timeout=1.0)
        with pytest.raises(GwTransportError) as excinfo:
            await transport.post_json("/v1/get_subsystems", {})

    assert excinfo.value.endpoint == "/v1/get_subsystems"
    assert not isinstance(excinfo.value, GwRejectedError)


@pytest.mark.asyncio
async def test_undecodable_reply_is_a_transient_push_failure() -> None:
    app = web.Application()
    app.router.add_post("/v1/set_ana_state", _not_utf8)
    batch = AnaInfo(states=[NqnAnaStates(nqn="nqn:a", states=[AnaGroupState(grp_id=1, state=AnaState.OPTIMIZED)])])

    async with TestServer(app) as server, aiohttp.ClientSession() as session:
        client = GatewayRpcClient(HttpTransport(f"{server.host}:{server.port}", session, timeout=1.0))

        assert await client.push_state_diff(batch) is False
