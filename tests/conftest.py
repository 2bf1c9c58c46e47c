"""Shared fixtures: a mocked hub client for tracker tests and a fake i-feel hub
served over HTTP for client tests."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from custom_components.ifeel_shutters.api import HubSession, IFeelApi

EMAIL = "owner@example.com"
PASSWORD = "s3cret"
COOKIE_NAME = "connect.sid"


class FakeHub:
    def __init__(self) -> None:
        self.host = ""
        self.units = [
            {"id": 1, "name": "Living room", "type": "shutter"},
            {"id": 2, "name": "Bedroom", "type": "shutter"},
            {"id": 7, "name": "Porch light", "type": "light"},
        ]
        self.positions = {1: 30, 2: 100}
        self.valid_tokens: set[str] = set()
        self.logins = 0
        self.reject_logins = False
        self.login_gate: asyncio.Event | None = None
        self.login_started = asyncio.Event()
        self.actions: list[dict] = []

    def _authorized(self, request: web.Request) -> bool:
        return request.cookies.get(COOKIE_NAME) in self.valid_tokens

    async def login(self, request: web.Request) -> web.Response:
        self.logins += 1
        self.login_started.set()
        if self.login_gate is not None:
            await self.login_gate.wait()

        if (
            self.reject_logins
            or request.query.get("user") != EMAIL
            or request.query.get("psw") != PASSWORD
        ):
            return web.Response(status=401)

        token = f"token-{self.logins}"
        self.valid_tokens.add(token)
        resp = web.json_response({"status": "ok"})
        resp.set_cookie(COOKIE_NAME, token)
        return resp

    async def list_units(self, request: web.Request) -> web.Response:
        if not self._authorized(request):
            return web.Response(status=401)
        return web.json_response(self.units)

    async def get_unit(self, request: web.Request) -> web.Response:
        if not self._authorized(request):
            return web.Response(status=401)
        unit_id = int(request.query["id"])
        if unit_id not in self.positions:
            return web.Response(status=404)
        return web.json_response({"id": unit_id, "currStatus": self.positions[unit_id]})

    async def action(self, request: web.Request) -> web.Response:
        if not self._authorized(request):
            return web.Response(status=401)
        body = await request.json()
        self.actions.append(body)
        return web.json_response({"status": "ok"})


@pytest.fixture
async def fake_hub():
    hub = FakeHub()
    app = web.Application()
    app.router.add_get("/auth/login", hub.login)
    app.router.add_get("/units/listUnits", hub.list_units)
    app.router.add_get("/units/getUnitByID", hub.get_unit)
    app.router.add_post("/units/action", hub.action)

    server = TestServer(app)
    await server.start_server()
    hub.host = f"{server.host}:{server.port}"
    yield hub
    await server.close()


@pytest.fixture
async def api(fake_hub):
    async with aiohttp.ClientSession() as session:
        yield IFeelApi(HubSession(session), fake_hub.host, EMAIL, PASSWORD)


@pytest.fixture
def mock_api():
    """Hub client double whose position reads come from ``mock_api.position``."""
    api = MagicMock(spec=IFeelApi)
    api.position = 30

    async def _get_position(unit_id):
        return api.position

    api.get_position = AsyncMock(side_effect=_get_position)
    api.set_position = AsyncMock(return_value=None)
    return api
