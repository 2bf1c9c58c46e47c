from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from .const import UNIT_TYPE_SHUTTER

_LOGGER = logging.getLogger(__name__)


class IFeelApiError(Exception):
    """Raised on any API/transport error."""


class IFeelAuthError(IFeelApiError):
    """Raised when the hub rejects the login."""


@dataclass
class IFeelUnit:
    unit_id: int
    name: str
    unit_type: str

    @property
    def display_name(self) -> str:
        return self.name or f"Shutter {self.unit_id}"

    @property
    def is_shutter(self) -> bool:
        return self.unit_type == UNIT_TYPE_SHUTTER


class HubSession:
    """Authenticated session state shared by every request to one hub.

    Holds the HTTP session and the cookies handed out by the last successful
    login. Only ``IFeelApi.authenticate`` replaces the cookies; a failed login
    keeps the previous ones so in-flight and later requests still work until
    they expire on the hub side.
    """

    def __init__(self, session: aiohttp.ClientSession) -> None:
        self.http = session
        self._cookies: dict[str, str] = {}

    @property
    def cookies(self) -> dict[str, str]:
        return dict(self._cookies)

    @property
    def authenticated(self) -> bool:
        return bool(self._cookies)

    def update_cookies(self, cookies: dict[str, str]) -> None:
        self._cookies = dict(cookies)


class IFeelApi:
    def __init__(
        self,
        hub_session: HubSession,
        host: str,
        email: str,
        password: str,
        timeout: float | None = None,
    ) -> None:
        self._hub_session = hub_session
        self._host = host.strip().rstrip("/")
        self._email = email
        self._password = password
        self._timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None

    @property
    def base_url(self) -> str:
        if self._host.startswith(("http://", "https://")):
            return f"{self._host}/"
        return f"http://{self._host}/"

    @property
    def hub_session(self) -> HubSession:
        return self._hub_session

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        cookies: dict[str, str] | None = None,
    ) -> aiohttp.ClientResponse:
        url = f"{self.base_url}{path}"
        kwargs: dict[str, Any] = {
            "params": params,
            "json": json,
            "cookies": self._hub_session.cookies if cookies is None else cookies,
        }
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        try:
            resp = await self._hub_session.http.request(method, url, **kwargs)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise IFeelApiError(f"{method} {path} failed: {e}") from e
        return resp

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        resp = await self._request("GET", path, params=params)
        async with resp:
            if resp.status != 200:
                raise IFeelApiError(f"GET {path} failed: HTTP {resp.status}")
            try:
                return await resp.json(content_type=None)
            except (aiohttp.ClientError, ValueError) as e:
                raise IFeelApiError(f"GET {path} returned invalid JSON: {e}") from e

    async def authenticate(self) -> None:
        """Log in and store the session cookie (valid ~30 minutes on the hub)."""
        _LOGGER.debug("Sending authentication request to i-feel hub %s", self._host)
        resp = await self._request(
            "GET",
            "auth/login",
            params={"user": self._email, "psw": self._password},
            cookies={},
        )
        async with resp:
            if resp.status in (401, 403):
                raise IFeelAuthError(f"Login rejected: HTTP {resp.status}")
            if resp.status != 200:
                raise IFeelApiError(f"GET auth/login failed: HTTP {resp.status}")
            cookies = {key: morsel.value for key, morsel in resp.cookies.items()}

        if not cookies:
            raise IFeelAuthError("Login returned no session cookie")

        self._hub_session.update_cookies(cookies)
        _LOGGER.info("Successfully authenticated with i-feel hub %s", self._host)

    async def list_units(self) -> list[IFeelUnit]:
        data = await self._get_json("units/listUnits")
        if not isinstance(data, list):
            raise IFeelApiError("units/listUnits did not return a list")

        units: list[IFeelUnit] = []
        for raw in data:
            try:
                unit_id = int(raw.get("id"))
            except (AttributeError, TypeError, ValueError):
                _LOGGER.debug("Skipping unit without usable id: %s", raw)
                continue
            units.append(
                IFeelUnit(
                    unit_id=unit_id,
                    name=str(raw.get("name") or ""),
                    unit_type=str(raw.get("type") or ""),
                )
            )
        return units

    async def list_shutters(self) -> list[IFeelUnit]:
        return [unit for unit in await self.list_units() if unit.is_shutter]

    async def get_position(self, unit_id: int) -> int:
        data = await self._get_json("units/getUnitByID", params={"id": unit_id})
        try:
            return int(data["currStatus"])
        except (KeyError, TypeError, ValueError) as e:
            raise IFeelApiError(f"Unit {unit_id} returned no usable currStatus") from e

    async def set_position(self, unit_id: int, value: int) -> None:
        """Command a move. Returns once the hub accepts it, not when it stops."""
        _LOGGER.debug("Posting unit action to i-feel shutter %s, value %s", unit_id, value)
        resp = await self._request("POST", "units/action", json={"id": unit_id, "value": value})
        async with resp:
            if resp.status != 200:
                raise IFeelApiError(f"POST units/action failed for unit {unit_id}: HTTP {resp.status}")
