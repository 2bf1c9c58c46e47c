from __future__ import annotations

import logging
from datetime import datetime, timedelta

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryAuthFailed, ConfigEntryNotReady
from homeassistant.helpers.aiohttp_client import async_create_clientsession
from homeassistant.helpers.event import async_track_time_interval

from .api import HubSession, IFeelApi, IFeelApiError, IFeelAuthError
from .const import (
    AUTH_INTERVAL_SECONDS,
    CONF_EMAIL,
    CONF_HOST,
    CONF_PASSWORD,
    DOMAIN,
    PLATFORMS,
)
from .coordinator import IFeelCoordinator

_LOGGER = logging.getLogger(__name__)


async def async_reauthenticate(api: IFeelApi, host: str) -> None:
    """Refresh the hub session cookie. Failures are logged, never raised."""
    try:
        await api.authenticate()
    except IFeelApiError as e:
        # The next interval is the retry; the old cookie stays in use meanwhile
        _LOGGER.error("Re-authentication with i-feel hub %s failed: %s", host, e)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    # Dedicated session: the hub cookie must not leak into the shared HA jar
    hub_session = HubSession(async_create_clientsession(hass))
    api = IFeelApi(
        hub_session,
        entry.data[CONF_HOST],
        entry.data[CONF_EMAIL],
        entry.data[CONF_PASSWORD],
    )

    try:
        await api.authenticate()
    except IFeelAuthError as e:
        raise ConfigEntryAuthFailed(str(e)) from e
    except IFeelApiError as e:
        raise ConfigEntryNotReady(str(e)) from e

    async def _async_reauthenticate(now: datetime) -> None:
        await async_reauthenticate(api, entry.data[CONF_HOST])

    entry.async_on_unload(
        async_track_time_interval(
            hass, _async_reauthenticate, timedelta(seconds=AUTH_INTERVAL_SECONDS)
        )
    )

    coordinator = IFeelCoordinator(hass, entry, api)
    await coordinator.async_config_entry_first_refresh()
    _LOGGER.info("Discovered %d i-feel shutters", len(coordinator.data))

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = {
        "api": api,
        "coordinator": coordinator,
    }

    entry.async_on_unload(entry.add_update_listener(_async_update_listener))
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    unloaded = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unloaded:
        hass.data[DOMAIN].pop(entry.entry_id, None)
    return unloaded
