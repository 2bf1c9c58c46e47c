from __future__ import annotations

import logging
from datetime import timedelta

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .api import IFeelApi, IFeelApiError, IFeelUnit
from .const import DOMAIN, UNIT_LIST_INTERVAL_SECONDS

_LOGGER = logging.getLogger(__name__)


class IFeelCoordinator(DataUpdateCoordinator[dict[int, IFeelUnit]]):
    """Keeps the list of shutters known to the hub, keyed by unit id."""

    def __init__(self, hass: HomeAssistant, entry: ConfigEntry, api: IFeelApi) -> None:
        super().__init__(
            hass,
            logger=_LOGGER,
            config_entry=entry,
            name=DOMAIN,
            update_interval=timedelta(seconds=UNIT_LIST_INTERVAL_SECONDS),
        )
        self.api = api

    async def _async_update_data(self) -> dict[int, IFeelUnit]:
        try:
            shutters = await self.api.list_shutters()
        except IFeelApiError as e:
            raise UpdateFailed(str(e)) from e
        return {unit.unit_id: unit for unit in shutters}
