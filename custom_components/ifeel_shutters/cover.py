from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.cover import (
    ATTR_POSITION,
    CoverDeviceClass,
    CoverEntity,
    CoverEntityFeature,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .api import IFeelApiError
from .const import (
    CONF_DEFERRED_DELAY,
    CONF_MAX_POLL_TIME,
    CONF_POLL_INTERVAL,
    CONF_POLL_MODE,
    CONF_RESYNC_EXTERNAL,
    DEFAULT_DEFERRED_DELAY_SEC,
    DEFAULT_MAX_POLL_TIME_SEC,
    DEFAULT_POLL_INTERVAL_SEC,
    DEFAULT_RESYNC_EXTERNAL,
    DOMAIN,
    POLL_MODE_CONTINUOUS,
    POSITION_MAX,
    POSITION_MIN,
)
from .coordinator import IFeelCoordinator
from .tracker import MotionState, ShutterTracker

_LOGGER = logging.getLogger(__name__)


def _tracker_options(entry: ConfigEntry) -> dict[str, Any]:
    opts = entry.options
    return {
        "poll_interval": float(opts.get(CONF_POLL_INTERVAL, DEFAULT_POLL_INTERVAL_SEC)),
        "max_poll_time": float(opts.get(CONF_MAX_POLL_TIME, DEFAULT_MAX_POLL_TIME_SEC)),
        "poll_mode": opts.get(CONF_POLL_MODE, POLL_MODE_CONTINUOUS),
        "deferred_delay": float(opts.get(CONF_DEFERRED_DELAY, DEFAULT_DEFERRED_DELAY_SEC)),
        "resync_external": bool(opts.get(CONF_RESYNC_EXTERNAL, DEFAULT_RESYNC_EXTERNAL)),
    }


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    coordinator: IFeelCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    options = _tracker_options(entry)

    def _create_task(coro):
        # Tracked by the entry so unload and shutdown cancel pending polls
        return entry.async_create_background_task(hass, coro, f"{DOMAIN} {coro.__name__}")

    entities: list[IFeelShutterCover] = []
    for unit in coordinator.data.values():
        tracker = ShutterTracker(
            coordinator.api,
            unit.unit_id,
            unit.display_name,
            create_task=_create_task,
            **options,
        )
        entities.append(IFeelShutterCover(coordinator, entry.entry_id, tracker))

    async_add_entities(entities, update_before_add=False)


class IFeelShutterCover(CoordinatorEntity[IFeelCoordinator], CoverEntity):
    _attr_has_entity_name = True
    _attr_name = None
    _attr_device_class = CoverDeviceClass.SHUTTER
    _attr_supported_features = (
        CoverEntityFeature.OPEN | CoverEntityFeature.CLOSE | CoverEntityFeature.SET_POSITION
    )

    def __init__(self, coordinator: IFeelCoordinator, entry_id: str, tracker: ShutterTracker) -> None:
        super().__init__(coordinator)
        self._entry_id = entry_id
        self._tracker = tracker
        self._unit_id = tracker.unit_id

        self._attr_unique_id = f"{entry_id}_shutter_{tracker.unit_id}"
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, f"{entry_id}_{tracker.unit_id}")},
            name=tracker.name,
            manufacturer="i-feel",
            model="Shutter",
        )

    @property
    def tracker(self) -> ShutterTracker:
        return self._tracker

    async def async_added_to_hass(self) -> None:
        await super().async_added_to_hass()
        self.async_on_remove(self._tracker.add_listener(self.async_write_ha_state))
        await self._tracker.async_seed()

    async def async_will_remove_from_hass(self) -> None:
        self._tracker.cancel()
        await super().async_will_remove_from_hass()

    @property
    def should_poll(self) -> bool:
        # Positions come from the hub on demand, not from the unit list
        return True

    @property
    def available(self) -> bool:
        return self._attr_available and self._unit_id in (self.coordinator.data or {})

    @property
    def current_cover_position(self) -> int | None:
        return self._tracker.current_position

    @property
    def is_opening(self) -> bool:
        return self._tracker.motion_state is MotionState.INCREASING

    @property
    def is_closing(self) -> bool:
        return self._tracker.motion_state is MotionState.DECREASING

    @property
    def is_closed(self) -> bool | None:
        return self._tracker.current_position <= POSITION_MIN

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        return {
            "unit_id": self._unit_id,
            "target_position": self._tracker.get_target_position(),
            "polling": self._tracker.polling,
        }

    async def async_update(self) -> None:
        try:
            await self._tracker.async_get_motion_state()
        except IFeelApiError as e:
            if self._attr_available:
                _LOGGER.debug("Reading shutter %s failed: %s", self._unit_id, e)
            self._attr_available = False
            return
        self._attr_available = True

    async def async_open_cover(self, **kwargs: Any) -> None:
        self._tracker.set_target_position(POSITION_MAX)

    async def async_close_cover(self, **kwargs: Any) -> None:
        self._tracker.set_target_position(POSITION_MIN)

    async def async_set_cover_position(self, **kwargs: Any) -> None:
        position = kwargs.get(ATTR_POSITION)
        if position is None:
            return
        try:
            position = int(position)
        except (TypeError, ValueError):
            return
        self._tracker.set_target_position(position)
