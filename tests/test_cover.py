"""Tests for the cover entity wiring on top of the tracker."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from custom_components.ifeel_shutters.api import IFeelApiError, IFeelUnit
from custom_components.ifeel_shutters.const import DOMAIN
from custom_components.ifeel_shutters.cover import IFeelShutterCover, async_setup_entry
from custom_components.ifeel_shutters.tracker import ShutterTracker


@pytest.fixture
def cover(mock_api):
    coordinator = MagicMock()
    coordinator.api = mock_api
    coordinator.data = {1: IFeelUnit(unit_id=1, name="Living room", unit_type="shutter")}
    tracker = ShutterTracker(mock_api, 1, "Living room", poll_interval=0.01, max_poll_time=5)
    entity = IFeelShutterCover(coordinator, "entry1", tracker)
    yield entity
    tracker.cancel()


def test_unique_id_and_device(cover):
    assert cover.unique_id == "entry1_shutter_1"
    assert cover.device_info["name"] == "Living room"
    assert cover.should_poll


async def test_update_reads_position(cover, mock_api):
    mock_api.position = 45

    await cover.async_update()

    assert cover.available
    assert cover.current_cover_position == 45
    assert not cover.is_opening
    assert not cover.is_closing
    assert not cover.is_closed


async def test_set_position_reports_opening(cover, mock_api):
    await cover.async_update()

    await cover.async_set_cover_position(position=80)
    await asyncio.sleep(0)

    assert cover.extra_state_attributes["target_position"] == 80
    assert cover.extra_state_attributes["polling"]
    assert cover.is_opening
    mock_api.set_position.assert_called_once_with(1, 80)


async def test_close_and_open(cover, mock_api):
    await cover.async_update()

    await cover.async_close_cover()
    assert cover.tracker.get_target_position() == 0
    assert cover.is_closing

    await cover.async_open_cover()
    assert cover.tracker.get_target_position() == 100
    assert cover.is_opening


async def test_update_failure_marks_unavailable(cover, mock_api):
    mock_api.get_position.side_effect = IFeelApiError("down")
    await cover.async_update()
    assert not cover.available

    mock_api.get_position.side_effect = None
    mock_api.get_position.return_value = 0
    await cover.async_update()
    assert cover.available
    assert cover.is_closed


def test_unit_missing_from_hub_is_unavailable(cover):
    cover.coordinator.data = {}
    assert not cover.available


async def test_setup_entry_runs_tracker_tasks_on_the_entry(mock_api):
    coordinator = MagicMock()
    coordinator.api = mock_api
    coordinator.data = {1: IFeelUnit(unit_id=1, name="Living room", unit_type="shutter")}
    hass = MagicMock()
    hass.data = {DOMAIN: {"entry1": {"coordinator": coordinator}}}
    entry = MagicMock()
    entry.entry_id = "entry1"
    entry.options = {}
    entry.async_create_background_task.side_effect = (
        lambda hass, coro, name: asyncio.ensure_future(coro)
    )
    async_add_entities = MagicMock()

    await async_setup_entry(hass, entry, async_add_entities)

    (entity,) = async_add_entities.call_args.args[0]
    entity.tracker.set_target_position(40)

    assert entry.async_create_background_task.call_count == 2
    assert entity.tracker.polling
    entity.tracker.cancel()
