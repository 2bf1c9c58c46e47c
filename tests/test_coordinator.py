"""Tests for the unit list coordinator."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from homeassistant.helpers.update_coordinator import UpdateFailed

from custom_components.ifeel_shutters.api import IFeelApiError, IFeelUnit
from custom_components.ifeel_shutters.coordinator import IFeelCoordinator


async def test_update_keys_shutters_by_unit_id():
    api = SimpleNamespace(
        list_shutters=AsyncMock(
            return_value=[
                IFeelUnit(unit_id=1, name="Living room", unit_type="shutter"),
                IFeelUnit(unit_id=2, name="", unit_type="shutter"),
            ]
        )
    )

    data = await IFeelCoordinator._async_update_data(SimpleNamespace(api=api))

    assert sorted(data) == [1, 2]
    assert data[2].display_name == "Shutter 2"


async def test_update_failure_raises_update_failed():
    api = SimpleNamespace(list_shutters=AsyncMock(side_effect=IFeelApiError("HTTP 401")))

    with pytest.raises(UpdateFailed, match="HTTP 401"):
        await IFeelCoordinator._async_update_data(SimpleNamespace(api=api))
