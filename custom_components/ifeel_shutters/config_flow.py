from __future__ import annotations

import logging

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.aiohttp_client import async_create_clientsession

from .api import HubSession, IFeelApi, IFeelApiError, IFeelAuthError
from .const import (
    CONF_DEFERRED_DELAY,
    CONF_EMAIL,
    CONF_HOST,
    CONF_MAX_POLL_TIME,
    CONF_PASSWORD,
    CONF_POLL_INTERVAL,
    CONF_POLL_MODE,
    CONF_RESYNC_EXTERNAL,
    DEFAULT_DEFERRED_DELAY_SEC,
    DEFAULT_MAX_POLL_TIME_SEC,
    DEFAULT_NAME,
    DEFAULT_POLL_INTERVAL_SEC,
    DEFAULT_RESYNC_EXTERNAL,
    DOMAIN,
    POLL_MODE_CONTINUOUS,
    POLL_MODES,
)

_LOGGER = logging.getLogger(__name__)


async def _validate(hass: HomeAssistant, host: str, email: str, password: str) -> dict:
    # Short-lived session, closed here rather than at Home Assistant shutdown
    session = async_create_clientsession(hass, auto_cleanup=False)
    try:
        api = IFeelApi(HubSession(session), host, email, password)
        await api.authenticate()
        shutters = await api.list_shutters()
    finally:
        await session.close()
    return {
        "title": f"{DEFAULT_NAME} ({host})",
        "shutters": len(shutters),
    }


class IFeelShuttersConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    VERSION = 1

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        return IFeelShuttersOptionsFlow()

    async def async_step_user(self, user_input=None):
        errors = {}

        if user_input is not None:
            host = user_input[CONF_HOST].strip()

            await self.async_set_unique_id(host)
            self._abort_if_unique_id_configured()

            try:
                result = await _validate(
                    self.hass, host, user_input[CONF_EMAIL], user_input[CONF_PASSWORD]
                )
            except IFeelAuthError:
                errors["base"] = "invalid_auth"
            except IFeelApiError:
                errors["base"] = "cannot_connect"
            except Exception:
                _LOGGER.exception("Unexpected error while validating i-feel hub %s", host)
                errors["base"] = "unknown"
            else:
                _LOGGER.info("i-feel hub %s reports %d shutters", host, result["shutters"])
                return self.async_create_entry(
                    title=result["title"],
                    data={
                        CONF_HOST: host,
                        CONF_EMAIL: user_input[CONF_EMAIL],
                        CONF_PASSWORD: user_input[CONF_PASSWORD],
                    },
                )

        schema = vol.Schema(
            {
                vol.Required(CONF_HOST): str,
                vol.Required(CONF_EMAIL): str,
                vol.Required(CONF_PASSWORD): str,
            }
        )

        return self.async_show_form(step_id="user", data_schema=schema, errors=errors)

    async def async_step_reauth(self, entry_data):
        return await self.async_step_reauth_confirm()

    async def async_step_reauth_confirm(self, user_input=None):
        errors = {}
        entry = self._get_reauth_entry()

        if user_input is not None:
            try:
                await _validate(
                    self.hass,
                    entry.data[CONF_HOST],
                    user_input[CONF_EMAIL],
                    user_input[CONF_PASSWORD],
                )
            except IFeelAuthError:
                errors["base"] = "invalid_auth"
            except IFeelApiError:
                errors["base"] = "cannot_connect"
            else:
                return self.async_update_reload_and_abort(
                    entry,
                    data_updates={
                        CONF_EMAIL: user_input[CONF_EMAIL],
                        CONF_PASSWORD: user_input[CONF_PASSWORD],
                    },
                )

        schema = vol.Schema(
            {
                vol.Required(CONF_EMAIL, default=entry.data.get(CONF_EMAIL, "")): str,
                vol.Required(CONF_PASSWORD): str,
            }
        )

        return self.async_show_form(step_id="reauth_confirm", data_schema=schema, errors=errors)


class IFeelShuttersOptionsFlow(config_entries.OptionsFlow):
    async def async_step_init(self, user_input=None):
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        opts = self.config_entry.options
        schema = vol.Schema(
            {
                vol.Optional(
                    CONF_POLL_INTERVAL,
                    default=opts.get(CONF_POLL_INTERVAL, DEFAULT_POLL_INTERVAL_SEC),
                ): vol.All(vol.Coerce(float), vol.Range(min=0.5, max=60)),
                vol.Optional(
                    CONF_MAX_POLL_TIME,
                    default=opts.get(CONF_MAX_POLL_TIME, DEFAULT_MAX_POLL_TIME_SEC),
                ): vol.All(vol.Coerce(float), vol.Range(min=5, max=600)),
                vol.Optional(
                    CONF_POLL_MODE,
                    default=opts.get(CONF_POLL_MODE, POLL_MODE_CONTINUOUS),
                ): vol.In(POLL_MODES),
                vol.Optional(
                    CONF_DEFERRED_DELAY,
                    default=opts.get(CONF_DEFERRED_DELAY, DEFAULT_DEFERRED_DELAY_SEC),
                ): vol.All(vol.Coerce(float), vol.Range(min=1, max=600)),
                vol.Optional(
                    CONF_RESYNC_EXTERNAL,
                    default=opts.get(CONF_RESYNC_EXTERNAL, DEFAULT_RESYNC_EXTERNAL),
                ): bool,
            }
        )

        return self.async_show_form(step_id="init", data_schema=schema)
