"""
Configuration flow for ChargePoint Monitor integration.

Stations, channels, subscriptions and thresholds are usually configured in
YAML and imported into a single config entry. A single station can also be
added from the UI; its device ids are checked against the station-info API
before the entry is created.
"""

import logging
from typing import Any

import httpx
import voluptuous as vol
from homeassistant.config_entries import ConfigFlow, ConfigFlowResult
from homeassistant.const import CONF_NAME
from homeassistant.helpers.httpx_client import get_async_client

from . import api
from .const import (
    CONF_DEVICE_ID,
    CONF_DEVICE_ID2,
    CONF_ENABLED,
    CONF_NOTIFY_ON_AVAILABLE,
    CONF_STATIONS,
    DOMAIN,
    ERROR_API_ERROR,
    ERROR_CANNOT_CONNECT,
    ERROR_TIMEOUT,
    ERROR_UNKNOWN,
)
from .models import station_key

_LOGGER = logging.getLogger(__name__)

YAML_UNIQUE_ID = f"{DOMAIN}_yaml"

USER_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_NAME): str,
        vol.Required(CONF_DEVICE_ID): str,
        vol.Optional(CONF_DEVICE_ID2): str,
        vol.Optional(CONF_NOTIFY_ON_AVAILABLE, default=True): bool,
    }
)


class ChargePointMonitorConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle configuration flow for ChargePoint Monitor integration."""

    VERSION = 1

    async def async_step_import(self, import_data: dict[str, Any]) -> ConfigFlowResult:
        """
        Import the YAML configuration into a config entry.

        An existing imported entry is updated in place and reloaded.

        Args:
            import_data: Validated YAML configuration block.

        Returns:
            ConfigFlowResult creating the entry or aborting when updated.

        """
        await self.async_set_unique_id(YAML_UNIQUE_ID)
        self._abort_if_unique_id_configured(updates=import_data)

        _LOGGER.info(
            "Importing YAML configuration with %d stations",
            len(import_data.get(CONF_STATIONS) or []),
        )
        return self.async_create_entry(title="ChargePoint Monitor", data=import_data)

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """
        Handle adding a single station from the UI.

        Args:
            user_input: User input data containing the station name and device ids.

        Returns:
            ConfigFlowResult indicating the next step or errors.

        """
        errors: dict[str, str] = {}

        if user_input is not None:
            name = user_input[CONF_NAME].strip()
            device_ids = [user_input[CONF_DEVICE_ID].strip()]
            if device_id2 := (user_input.get(CONF_DEVICE_ID2) or "").strip():
                device_ids.append(device_id2)

            try:
                session = get_async_client(self.hass)
                for device_id in device_ids:
                    await api.async_get_station_info(session, device_id)
                _LOGGER.info("Successfully validated station %s", name)

            except httpx.TimeoutException:
                _LOGGER.exception("Timeout error (%s)", ERROR_TIMEOUT)
                errors["base"] = ERROR_TIMEOUT
            except httpx.RequestError:
                _LOGGER.exception("Connection error (%s)", ERROR_CANNOT_CONNECT)
                errors["base"] = ERROR_CANNOT_CONNECT
            except api.ChargePointApiError:
                _LOGGER.exception("API error (%s)", ERROR_API_ERROR)
                errors["base"] = ERROR_API_ERROR
            except Exception:
                _LOGGER.exception(
                    "Unexpected error during station validation (%s)",
                    ERROR_UNKNOWN,
                )
                errors["base"] = ERROR_UNKNOWN

            else:
                await self.async_set_unique_id(station_key(name, device_ids[0]))
                self._abort_if_unique_id_configured()

                station = {
                    CONF_NAME: name,
                    CONF_DEVICE_ID: device_ids[0],
                    CONF_ENABLED: True,
                    CONF_NOTIFY_ON_AVAILABLE: user_input[CONF_NOTIFY_ON_AVAILABLE],
                }
                if len(device_ids) > 1:
                    station[CONF_DEVICE_ID2] = device_ids[1]

                return self.async_create_entry(
                    title=f"ChargePoint ({name})",
                    data={CONF_STATIONS: [station]},
                )

        return self.async_show_form(
            step_id="user",
            data_schema=USER_SCHEMA,
            errors=errors,
        )
