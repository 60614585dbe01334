from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import voluptuous as vol
from homeassistant.config_entries import SOURCE_IMPORT, ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import (
    HomeAssistant,
    ServiceCall,
    ServiceResponse,
    SupportsResponse,
)
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.storage import Store

from .api import create_session_client
from .config import CONFIG_SCHEMA, parse_config  # noqa: F401
from .const import (
    CONF_STATION,
    DOMAIN,
    SERVICE_RESET_NOTIFIED,
    SERVICE_SEND_TEST_MESSAGE,
    STORAGE_KEY,
    STORAGE_VERSION,
)
from .coordinator import ChargePointCoordinator
from .store import StationStateStore

if TYPE_CHECKING:
    from homeassistant.helpers.typing import ConfigType

_LOGGER = logging.getLogger(__name__)

PLATFORMS = [Platform.SENSOR, Platform.SWITCH]

RESET_NOTIFIED_SCHEMA = vol.Schema({vol.Optional(CONF_STATION): cv.string})


def _coordinators(hass: HomeAssistant) -> list[ChargePointCoordinator]:
    return [entry_data["coordinator"] for entry_data in hass.data.get(DOMAIN, {}).values()]


async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:
    """Import YAML configuration and register services."""
    if DOMAIN in config:
        _LOGGER.debug("Importing ChargePoint Monitor YAML configuration")
        hass.async_create_task(
            hass.config_entries.flow.async_init(
                DOMAIN,
                context={"source": SOURCE_IMPORT},
                data=dict(config[DOMAIN]),
            )
        )

    async def _async_send_test_message(call: ServiceCall) -> ServiceResponse:  # noqa: ARG001
        ok = 0
        failed = 0
        for coordinator in _coordinators(hass):
            result = await coordinator.async_send_test_message()
            ok += result.ok
            failed += result.failed
        _LOGGER.info("Test message delivered to %d channels, %d failed", ok, failed)
        return {"ok": ok, "failed": failed}

    async def _async_reset_notified(call: ServiceCall) -> None:
        station = call.data.get(CONF_STATION)
        for coordinator in _coordinators(hass):
            keys = {item.key for item in coordinator.config.stations}
            if station is None or station in keys:
                reset = coordinator.reset_notified(station)
                _LOGGER.info("Reset notify guard for %s", ", ".join(reset))

    hass.services.async_register(
        DOMAIN,
        SERVICE_SEND_TEST_MESSAGE,
        _async_send_test_message,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_RESET_NOTIFIED,
        _async_reset_notified,
        schema=RESET_NOTIFIED_SCHEMA,
    )
    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Setting up ChargePoint Monitor for entry %s", entry.entry_id)

    monitor_config = parse_config(entry.data)
    if not monitor_config.stations:
        _LOGGER.error("No valid stations configured for entry %s", entry.entry_id)
        return False
    _LOGGER.info(
        "Configured %d stations, %d channels, %d subscriptions",
        len(monitor_config.stations),
        len(monitor_config.channels),
        len(monitor_config.subscriptions),
    )

    store = StationStateStore(
        Store(hass, STORAGE_VERSION, f"{STORAGE_KEY}.{entry.entry_id}")
    )
    try:
        await store.async_load()
    except Exception as err:
        _LOGGER.error(
            "Failed to load persisted state for entry %s: %s", entry.entry_id, err
        )
        return False
    store.purge_except(station.key for station in monitor_config.stations)

    session = create_session_client(hass)
    coordinator = ChargePointCoordinator(
        hass, session, store, monitor_config, config_entry=entry
    )

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = {
        "session": session,
        "store": store,
        "coordinator": coordinator,
    }

    try:
        await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    except Exception as err:
        _LOGGER.error("Failed to setup platforms for entry %s: %s", entry.entry_id, err)
        hass.data[DOMAIN].pop(entry.entry_id)
        return False

    await coordinator.async_refresh()
    _LOGGER.info(
        "Successfully setup ChargePoint Monitor for entry %s", entry.entry_id
    )
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Unloading ChargePoint Monitor for entry %s", entry.entry_id)

    try:
        unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
        if unload_ok:
            if DOMAIN in hass.data and entry.entry_id in hass.data[DOMAIN]:
                entry_data = hass.data[DOMAIN].pop(entry.entry_id)
                await entry_data["coordinator"].async_shutdown()
                await entry_data["store"].async_save()
                _LOGGER.debug("Cleaned up data for entry %s", entry.entry_id)
            _LOGGER.info(
                "Successfully unloaded ChargePoint Monitor for entry %s",
                entry.entry_id,
            )
        else:
            _LOGGER.warning(
                "Failed to unload some platforms for entry %s", entry.entry_id
            )

        return unload_ok
    except Exception as err:
        _LOGGER.error(
            "Error unloading ChargePoint Monitor for entry %s: %s",
            entry.entry_id,
            err,
        )
        return False
