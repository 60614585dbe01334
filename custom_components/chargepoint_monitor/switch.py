"""Notify-on-available switches for ChargePoint Monitor stations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.const import STATE_ON
from homeassistant.helpers.restore_state import RestoreEntity

from .const import DOMAIN
from .entity import ChargePointStationEntity

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .coordinator import ChargePointCoordinator
    from .models import StationConfig

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up a notify switch for every configured station."""
    coordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    async_add_entities(
        [
            ChargePointNotifySwitch(coordinator, station)
            for station in coordinator.config.stations
        ]
    )


class ChargePointNotifySwitch(ChargePointStationEntity, SwitchEntity, RestoreEntity):
    """Toggle notifications when a station becomes available.

    The configured ``notify_on_available`` value is the initial state; a
    state changed by the user is restored across restarts.
    """

    _attr_icon = "mdi:bell-ring"

    def __init__(
        self, coordinator: ChargePointCoordinator, station: StationConfig
    ) -> None:
        super().__init__(coordinator, station, "notify_on_available")
        self._attr_name = "Notify on available"

    @property
    def is_on(self) -> bool:
        """Return the current toggle of the station."""
        return self._coordinator.engine.is_toggled(self._station)

    async def async_added_to_hass(self) -> None:
        """Restore the last toggle state."""
        await super().async_added_to_hass()

        if (last_state := await self.async_get_last_state()) is not None:
            self._coordinator.engine.set_toggle(
                self._station.key, last_state.state == STATE_ON
            )
            _LOGGER.debug(
                "Restored notify toggle for %s: %s", self._station.key, last_state.state
            )

    async def async_turn_on(self, **kwargs: Any) -> None:  # noqa: ANN401, ARG002
        """Enable notifications for the station."""
        self._coordinator.engine.set_toggle(self._station.key, True)  # noqa: FBT003
        self.async_write_ha_state()

    async def async_turn_off(self, **kwargs: Any) -> None:  # noqa: ANN401, ARG002
        """Disable notifications for the station."""
        self._coordinator.engine.set_toggle(self._station.key, False)  # noqa: FBT003
        self.async_write_ha_state()
