"""Base entity for ChargePoint Monitor stations."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity import Entity

from .const import DOMAIN

if TYPE_CHECKING:
    from .coordinator import ChargePointCoordinator
    from .models import StationConfig, StationState

_LOGGER = logging.getLogger(__name__)


class ChargePointStationEntity(Entity):
    """Entity bound to one configured station, updated by the coordinator."""

    _attr_has_entity_name = True
    _attr_should_poll = False

    def __init__(
        self,
        coordinator: ChargePointCoordinator,
        station: StationConfig,
        unique_suffix: str,
    ) -> None:
        self._coordinator = coordinator
        self._station = station
        self._attr_unique_id = f"{DOMAIN}_{station.key}_{unique_suffix}"
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, station.key)},
            name=station.name or station.key,
            manufacturer="ChargePoint",
            model="Dual device station" if station.device_id2 else "Charging station",
        )
        self._coordinator_listener_unsub: Callable[[], None] | None = None

    @property
    def station_state(self) -> StationState | None:
        """Return the latest published state of the station."""
        if not self._coordinator.data:
            return None
        return self._coordinator.data.get(self._station.key)

    async def async_added_to_hass(self) -> None:
        """Subscribe to coordinator updates."""
        await super().async_added_to_hass()
        self._coordinator_listener_unsub = self._coordinator.async_add_listener(
            self._handle_coordinator_update
        )

    async def async_will_remove_from_hass(self) -> None:
        """Unsubscribe from coordinator updates."""
        await super().async_will_remove_from_hass()

        if self._coordinator_listener_unsub is not None:
            self._coordinator_listener_unsub()
            self._coordinator_listener_unsub = None

    def _handle_coordinator_update(self) -> None:
        """Handle updated data from the coordinator."""
        self.async_write_ha_state()
