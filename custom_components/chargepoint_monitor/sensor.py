"""Sensor entities for ChargePoint Monitor stations.

Each station gets a status sensor carrying the derived status, city, port
list and last update as attributes, and a numeric free ports sensor.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.sensor import SensorEntity, SensorStateClass

from .const import DOMAIN, STATUS_INITIALIZED
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
    """Set up sensor entities for every configured station."""
    coordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]

    entities: list[SensorEntity] = []
    for station in coordinator.config.stations:
        entities.append(ChargePointStatusSensor(coordinator, station))
        entities.append(ChargePointFreePortsSensor(coordinator, station))
    async_add_entities(entities)


class ChargePointStatusSensor(ChargePointStationEntity, SensorEntity):
    """Derived availability status of a station."""

    _attr_icon = "mdi:ev-station"

    def __init__(
        self, coordinator: ChargePointCoordinator, station: StationConfig
    ) -> None:
        super().__init__(coordinator, station, "status")
        self._attr_name = "Status"

    @property
    def native_value(self) -> str:
        """Return the station status, ``initialized`` before the first poll."""
        state = self.station_state
        return state.status if state else STATUS_INITIALIZED

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return city, counters and ports of the station."""
        state = self.station_state
        if state is None:
            return {"device_ids": list(self._station.device_ids)}
        return {
            "city": state.info.city,
            "latitude": state.info.latitude,
            "longitude": state.info.longitude,
            "free_ports": state.free_ports,
            "port_count": state.port_count,
            "ports": [port.as_dict() for port in state.ports],
            "last_update": state.last_update.isoformat(),
            "device_ids": list(self._station.device_ids),
            "notify_on_available": self._coordinator.engine.is_toggled(self._station),
        }


class ChargePointFreePortsSensor(ChargePointStationEntity, SensorEntity):
    """Number of free ports of a station."""

    _attr_icon = "mdi:ev-plug-type2"
    _attr_state_class = SensorStateClass.MEASUREMENT

    def __init__(
        self, coordinator: ChargePointCoordinator, station: StationConfig
    ) -> None:
        super().__init__(coordinator, station, "free_ports")
        self._attr_name = "Free ports"

    @property
    def native_value(self) -> int | None:
        """Return the free port count, or None before the first poll."""
        state = self.station_state
        return state.free_ports if state else None
