"""Coordinator for ChargePoint Monitor integration.

Drives the polling cycle for every configured station:
fetch → normalize → publish → detect → decide → notify → persist.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import httpx
from homeassistant.const import STATE_UNAVAILABLE, STATE_UNKNOWN
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from . import api
from .const import (
    DOMAIN,
    STATUS_DISABLED,
    STATUS_NO_DATA,
    TEST_MESSAGE,
)
from .eligibility import EligibilityEngine
from .fanout import ALL_CHANNELS, ChannelFanout, create_service_sender
from .models import (
    DispatchResult,
    MonitorConfig,
    StationConfig,
    StationInfo,
    StationState,
)
from .normalizer import normalize_layout, parse_number, parse_station_info
from .transitions import TransitionDetector

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .fanout import Sender
    from .store import StationStateStore

_LOGGER = logging.getLogger(__name__)


def format_message(state: StationState) -> str:
    """Build the notification text for a station."""
    return (
        f"{state.config.name or state.config.key} ({state.info.city}): "
        f"{state.free_ports}/{state.port_count} ports available"
    )


def message_context(state: StationState) -> dict[str, Any]:
    """Build the contextual fields merged into channel payloads."""
    return {
        "city": state.info.city,
        "station": state.config.name or state.config.key,
        "free_ports": state.free_ports,
        "port_count": state.port_count,
        "status": state.status,
    }


class ChargePointCoordinator(DataUpdateCoordinator[dict[str, StationState]]):
    """Coordinator that polls station status and sends availability notifications."""

    def __init__(
        self,
        hass: HomeAssistant,
        session: httpx.AsyncClient,
        store: StationStateStore,
        config: MonitorConfig,
        sender: Sender | None = None,
        config_entry: ConfigEntry | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            hass: Home Assistant instance.
            session: HTTP client for the station-info API.
            store: Persisted per-station records.
            config: Validated integration configuration.
            sender: Message sender, defaults to calling Home Assistant services.
            config_entry: Config entry owning the coordinator.

        """
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=DOMAIN,
            update_interval=timedelta(minutes=config.settings.poll_interval_min),
        )
        self._session = session
        self._store = store
        self.config = config
        self.detector = TransitionDetector(
            store,
            legacy_status_trigger=config.settings.legacy_status_trigger,
        )
        self.fanout = ChannelFanout(
            config.channels,
            sender or create_service_sender(hass),
        )
        self.engine = EligibilityEngine(
            store,
            config.settings,
            config.subscriptions,
            soc_provider=self._read_soc,
            position_provider=self._read_position,
            channels=self.fanout.channels,
        )
        self._semaphore = asyncio.Semaphore(config.settings.max_parallel)
        self.last_test_result: DispatchResult | None = None
        self.data = {}

    def _read_soc(self) -> float | None:
        entity_id = self.config.settings.soc_entity
        if not entity_id:
            return None
        state = self.hass.states.get(entity_id)
        if state is None or state.state in (STATE_UNKNOWN, STATE_UNAVAILABLE):
            return None
        return parse_number(state.state)

    def _read_position(self) -> tuple[float, float] | None:
        entity_id = self.config.settings.position_entity
        if not entity_id:
            return None
        state = self.hass.states.get(entity_id)
        if state is None:
            return None
        latitude = parse_number(state.attributes.get("latitude"))
        longitude = parse_number(state.attributes.get("longitude"))
        if latitude is None or longitude is None:
            return None
        return (latitude, longitude)

    async def _async_fetch(self, device_id: str) -> dict[str, Any] | None:
        """Fetch one device payload, returning None on any fetch failure."""
        try:
            return await api.async_get_station_info(
                self._session,
                device_id,
                timeout=self.config.settings.request_timeout,
            )
        except httpx.TimeoutException:
            _LOGGER.warning("Timeout while fetching device %s", device_id)
        except httpx.RequestError as err:
            _LOGGER.warning("Connection error while fetching device %s: %s", device_id, err)
        except api.ChargePointApiError as err:
            _LOGGER.warning("API error while fetching device %s: %s", device_id, err)
        return None

    def _disabled_state(self, station: StationConfig, now: datetime) -> StationState:
        previous = self.data.get(station.key) if self.data else None
        return StationState(
            config=station,
            status=STATUS_DISABLED,
            last_update=now,
            info=previous.info if previous else StationInfo(),
        )

    async def _async_process_station(self, station: StationConfig) -> StationState:
        """Run one cycle for a single station."""
        now = datetime.now(UTC)
        if not station.enabled:
            _LOGGER.debug("%s: disabled, skipping", station.key)
            return self._disabled_state(station, now)

        payloads = [await self._async_fetch(device_id) for device_id in station.device_ids]
        raw1 = payloads[0]
        raw2 = payloads[1] if len(payloads) > 1 else None

        normalized = normalize_layout(station.layout, raw1, raw2)
        has_data = any(payload is not None for payload in payloads)
        state = StationState(
            config=station,
            status=normalized.derived_status if has_data else STATUS_NO_DATA,
            last_update=now,
            info=parse_station_info(raw1, raw2),
            ports=normalized.ports,
            port_count=normalized.port_count,
            free_ports=normalized.free_ports,
            has_data=has_data,
        )

        # Degraded readings are published but never compared or committed
        if not all(payload is not None for payload in payloads):
            _LOGGER.warning(
                "%s: incomplete data received, keeping previous record", station.key
            )
            return state

        async with self._store.lock(station.key):
            event = self.detector.detect(
                station.key, normalized.free_ports, normalized.derived_status
            )
            self.detector.commit(
                station.key, normalized.free_ports, normalized.derived_status
            )
            self.engine.reset_if_occupied(station.key, normalized.free_ports)

            if not event.became_free:
                return state

            result = self.engine.decide(station, event, state.info, now)
            if not result.eligible:
                return state

        dispatched = await self.fanout.dispatch(
            format_message(state),
            result.recipients,
            message_context(state),
        )
        _LOGGER.info(
            "%s: availability notification sent to %d channels (%d failed)",
            station.key,
            dispatched.ok,
            dispatched.failed,
        )
        return state

    async def _async_guarded_process(self, station: StationConfig) -> StationState | None:
        async with self._semaphore:
            try:
                return await self._async_process_station(station)
            except Exception:
                _LOGGER.exception("Unexpected error while processing %s", station.key)
                return None

    async def _async_update_data(self) -> dict[str, StationState]:
        if not self._store.loaded:
            error_msg = "Station state store is not loaded"
            raise UpdateFailed(error_msg)

        stations = self.config.stations
        results = await asyncio.gather(
            *(self._async_guarded_process(station) for station in stations)
        )

        data: dict[str, StationState] = {}
        for station, state in zip(stations, results, strict=True):
            if state is not None:
                data[station.key] = state
            elif self.data and station.key in self.data:
                data[station.key] = self.data[station.key]

        _LOGGER.debug(
            "Polled %d stations, %d available",
            len(data),
            sum(1 for state in data.values() if state.free_ports > 0),
        )
        return data

    async def async_send_test_message(self) -> DispatchResult:
        """Send a test message to every active channel."""
        self.last_test_result = await self.fanout.dispatch(TEST_MESSAGE, ALL_CHANNELS)
        return self.last_test_result

    def reset_notified(self, key: str | None = None) -> list[str]:
        """Clear the notify guard of one station, or all stations."""
        keys = [key] if key else [station.key for station in self.config.stations]
        for station_key in keys:
            self.engine.reset_notified(station_key)
        return keys
