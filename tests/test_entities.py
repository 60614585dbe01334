"""Tests for the ChargePoint Monitor sensor and switch entities."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, Mock

import pytest
from homeassistant.const import STATE_OFF, STATE_ON

from custom_components.chargepoint_monitor.const import DOMAIN
from custom_components.chargepoint_monitor.eligibility import EligibilityEngine
from custom_components.chargepoint_monitor.models import (
    Port,
    Settings,
    StationConfig,
    StationInfo,
    StationState,
)
from custom_components.chargepoint_monitor.sensor import (
    ChargePointFreePortsSensor,
    ChargePointStatusSensor,
)
from custom_components.chargepoint_monitor.sensor import (
    async_setup_entry as async_setup_sensors,
)
from custom_components.chargepoint_monitor.store import StationStateStore
from custom_components.chargepoint_monitor.switch import (
    ChargePointNotifySwitch,
)
from custom_components.chargepoint_monitor.switch import (
    async_setup_entry as async_setup_switches,
)

LAST_UPDATE = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def station() -> StationConfig:
    """Create a dual-device station."""
    return StationConfig(name="Alpha", device_id="111", device_id2="112")


@pytest.fixture
def mock_coordinator(
    station: StationConfig, station_store: StationStateStore
) -> Mock:
    """Create a mock coordinator with a real eligibility engine."""
    coordinator = Mock()
    coordinator.config.stations = (station,)
    coordinator.data = {}
    coordinator.engine = EligibilityEngine(station_store, Settings(poll_interval_min=5))
    coordinator.async_add_listener = Mock(return_value=Mock())
    return coordinator


@pytest.fixture
def station_state(station: StationConfig) -> StationState:
    """Create a published station state."""
    return StationState(
        config=station,
        status="in_use",
        last_update=LAST_UPDATE,
        info=StationInfo(city="Berlin", latitude=52.52, longitude=13.405),
        ports=(
            Port(outlet_number=1, status="available"),
            Port(outlet_number=2, status="charging"),
        ),
        port_count=2,
        free_ports=1,
        has_data=True,
    )


class TestAsyncSetupEntry:
    """Tests for the platform setup functions."""

    @pytest.mark.asyncio
    async def test_sensor_setup_creates_two_sensors_per_station(
        self, mock_coordinator: Mock
    ) -> None:
        """Test that every station gets a status and a free ports sensor."""
        hass = Mock()
        hass.data = {DOMAIN: {"test_entry": {"coordinator": mock_coordinator}}}
        entry = Mock()
        entry.entry_id = "test_entry"
        async_add_entities = Mock()
        await async_setup_sensors(hass, entry, async_add_entities)
        entities = async_add_entities.call_args[0][0]
        assert [type(entity) for entity in entities] == [
            ChargePointStatusSensor,
            ChargePointFreePortsSensor,
        ]

    @pytest.mark.asyncio
    async def test_switch_setup_creates_one_switch_per_station(
        self, mock_coordinator: Mock
    ) -> None:
        """Test that every station gets a notify switch."""
        hass = Mock()
        hass.data = {DOMAIN: {"test_entry": {"coordinator": mock_coordinator}}}
        entry = Mock()
        entry.entry_id = "test_entry"
        async_add_entities = Mock()
        await async_setup_switches(hass, entry, async_add_entities)
        entities = async_add_entities.call_args[0][0]
        assert len(entities) == 1
        assert isinstance(entities[0], ChargePointNotifySwitch)


class TestChargePointStatusSensor:
    """Tests for ChargePointStatusSensor."""

    def test_unique_id_and_device_info(
        self, mock_coordinator: Mock, station: StationConfig
    ) -> None:
        """Test that ids are derived from the station key."""
        sensor = ChargePointStatusSensor(mock_coordinator, station)
        assert sensor.unique_id == f"{DOMAIN}_alpha_status"
        assert sensor.device_info["identifiers"] == {(DOMAIN, "alpha")}
        assert sensor.device_info["name"] == "Alpha"

    def test_native_value_is_initialized_before_first_poll(
        self, mock_coordinator: Mock, station: StationConfig
    ) -> None:
        """Test that the sensor reports initialized without data."""
        sensor = ChargePointStatusSensor(mock_coordinator, station)
        assert sensor.native_value == "initialized"
        assert sensor.extra_state_attributes == {"device_ids": ["111", "112"]}

    def test_native_value_and_attributes_follow_station_state(
        self,
        mock_coordinator: Mock,
        station: StationConfig,
        station_state: StationState,
    ) -> None:
        """Test that the sensor exposes the published station state."""
        mock_coordinator.data = {"alpha": station_state}
        sensor = ChargePointStatusSensor(mock_coordinator, station)
        assert sensor.native_value == "in_use"
        attributes = sensor.extra_state_attributes
        assert attributes["city"] == "Berlin"
        assert attributes["free_ports"] == 1
        assert attributes["port_count"] == 2
        assert attributes["ports"][1]["status"] == "charging"
        assert attributes["last_update"] == LAST_UPDATE.isoformat()
        assert attributes["notify_on_available"] is False


class TestChargePointFreePortsSensor:
    """Tests for ChargePointFreePortsSensor."""

    def test_native_value_reports_free_ports(
        self,
        mock_coordinator: Mock,
        station: StationConfig,
        station_state: StationState,
    ) -> None:
        """Test that the sensor reports the free port count."""
        sensor = ChargePointFreePortsSensor(mock_coordinator, station)
        assert sensor.native_value is None
        mock_coordinator.data = {"alpha": station_state}
        assert sensor.native_value == 1
        assert sensor.unique_id == f"{DOMAIN}_alpha_free_ports"


class TestChargePointStationEntityListener:
    """Tests for coordinator listener handling."""

    @pytest.mark.asyncio
    async def test_async_added_to_hass_registers_listener(
        self, mock_coordinator: Mock, station: StationConfig
    ) -> None:
        """Test that async_added_to_hass registers a coordinator listener."""
        sensor = ChargePointStatusSensor(mock_coordinator, station)
        await sensor.async_added_to_hass()
        mock_coordinator.async_add_listener.assert_called_once()

    @pytest.mark.asyncio
    async def test_async_will_remove_from_hass_unsubscribes_listener(
        self, mock_coordinator: Mock, station: StationConfig
    ) -> None:
        """Test that async_will_remove_from_hass unsubscribes the listener."""
        sensor = ChargePointStatusSensor(mock_coordinator, station)
        mock_unsub = Mock()
        sensor._coordinator_listener_unsub = mock_unsub
        await sensor.async_will_remove_from_hass()
        mock_unsub.assert_called_once()
        assert sensor._coordinator_listener_unsub is None

    def test_coordinator_update_writes_state(
        self, mock_coordinator: Mock, station: StationConfig
    ) -> None:
        """Test that coordinator updates write the entity state."""
        sensor = ChargePointStatusSensor(mock_coordinator, station)
        sensor.async_write_ha_state = Mock()
        sensor._handle_coordinator_update()
        sensor.async_write_ha_state.assert_called_once()


class TestChargePointNotifySwitch:
    """Tests for ChargePointNotifySwitch."""

    def test_is_on_defaults_to_configuration(
        self, mock_coordinator: Mock
    ) -> None:
        """Test that the switch starts from the configured toggle."""
        station = StationConfig(name="Beta", device_id="222", notify_on_available=True)
        switch = ChargePointNotifySwitch(mock_coordinator, station)
        assert switch.is_on is True
        assert switch.unique_id == f"{DOMAIN}_beta_notify_on_available"

    @pytest.mark.asyncio
    async def test_turn_on_and_off_set_engine_toggle(
        self, mock_coordinator: Mock, station: StationConfig
    ) -> None:
        """Test that switching updates the eligibility toggle."""
        switch = ChargePointNotifySwitch(mock_coordinator, station)
        switch.async_write_ha_state = Mock()

        await switch.async_turn_on()
        assert mock_coordinator.engine.is_toggled(station) is True

        await switch.async_turn_off()
        assert mock_coordinator.engine.is_toggled(station) is False
        assert switch.async_write_ha_state.call_count == 2

    @pytest.mark.asyncio
    async def test_async_added_to_hass_restores_toggle(
        self, mock_coordinator: Mock, station: StationConfig
    ) -> None:
        """Test that the last switch state overrides the configuration."""
        switch = ChargePointNotifySwitch(mock_coordinator, station)
        switch.async_get_last_state = AsyncMock(return_value=Mock(state=STATE_ON))
        await switch.async_added_to_hass()
        assert switch.is_on is True

    @pytest.mark.asyncio
    async def test_async_added_to_hass_keeps_configuration_without_state(
        self, mock_coordinator: Mock
    ) -> None:
        """Test that the configured toggle is kept when nothing was stored."""
        station = StationConfig(name="Beta", device_id="222", notify_on_available=True)
        switch = ChargePointNotifySwitch(mock_coordinator, station)
        switch.async_get_last_state = AsyncMock(return_value=None)
        await switch.async_added_to_hass()
        assert switch.is_on is True

    @pytest.mark.asyncio
    async def test_async_added_to_hass_restores_off_state(
        self, mock_coordinator: Mock
    ) -> None:
        """Test that a restored off state disables notifications."""
        station = StationConfig(name="Beta", device_id="222", notify_on_available=True)
        switch = ChargePointNotifySwitch(mock_coordinator, station)
        switch.async_get_last_state = AsyncMock(return_value=Mock(state=STATE_OFF))
        await switch.async_added_to_hass()
        assert switch.is_on is False
