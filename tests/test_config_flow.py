"""Tests for the ChargePoint Monitor Config Flow."""

from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest
from homeassistant.const import CONF_NAME
from homeassistant.data_entry_flow import FlowResultType

from custom_components.chargepoint_monitor import api
from custom_components.chargepoint_monitor.config_flow import (
    YAML_UNIQUE_ID,
    ChargePointMonitorConfigFlow,
)
from custom_components.chargepoint_monitor.const import (
    CONF_DEVICE_ID,
    CONF_DEVICE_ID2,
    CONF_NOTIFY_ON_AVAILABLE,
    CONF_STATIONS,
    ERROR_API_ERROR,
    ERROR_CANNOT_CONNECT,
    ERROR_TIMEOUT,
    ERROR_UNKNOWN,
)

FETCH_PATH = "custom_components.chargepoint_monitor.config_flow.api.async_get_station_info"
CLIENT_PATH = "custom_components.chargepoint_monitor.config_flow.get_async_client"


@pytest.fixture
def mock_hass() -> Mock:
    """Create a mock Home Assistant instance."""
    return Mock()


@pytest.fixture
def flow(mock_hass: Mock) -> ChargePointMonitorConfigFlow:
    """Create a ChargePointMonitorConfigFlow instance for testing."""
    flow_instance = ChargePointMonitorConfigFlow()
    flow_instance.hass = mock_hass
    flow_instance.async_set_unique_id = AsyncMock()
    flow_instance._abort_if_unique_id_configured = Mock()
    flow_instance.async_create_entry = Mock(
        return_value={"type": FlowResultType.CREATE_ENTRY},
    )
    flow_instance.async_show_form = Mock(return_value={"type": FlowResultType.FORM})
    return flow_instance


@pytest.fixture
def user_input() -> dict[str, object]:
    """Fixture providing form input for a dual-device station."""
    return {
        CONF_NAME: " Alpha ",
        CONF_DEVICE_ID: "111",
        CONF_DEVICE_ID2: "112",
        CONF_NOTIFY_ON_AVAILABLE: True,
    }


class TestChargePointMonitorConfigFlowAsyncStepUser:
    """Tests for async_step_user method."""

    @pytest.mark.asyncio
    async def test_async_step_user_shows_form_when_no_input(
        self,
        flow: ChargePointMonitorConfigFlow,
    ) -> None:
        """Test that async_step_user shows form when no input provided."""
        result = await flow.async_step_user()
        flow.async_show_form.assert_called_once()
        assert result["type"] == FlowResultType.FORM

    @pytest.mark.asyncio
    async def test_async_step_user_creates_entry_after_validation(
        self,
        flow: ChargePointMonitorConfigFlow,
        user_input: dict[str, object],
    ) -> None:
        """Test that async_step_user validates both devices and creates entry."""
        mock_session = Mock()
        with (
            patch(CLIENT_PATH, return_value=mock_session),
            patch(FETCH_PATH, return_value={"ports": []}) as mock_fetch,
        ):
            result = await flow.async_step_user(user_input)

        assert result["type"] == FlowResultType.CREATE_ENTRY
        assert [call.args for call in mock_fetch.await_args_list] == [
            (mock_session, "111"),
            (mock_session, "112"),
        ]
        flow.async_set_unique_id.assert_awaited_once_with("alpha")
        call_args = flow.async_create_entry.call_args
        assert call_args.kwargs["title"] == "ChargePoint (Alpha)"
        station = call_args.kwargs["data"][CONF_STATIONS][0]
        assert station[CONF_NAME] == "Alpha"
        assert station[CONF_DEVICE_ID2] == "112"
        assert station[CONF_NOTIFY_ON_AVAILABLE] is True

    @pytest.mark.asyncio
    async def test_async_step_user_omits_blank_second_device(
        self,
        flow: ChargePointMonitorConfigFlow,
    ) -> None:
        """Test that a blank second device id is not stored."""
        user_input = {
            CONF_NAME: "Beta",
            CONF_DEVICE_ID: "222",
            CONF_DEVICE_ID2: "  ",
            CONF_NOTIFY_ON_AVAILABLE: False,
        }
        with (
            patch(CLIENT_PATH, return_value=Mock()),
            patch(FETCH_PATH, return_value={"ports": []}) as mock_fetch,
        ):
            await flow.async_step_user(user_input)

        assert mock_fetch.await_count == 1
        station = flow.async_create_entry.call_args.kwargs["data"][CONF_STATIONS][0]
        assert CONF_DEVICE_ID2 not in station

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (httpx.ReadTimeout("Timed out"), ERROR_TIMEOUT),
            (httpx.ConnectError("Connection failed"), ERROR_CANNOT_CONNECT),
            (api.ChargePointApiResponseError("Station not found"), ERROR_API_ERROR),
            (RuntimeError("Unexpected"), ERROR_UNKNOWN),
        ],
    )
    @pytest.mark.asyncio
    async def test_async_step_user_shows_error_on_failure(
        self,
        flow: ChargePointMonitorConfigFlow,
        user_input: dict[str, object],
        error: Exception,
        expected: str,
    ) -> None:
        """Test that validation failures are mapped to form errors."""
        with (
            patch(CLIENT_PATH, return_value=Mock()),
            patch(FETCH_PATH, side_effect=error),
        ):
            result = await flow.async_step_user(user_input)

        assert result["type"] == FlowResultType.FORM
        flow.async_create_entry.assert_not_called()
        call_args = flow.async_show_form.call_args
        assert call_args.kwargs["errors"] == {"base": expected}


class TestChargePointMonitorConfigFlowAsyncStepImport:
    """Tests for async_step_import method."""

    @pytest.mark.asyncio
    async def test_async_step_import_creates_yaml_entry(
        self,
        flow: ChargePointMonitorConfigFlow,
    ) -> None:
        """Test that the YAML block is imported into a single entry."""
        import_data = {CONF_STATIONS: [{CONF_NAME: "Alpha", CONF_DEVICE_ID: "111"}]}
        result = await flow.async_step_import(import_data)

        assert result["type"] == FlowResultType.CREATE_ENTRY
        flow.async_set_unique_id.assert_awaited_once_with(YAML_UNIQUE_ID)
        flow._abort_if_unique_id_configured.assert_called_once_with(updates=import_data)
        flow.async_create_entry.assert_called_once_with(
            title="ChargePoint Monitor", data=import_data
        )
