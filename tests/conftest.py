"""Pytest configuration and fixtures for ChargePoint Monitor tests."""

from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from custom_components.chargepoint_monitor.store import StationStateStore


def create_port(
    status: str | None = "available",
    status_v2: str | None = None,
    outlet_number: int | None = 1,
) -> dict[str, Any]:
    """Create a raw port record as returned by the station-info API.

    Args:
        status: Raw status text.
        status_v2: Optional richer status text.
        outlet_number: Optional outlet number.

    Returns:
        A dictionary representing one entry of the ports array.

    """
    port: dict[str, Any] = {
        "status": status,
        "evseId": f"DE*CPI*E{outlet_number}",
        "powerRange": {"min": "3,7", "max": "22,0 kW"},
        "connectorList": [{"plugType": "Type2", "displayPlugType": "Type 2"}],
    }
    if status_v2 is not None:
        port["statusV2"] = status_v2
    if outlet_number is not None:
        port["outletNumber"] = outlet_number
    return port


def create_payload(*ports: dict[str, Any], city: str = "Berlin") -> dict[str, Any]:
    """Create a raw station-info payload.

    Args:
        *ports: Raw port records.
        city: City reported in the address block.

    Returns:
        A dictionary representing a station-info API response.

    """
    return {
        "deviceId": 12345,
        "address": {
            "address1": "Hauptstr. 1",
            "city": city,
            "latitude": "52,5200",
            "longitude": 13.405,
        },
        "ports": list(ports),
    }


@pytest.fixture
def mock_ha_store() -> Mock:
    """Create a mock Home Assistant storage helper."""
    store = Mock()
    store.async_load = AsyncMock(return_value=None)
    store.async_save = AsyncMock()
    store.async_delay_save = Mock()
    return store


@pytest.fixture
def station_store(mock_ha_store: Mock) -> StationStateStore:
    """Create a loaded, empty station state store."""
    store = StationStateStore(mock_ha_store)
    store.loaded = True
    return store


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    """Fixture providing a single-device payload with two ports."""
    return create_payload(
        create_port("AVAILABLE", outlet_number=1),
        create_port("Charging", outlet_number=2),
    )
