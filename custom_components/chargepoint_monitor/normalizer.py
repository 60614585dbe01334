"""Normalization of raw station-info payloads.

Maps heterogeneous upstream port records into a canonical port list and
derives the station-level status. Every function here is pure: the same
raw payloads always produce the same result.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

from .const import (
    IN_USE_STATUSES,
    STATUS_AVAILABLE,
    STATUS_IN_USE,
    STATUS_UNAVAILABLE,
    STATUS_UNKNOWN,
    UNAVAILABLE_STATUSES,
    UNKNOWN_CITY,
)
from .models import DualDevice, NormalizedStation, Port, SingleDevice, StationInfo

_LOGGER = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"[-+]?\d[\d.,]*")


def parse_number(value: Any) -> float | None:  # noqa: ANN401
    """Parse a number that may carry units or a locale decimal separator.

    Accepts ints, floats and strings such as ``"22,5 kW"`` or ``"1.234,5"``.

    Returns:
        The parsed float, or None if nothing numeric could be read.

    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
        return None if math.isnan(number) or math.isinf(number) else number
    if not isinstance(value, str):
        return None

    match = _NUMBER_RE.search(value)
    if not match:
        return None

    text = match.group(0).rstrip(".,")
    if "," in text and "." in text:
        # The later separator is the decimal one
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", ".")

    try:
        return float(text)
    except ValueError:
        return None


def normalize_status(value: Any) -> str:  # noqa: ANN401
    """Return a lowercase, underscore-separated status string.

    None and empty values become ``unknown``.
    """
    if value is None:
        return STATUS_UNKNOWN
    text = str(value).strip().lower()
    if not text:
        return STATUS_UNKNOWN
    return re.sub(r"[\s\-]+", "_", text)


def derive_status(ports: Iterable[Port]) -> str:
    """Derive the station status from its ports.

    Precedence: in use, then available, then unavailable, then the status
    of the first port, ``unknown`` without ports.
    """
    statuses = [normalize_status(port.effective_status) for port in ports]
    if not statuses:
        return STATUS_UNKNOWN
    if any(status in IN_USE_STATUSES for status in statuses):
        return STATUS_IN_USE
    if STATUS_AVAILABLE in statuses:
        return STATUS_AVAILABLE
    if any(status in UNAVAILABLE_STATUSES for status in statuses):
        return STATUS_UNAVAILABLE
    return statuses[0]


def count_free_ports(ports: Iterable[Port]) -> int:
    """Count ports whose status normalizes to ``available``."""
    return sum(
        1 for port in ports if normalize_status(port.effective_status) == STATUS_AVAILABLE
    )


def _raw_ports(raw: Mapping[str, Any] | None) -> list[Mapping[str, Any]]:
    if not isinstance(raw, Mapping):
        return []
    ports = raw.get("ports")
    if ports is None and isinstance(raw.get("portsInfo"), Mapping):
        ports = raw["portsInfo"].get("ports")
    if not isinstance(ports, list):
        return []
    return [port for port in ports if isinstance(port, Mapping)]


def _max_power_kw(raw_port: Mapping[str, Any]) -> float | None:
    power_range = raw_port.get("powerRange")
    if isinstance(power_range, Mapping):
        power = parse_number(power_range.get("max"))
        if power is not None:
            return power
    return parse_number(raw_port.get("maxPower"))


def _connectors(raw_port: Mapping[str, Any]) -> list[str]:
    connectors = raw_port.get("connectorList")
    if not isinstance(connectors, list):
        return []
    names = []
    for connector in connectors:
        if isinstance(connector, Mapping):
            name = connector.get("displayPlugType") or connector.get("plugType")
        else:
            name = connector
        if name:
            names.append(str(name))
    return names


def parse_port(raw_port: Mapping[str, Any] | None, outlet_number: int) -> Port:
    """Build a Port from a raw port record, or an empty stub when absent."""
    if not raw_port:
        return Port(outlet_number=outlet_number)

    status_v2 = raw_port.get("statusV2")
    evse_id = raw_port.get("evseId")
    return Port(
        outlet_number=outlet_number,
        status=normalize_status(raw_port.get("status")),
        status_v2=normalize_status(status_v2) if status_v2 not in (None, "") else None,
        evse_id=str(evse_id) if evse_id not in (None, "") else None,
        max_power_kw=_max_power_kw(raw_port),
        connectors=_connectors(raw_port),
    )


def parse_ports(raw: Mapping[str, Any] | None) -> list[Port]:
    """Parse every port of a single-device payload.

    Outlet numbers from the payload are kept when they are unique positive
    integers; otherwise the ports are numbered 1..n in payload order.
    """
    raw_ports = _raw_ports(raw)
    numbers = [parse_number(port.get("outletNumber")) for port in raw_ports]
    usable = all(
        number is not None and number >= 1 and number.is_integer() for number in numbers
    ) and len(set(numbers)) == len(numbers)

    if not usable and raw_ports:
        _LOGGER.debug("Outlet numbers missing or duplicated, renumbering ports")

    return [
        parse_port(raw_port, int(numbers[index]) if usable else index + 1)
        for index, raw_port in enumerate(raw_ports)
    ]


def _first_port(raw: Mapping[str, Any] | None, outlet_number: int) -> Port:
    raw_ports = _raw_ports(raw)
    return parse_port(raw_ports[0] if raw_ports else None, outlet_number)


def _summarize(ports: list[Port], port_count: int) -> NormalizedStation:
    return NormalizedStation(
        ports=tuple(ports),
        port_count=port_count,
        free_ports=count_free_ports(ports),
        derived_status=derive_status(ports),
    )


def normalize(
    raw1: Mapping[str, Any] | None,
    raw2: Mapping[str, Any] | None = None,
    has_second_device: bool = False,  # noqa: FBT001, FBT002
) -> NormalizedStation:
    """Merge one or two raw payloads into a canonical port list.

    Dual-device stations always get exactly two ports, one per device.
    Single-device stations use the ports of the first payload as-is.
    """
    if has_second_device:
        ports = [_first_port(raw1, 1), _first_port(raw2, 2)]
        return _summarize(ports, 2)

    ports = parse_ports(raw1)
    return _summarize(ports, len(ports))


def normalize_layout(
    layout: SingleDevice | DualDevice,
    raw1: Mapping[str, Any] | None,
    raw2: Mapping[str, Any] | None = None,
) -> NormalizedStation:
    """Normalize payloads according to the station's device layout."""
    match layout:
        case DualDevice():
            return normalize(raw1, raw2, has_second_device=True)
        case SingleDevice():
            return normalize(raw1)


def _coordinate(raw: Mapping[str, Any], *names: str) -> float | None:
    for name in names:
        value = parse_number(raw.get(name))
        if value is not None:
            return value
    return None


def parse_station_info(*payloads: Mapping[str, Any] | None) -> StationInfo:
    """Extract city and coordinates from the first payload that has them."""
    city = None
    latitude = None
    longitude = None

    for raw in payloads:
        if not isinstance(raw, Mapping):
            continue
        address = raw.get("address")
        sources = [address, raw] if isinstance(address, Mapping) else [raw]
        for source in sources:
            if city is None:
                value = source.get("city")
                if isinstance(value, str) and value.strip():
                    city = value.strip()
            if latitude is None:
                latitude = _coordinate(source, "latitude", "lat")
            if longitude is None:
                longitude = _coordinate(source, "longitude", "lon", "lng")

    return StationInfo(
        city=city or UNKNOWN_CITY,
        latitude=latitude,
        longitude=longitude,
    )
