"""Data models for ChargePoint Monitor integration."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from .const import NOTIFY_DOMAIN, STATUS_UNKNOWN, UNKNOWN_CITY


def station_key(name: str | None, device_id: str) -> str:
    """Build the storage and entity key for a station from its display name."""
    if name:
        key = re.sub(r"[^a-z0-9]", "_", name.lower())
        if key.strip("_"):
            return key
    return f"station_{device_id}"


@dataclass(frozen=True, slots=True)
class SingleDevice:
    """Station reporting all of its ports through one upstream device."""

    device_id: str


@dataclass(frozen=True, slots=True)
class DualDevice:
    """Station backed by two upstream devices, one port each."""

    device_id: str
    device_id2: str


@dataclass(frozen=True)
class StationConfig:
    """Represents a configured charging station.

    Attributes:
        name: Display name of the station.
        device_id: Upstream device identifier.
        device_id2: Second upstream device for dual-device stations.
        enabled: Whether the station is polled at all.
        notify_on_available: Per-station notification toggle.

    """

    name: str
    device_id: str
    device_id2: str | None = None
    enabled: bool = True
    notify_on_available: bool = False

    @property
    def key(self) -> str:
        """Return the stable key used for storage and entity ids."""
        return station_key(self.name, self.device_id)

    @property
    def layout(self) -> SingleDevice | DualDevice:
        """Return the device layout of the station."""
        if self.device_id2:
            return DualDevice(self.device_id, self.device_id2)
        return SingleDevice(self.device_id)

    @property
    def device_ids(self) -> tuple[str, ...]:
        """Return all upstream device identifiers of the station."""
        match self.layout:
            case DualDevice(device_id, device_id2):
                return (device_id, device_id2)
            case SingleDevice(device_id):
                return (device_id,)


class ChannelFamily(StrEnum):
    """Supported messaging adapter families."""

    TELEGRAM = "telegram"
    WHATSAPP = "whatsapp"
    PUSHOVER = "pushover"


@dataclass(frozen=True)
class ChannelConfig:
    """Represents a configured messaging channel.

    The instance is a Home Assistant service in ``<domain>.<service>`` form.
    The family comes from the domain for dedicated integrations such as
    ``telegram_bot.send_message``, and from the service name for notify
    platforms such as ``notify.telegram_home`` or ``notify.pushover``.
    """

    instance: str
    user: str | None = None
    label: str | None = None
    enabled: bool = True

    @property
    def service_domain(self) -> str:
        """Return the service domain part of the instance."""
        domain, _, _ = self.instance.partition(".")
        return domain

    @property
    def service_name(self) -> str:
        """Return the service name part of the instance."""
        _, _, service = self.instance.partition(".")
        return service

    @property
    def family(self) -> ChannelFamily | None:
        """Return the adapter family, or None when unsupported."""
        domain = self.service_domain.lower()
        if domain == NOTIFY_DOMAIN:
            prefix = self.service_name.lower()
        else:
            prefix = domain
        for family in ChannelFamily:
            if prefix.startswith(family.value):
                return family
        return None

    @property
    def is_notify(self) -> bool:
        """Return True when the instance is a notify platform service."""
        return self.service_domain.lower() == NOTIFY_DOMAIN


@dataclass(frozen=True)
class SubscriptionConfig:
    """Maps a station selector to a recipient label."""

    station: str
    recipient: str
    enabled: bool = True


@dataclass(frozen=True)
class Settings:
    """Global thresholds and options."""

    poll_interval_min: float
    notify_cooldown_min: float = 0
    soc_threshold: float | None = None
    soc_entity: str | None = None
    max_distance_m: float | None = None
    position_entity: str | None = None
    max_parallel: int = 1
    legacy_status_trigger: bool = False
    request_timeout: float = 10.0


@dataclass(frozen=True)
class MonitorConfig:
    """Complete validated configuration of the integration."""

    stations: tuple[StationConfig, ...]
    channels: tuple[ChannelConfig, ...] = ()
    subscriptions: tuple[SubscriptionConfig, ...] = ()
    settings: Settings = field(default_factory=lambda: Settings(poll_interval_min=5))


@dataclass(slots=True)
class Port:
    """Represents one outlet of a station as reported by the API."""

    outlet_number: int
    status: str = STATUS_UNKNOWN
    status_v2: str | None = None
    evse_id: str | None = None
    max_power_kw: float | None = None
    connectors: list[str] = field(default_factory=list)

    @property
    def effective_status(self) -> str:
        """Return statusV2 when present, else status."""
        return self.status_v2 or self.status

    def as_dict(self) -> dict[str, Any]:
        """Return a plain dict for entity attributes."""
        return {
            "outlet": self.outlet_number,
            "status": self.effective_status,
            "evse_id": self.evse_id,
            "max_power_kw": self.max_power_kw,
            "connectors": list(self.connectors),
        }


@dataclass(frozen=True, slots=True)
class StationInfo:
    """Location data of a station, refreshed every cycle."""

    city: str = UNKNOWN_CITY
    latitude: float | None = None
    longitude: float | None = None


@dataclass(frozen=True, slots=True)
class NormalizedStation:
    """Canonical port list and derived counters of a station."""

    ports: tuple[Port, ...]
    port_count: int
    free_ports: int
    derived_status: str


@dataclass(slots=True)
class StationState:
    """State of a station published by the coordinator after a cycle."""

    config: StationConfig
    status: str
    last_update: datetime
    info: StationInfo = field(default_factory=StationInfo)
    ports: tuple[Port, ...] = ()
    port_count: int = 0
    free_ports: int = 0
    has_data: bool = False


@dataclass(frozen=True, slots=True)
class TransitionRecord:
    """Last observed free-port count and derived status of a station."""

    free_ports: int
    derived_status: str


@dataclass(slots=True)
class NotifyMeta:
    """Notification bookkeeping of a station."""

    notified: bool = False
    last_sent_at: datetime | None = None
    in_range: bool | None = None


@dataclass(frozen=True, slots=True)
class TransitionEvent:
    """Result of comparing a new reading against the previous record."""

    was_zero: bool
    became_free: bool
    prev_status: str | None
    prev_free_ports: int | None = None


@dataclass(frozen=True)
class EligibilityResult:
    """Outcome of a notification eligibility decision."""

    eligible: bool
    reasons: tuple[str, ...] = ()
    recipients: frozenset[str] | None = None


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Aggregate outcome of a fan-out."""

    ok: int = 0
    failed: int = 0
