"""Configuration schemas and parsing for ChargePoint Monitor.

The YAML block and the config entry data share one shape. The top-level
schema only checks structure; each station, channel and subscription is then
validated on its own so that one malformed entry is skipped with a warning
instead of failing the whole setup.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import voluptuous as vol
from homeassistant.const import CONF_NAME
from homeassistant.helpers import config_validation as cv

from .const import (
    CONF_CHANNELS,
    CONF_COOLDOWN_MIN,
    CONF_DEVICE_ID,
    CONF_DEVICE_ID2,
    CONF_ENABLED,
    CONF_INSTANCE,
    CONF_LABEL,
    CONF_LEGACY_STATUS_TRIGGER,
    CONF_MAX_DISTANCE_M,
    CONF_MAX_PARALLEL,
    CONF_NOTIFY_ON_AVAILABLE,
    CONF_POLL_INTERVAL_MIN,
    CONF_POSITION_ENTITY,
    CONF_RECIPIENT,
    CONF_SOC_ENTITY,
    CONF_SOC_THRESHOLD,
    CONF_STATION,
    CONF_STATIONS,
    CONF_SUBSCRIPTIONS,
    CONF_USER,
    DEFAULT_COOLDOWN_MIN,
    DEFAULT_MAX_PARALLEL,
    DEFAULT_POLL_INTERVAL_MIN,
    DOMAIN,
)
from .models import (
    ChannelConfig,
    MonitorConfig,
    Settings,
    StationConfig,
    SubscriptionConfig,
)

_LOGGER = logging.getLogger(__name__)

STATION_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_NAME, default=""): vol.Any(None, cv.string),
        vol.Required(CONF_DEVICE_ID): cv.string,
        vol.Optional(CONF_DEVICE_ID2): vol.Any(None, cv.string),
        vol.Optional(CONF_ENABLED, default=True): cv.boolean,
        vol.Optional(CONF_NOTIFY_ON_AVAILABLE, default=False): cv.boolean,
    },
    extra=vol.REMOVE_EXTRA,
)

CHANNEL_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_INSTANCE): cv.service,
        vol.Optional(CONF_USER): vol.Any(None, cv.string),
        vol.Optional(CONF_LABEL): vol.Any(None, cv.string),
        vol.Optional(CONF_ENABLED, default=True): cv.boolean,
    },
    extra=vol.REMOVE_EXTRA,
)

SUBSCRIPTION_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_STATION): cv.string,
        vol.Required(CONF_RECIPIENT): cv.string,
        vol.Optional(CONF_ENABLED, default=True): cv.boolean,
    },
    extra=vol.REMOVE_EXTRA,
)

SETTINGS_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_POLL_INTERVAL_MIN, default=DEFAULT_POLL_INTERVAL_MIN): vol.All(
            vol.Coerce(float), vol.Range(min=1)
        ),
        vol.Optional(CONF_COOLDOWN_MIN, default=DEFAULT_COOLDOWN_MIN): vol.All(
            vol.Coerce(float), vol.Range(min=0)
        ),
        vol.Optional(CONF_SOC_THRESHOLD): vol.Any(
            None, vol.All(vol.Coerce(float), vol.Range(min=0, max=100))
        ),
        vol.Optional(CONF_SOC_ENTITY): vol.Any(None, cv.entity_id),
        vol.Optional(CONF_MAX_DISTANCE_M): vol.Any(
            None, vol.All(vol.Coerce(float), vol.Range(min=0))
        ),
        vol.Optional(CONF_POSITION_ENTITY): vol.Any(None, cv.entity_id),
        vol.Optional(CONF_MAX_PARALLEL, default=DEFAULT_MAX_PARALLEL): vol.All(
            vol.Coerce(int), vol.Range(min=1, max=10)
        ),
        vol.Optional(CONF_LEGACY_STATUS_TRIGGER, default=False): cv.boolean,
    },
    extra=vol.REMOVE_EXTRA,
)

MONITOR_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_STATIONS, default=[]): vol.All(cv.ensure_list, list),
        vol.Optional(CONF_CHANNELS, default=[]): vol.All(cv.ensure_list, list),
        vol.Optional(CONF_SUBSCRIPTIONS, default=[]): vol.All(cv.ensure_list, list),
    },
    extra=vol.ALLOW_EXTRA,
)

CONFIG_SCHEMA = vol.Schema({DOMAIN: MONITOR_SCHEMA}, extra=vol.ALLOW_EXTRA)


def _validate_entries(
    entries: list[Any], schema: vol.Schema, kind: str
) -> list[dict[str, Any]]:
    valid = []
    for index, entry in enumerate(entries):
        try:
            valid.append(schema(entry))
        except vol.Invalid as err:
            _LOGGER.warning("Skipping invalid %s #%d (%s): %s", kind, index + 1, entry, err)
    return valid


def validate_settings(data: Mapping[str, Any]) -> dict[str, Any]:
    """Validate global settings, dropping invalid keys back to their defaults."""
    names = [str(key) for key in SETTINGS_SCHEMA.schema]
    candidate = {name: data[name] for name in names if name in data}
    while True:
        try:
            return SETTINGS_SCHEMA(candidate)
        except vol.MultipleInvalid as err:
            dropped = {error.path[0] for error in err.errors if error.path}
            if not dropped:
                raise
            for key in dropped:
                _LOGGER.warning(
                    "Ignoring invalid setting %s=%s, using default",
                    key,
                    candidate.pop(key, None),
                )


def _none_if_zero(value: float | None) -> float | None:
    return value if value else None


def parse_config(data: Mapping[str, Any]) -> MonitorConfig:
    """Parse raw configuration into a MonitorConfig.

    Invalid entries and stations with duplicate keys are skipped with a
    warning. A threshold of 0 disables its filter.
    """
    data = MONITOR_SCHEMA(dict(data))

    stations: list[StationConfig] = []
    seen_keys: set[str] = set()
    for entry in _validate_entries(data[CONF_STATIONS], STATION_SCHEMA, "station"):
        station = StationConfig(
            name=entry.get(CONF_NAME) or "",
            device_id=entry[CONF_DEVICE_ID],
            device_id2=entry.get(CONF_DEVICE_ID2) or None,
            enabled=entry[CONF_ENABLED],
            notify_on_available=entry[CONF_NOTIFY_ON_AVAILABLE],
        )
        if station.key in seen_keys:
            _LOGGER.warning("Skipping duplicate station %s", station.key)
            continue
        seen_keys.add(station.key)
        stations.append(station)

    channels = tuple(
        ChannelConfig(
            instance=entry[CONF_INSTANCE],
            user=entry.get(CONF_USER) or None,
            label=entry.get(CONF_LABEL) or None,
            enabled=entry[CONF_ENABLED],
        )
        for entry in _validate_entries(data[CONF_CHANNELS], CHANNEL_SCHEMA, "channel")
    )

    subscriptions = tuple(
        SubscriptionConfig(
            station=entry[CONF_STATION],
            recipient=entry[CONF_RECIPIENT],
            enabled=entry[CONF_ENABLED],
        )
        for entry in _validate_entries(
            data[CONF_SUBSCRIPTIONS], SUBSCRIPTION_SCHEMA, "subscription"
        )
    )

    raw_settings = validate_settings(data)
    settings = Settings(
        poll_interval_min=raw_settings[CONF_POLL_INTERVAL_MIN],
        notify_cooldown_min=raw_settings[CONF_COOLDOWN_MIN],
        soc_threshold=_none_if_zero(raw_settings.get(CONF_SOC_THRESHOLD)),
        soc_entity=raw_settings.get(CONF_SOC_ENTITY),
        max_distance_m=_none_if_zero(raw_settings.get(CONF_MAX_DISTANCE_M)),
        position_entity=raw_settings.get(CONF_POSITION_ENTITY),
        max_parallel=raw_settings[CONF_MAX_PARALLEL],
        legacy_status_trigger=raw_settings[CONF_LEGACY_STATUS_TRIGGER],
    )

    return MonitorConfig(
        stations=tuple(stations),
        channels=channels,
        subscriptions=subscriptions,
        settings=settings,
    )
