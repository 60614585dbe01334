"""Persistent per-station state for ChargePoint Monitor.

Thin keyed layer over Home Assistant's JSON storage helper. Records are
grouped in buckets (transition records, notify bookkeeping) and keyed by
station key; every write is an idempotent upsert stamped with ``updated_at``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from .const import STORAGE_SAVE_DELAY

if TYPE_CHECKING:
    from homeassistant.helpers.storage import Store

_LOGGER = logging.getLogger(__name__)

BUCKET_TRANSITIONS = "transitions"
BUCKET_NOTIFY = "notify"
BUCKETS = (BUCKET_TRANSITIONS, BUCKET_NOTIFY)


class StationStateStore:
    """Keyed get/set/delete access to persisted station records."""

    def __init__(self, store: Store[dict[str, Any]]) -> None:
        self._store = store
        self._data: dict[str, dict[str, dict[str, Any]]] = {
            bucket: {} for bucket in BUCKETS
        }
        self._locks: dict[str, asyncio.Lock] = {}
        self.loaded = False

    async def async_load(self) -> None:
        """Load persisted records, tolerating a missing or foreign file."""
        stored = await self._store.async_load()
        if isinstance(stored, dict):
            for bucket in BUCKETS:
                records = stored.get(bucket)
                if isinstance(records, dict):
                    self._data[bucket] = {
                        str(key): dict(value)
                        for key, value in records.items()
                        if isinstance(value, dict)
                    }
        self.loaded = True
        _LOGGER.debug(
            "Loaded persisted state for %d stations",
            len(self.keys()),
        )

    def lock(self, key: str) -> asyncio.Lock:
        """Return the lock serializing access to one station's records."""
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def get(self, bucket: str, key: str) -> dict[str, Any] | None:
        """Return a copy of a record, or None when absent."""
        record = self._data[bucket].get(key)
        return dict(record) if record is not None else None

    def set(self, bucket: str, key: str, value: dict[str, Any]) -> None:
        """Upsert a record and schedule a save."""
        self._data[bucket][key] = {
            **value,
            "updated_at": datetime.now(UTC).isoformat(),
        }
        self._schedule_save()

    def delete(self, key: str) -> None:
        """Remove every record of a station."""
        removed = False
        for bucket in BUCKETS:
            removed = self._data[bucket].pop(key, None) is not None or removed
        self._locks.pop(key, None)
        if removed:
            _LOGGER.debug("Deleted persisted state for %s", key)
            self._schedule_save()

    def keys(self) -> set[str]:
        """Return every station key with at least one record."""
        keys: set[str] = set()
        for bucket in BUCKETS:
            keys.update(self._data[bucket])
        return keys

    def purge_except(self, keep: Iterable[str]) -> list[str]:
        """Delete records of stations that are no longer configured.

        Returns:
            The purged station keys, sorted.

        """
        stale = sorted(self.keys() - set(keep))
        for key in stale:
            self.delete(key)
        if stale:
            _LOGGER.info("Purged state of removed stations: %s", ", ".join(stale))
        return stale

    async def async_save(self) -> None:
        """Write all records immediately."""
        await self._store.async_save(self._snapshot())

    def _schedule_save(self) -> None:
        self._store.async_delay_save(self._snapshot, STORAGE_SAVE_DELAY)

    def _snapshot(self) -> dict[str, Any]:
        return {bucket: dict(records) for bucket, records in self._data.items()}


def parse_timestamp(value: Any) -> datetime | None:  # noqa: ANN401
    """Parse an ISO timestamp written by this store."""
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
