"""Transition detection between consecutive station readings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .const import STATUS_AVAILABLE
from .models import TransitionEvent, TransitionRecord
from .store import BUCKET_TRANSITIONS

if TYPE_CHECKING:
    from .store import StationStateStore

_LOGGER = logging.getLogger(__name__)


class TransitionDetector:
    """Compare new readings against the last persisted record of a station.

    The canonical trigger is the free-port edge from exactly 0 to more than 0.
    With ``legacy_status_trigger`` enabled, a derived-status change to
    ``available`` also counts. The first observation of a station never fires.
    """

    def __init__(
        self,
        store: StationStateStore,
        *,
        legacy_status_trigger: bool = False,
    ) -> None:
        self._store = store
        self._legacy_status_trigger = legacy_status_trigger

    def previous(self, key: str) -> TransitionRecord | None:
        """Return the last committed record of a station."""
        record = self._store.get(BUCKET_TRANSITIONS, key)
        if record is None:
            return None
        free_ports = record.get("free_ports")
        if not isinstance(free_ports, int) or isinstance(free_ports, bool):
            return None
        status = record.get("derived_status")
        return TransitionRecord(
            free_ports=free_ports,
            derived_status=status if isinstance(status, str) else "",
        )

    def detect(self, key: str, new_free_ports: int, new_status: str) -> TransitionEvent:
        """Classify the change from the previous record to the new reading."""
        previous = self.previous(key)
        if previous is None:
            _LOGGER.debug("%s: first observation (%d free)", key, new_free_ports)
            return TransitionEvent(was_zero=False, became_free=False, prev_status=None)

        was_zero = previous.free_ports == 0
        became_free = was_zero and new_free_ports > 0

        if (
            not became_free
            and self._legacy_status_trigger
            and previous.derived_status != STATUS_AVAILABLE
            and new_status == STATUS_AVAILABLE
        ):
            _LOGGER.debug(
                "%s: status changed %s -> %s, firing legacy trigger",
                key,
                previous.derived_status,
                new_status,
            )
            became_free = True

        if became_free:
            _LOGGER.debug(
                "%s: became free (%d -> %d, %s -> %s)",
                key,
                previous.free_ports,
                new_free_ports,
                previous.derived_status,
                new_status,
            )

        return TransitionEvent(
            was_zero=was_zero,
            became_free=became_free,
            prev_status=previous.derived_status or None,
            prev_free_ports=previous.free_ports,
        )

    def commit(self, key: str, new_free_ports: int, new_status: str) -> None:
        """Overwrite the persisted record with the new reading."""
        self._store.set(
            BUCKET_TRANSITIONS,
            key,
            {"free_ports": new_free_ports, "derived_status": new_status},
        )
