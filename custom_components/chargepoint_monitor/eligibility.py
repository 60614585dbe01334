"""Notification eligibility for stations that became free.

A notification is owed only when every rule passes:

1. A ``became_free`` edge fired this cycle.
2. The station's toggle is on, or an enabled subscription targets it.
   Either way at least one active channel must receive the message.
3. No notification was sent yet in the current free phase.
4. The per-station cooldown has elapsed.
5. The optional state-of-charge and distance filters pass. Missing inputs
   fail closed.

Only a successful decision mutates state: it marks the free phase as
notified and stamps the send time.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from haversine import Unit, haversine

from .const import (
    REASON_ALREADY_NOTIFIED,
    REASON_COOLDOWN,
    REASON_DISTANCE_EXCEEDED,
    REASON_DISTANCE_UNAVAILABLE,
    REASON_NO_RECIPIENTS,
    REASON_NO_SUBSCRIBERS,
    REASON_NO_TRANSITION,
    REASON_SOC_ABOVE_THRESHOLD,
    REASON_SOC_UNAVAILABLE,
    WILDCARD_SELECTORS,
)
from .models import (
    ChannelConfig,
    EligibilityResult,
    NotifyMeta,
    Settings,
    StationConfig,
    StationInfo,
    SubscriptionConfig,
    TransitionEvent,
)
from .store import BUCKET_NOTIFY, parse_timestamp

if TYPE_CHECKING:
    from .store import StationStateStore

_LOGGER = logging.getLogger(__name__)

SocProvider = Callable[[], float | None]
PositionProvider = Callable[[], tuple[float, float] | None]


def subscription_matches(subscription: SubscriptionConfig, station: StationConfig) -> bool:
    """Check whether a subscription selector targets a station."""
    selector = subscription.station.strip()
    if selector.lower() in WILDCARD_SELECTORS:
        return True
    return selector == station.key or selector.casefold() == station.name.casefold()


def distance_m(
    position: tuple[float, float] | None,
    info: StationInfo | None,
) -> float | None:
    """Return the distance in meters between a position and a station."""
    if position is None or info is None:
        return None
    if info.latitude is None or info.longitude is None:
        return None
    return haversine(position, (info.latitude, info.longitude), unit=Unit.METERS)


class EligibilityEngine:
    """Decide whether a detected transition warrants a notification."""

    def __init__(
        self,
        store: StationStateStore,
        settings: Settings,
        subscriptions: Iterable[SubscriptionConfig] = (),
        soc_provider: SocProvider | None = None,
        position_provider: PositionProvider | None = None,
        channels: Iterable[ChannelConfig] | None = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self._subscriptions = tuple(subscriptions)
        self._soc_provider = soc_provider
        self._position_provider = position_provider
        self._channels = None if channels is None else tuple(channels)
        self._toggles: dict[str, bool] = {}

    def set_toggle(self, key: str, enabled: bool) -> None:  # noqa: FBT001
        """Set the per-station notify-on-available toggle."""
        self._toggles[key] = enabled

    def is_toggled(self, station: StationConfig) -> bool:
        """Return the current toggle, defaulting to the configured value."""
        return self._toggles.get(station.key, station.notify_on_available)

    def get_meta(self, key: str) -> NotifyMeta:
        """Return the notify bookkeeping of a station."""
        record = self._store.get(BUCKET_NOTIFY, key) or {}
        in_range = record.get("in_range")
        return NotifyMeta(
            notified=bool(record.get("notified", False)),
            last_sent_at=parse_timestamp(record.get("last_sent_at")),
            in_range=in_range if isinstance(in_range, bool) else None,
        )

    def _save_meta(self, key: str, meta: NotifyMeta) -> None:
        self._store.set(
            BUCKET_NOTIFY,
            key,
            {
                "notified": meta.notified,
                "last_sent_at": (
                    meta.last_sent_at.isoformat() if meta.last_sent_at else None
                ),
                "in_range": meta.in_range,
            },
        )

    def reset_if_occupied(self, key: str, free_ports: int) -> bool:
        """End the free phase when no port is free.

        Returns:
            True if the notified flag was cleared.

        """
        if free_ports != 0:
            return False
        meta = self.get_meta(key)
        if not meta.notified:
            return False
        meta.notified = False
        self._save_meta(key, meta)
        _LOGGER.debug("%s: fully occupied, notify guard reset", key)
        return True

    def reset_notified(self, key: str) -> None:
        """Clear the notify guard unconditionally."""
        meta = self.get_meta(key)
        meta.notified = False
        self._save_meta(key, meta)

    def matching_subscriptions(self, station: StationConfig) -> list[SubscriptionConfig]:
        """Return the enabled subscriptions targeting a station."""
        return [
            subscription
            for subscription in self._subscriptions
            if subscription.enabled and subscription_matches(subscription, station)
        ]

    def _deliverable(
        self, station: StationConfig, subscriptions: list[SubscriptionConfig]
    ) -> frozenset[str]:
        """Return the subscription recipients labelling an active channel."""
        recipients = frozenset(subscription.recipient for subscription in subscriptions)
        if self._channels is None:
            return recipients
        labels = {channel.label.casefold() for channel in self._channels if channel.label}
        deliverable = frozenset(
            recipient for recipient in recipients if recipient.casefold() in labels
        )
        if unmatched := recipients - deliverable:
            _LOGGER.warning(
                "%s: no active channel is labelled %s",
                station.key,
                ", ".join(sorted(unmatched)),
            )
        return deliverable

    def _resolve_recipients(
        self,
        station: StationConfig,
        subscriptions: list[SubscriptionConfig],
        reasons: list[str],
    ) -> frozenset[str] | None:
        if not subscriptions and not self.is_toggled(station):
            reasons.append(REASON_NO_SUBSCRIBERS)
            return None
        if deliverable := self._deliverable(station, subscriptions):
            return deliverable
        # The toggle falls back to every active channel
        if not self.is_toggled(station) or self._channels == ():
            reasons.append(REASON_NO_RECIPIENTS)
        return None

    def _current_soc(self) -> float | None:
        if self._soc_provider is None:
            return None
        return self._soc_provider()

    def _current_position(self) -> tuple[float, float] | None:
        if self._position_provider is None:
            return None
        return self._position_provider()

    def _check_soc(self, reasons: list[str]) -> None:
        threshold = self._settings.soc_threshold
        if threshold is None:
            return
        soc = self._current_soc()
        if soc is None:
            reasons.append(REASON_SOC_UNAVAILABLE)
        elif soc >= threshold:
            reasons.append(REASON_SOC_ABOVE_THRESHOLD)

    def _check_distance(self, info: StationInfo | None, reasons: list[str]) -> bool | None:
        max_distance = self._settings.max_distance_m
        if max_distance is None:
            return None
        distance = distance_m(self._current_position(), info)
        if distance is None:
            reasons.append(REASON_DISTANCE_UNAVAILABLE)
            return None
        if distance > max_distance:
            reasons.append(REASON_DISTANCE_EXCEEDED)
            return False
        return True

    def decide(
        self,
        station: StationConfig,
        event: TransitionEvent,
        info: StationInfo | None = None,
        now: datetime | None = None,
    ) -> EligibilityResult:
        """Evaluate every rule and record the send on success.

        Args:
            station: The station configuration.
            event: Transition detected this cycle.
            info: Location of the station, used by the distance filter.
            now: Current time, defaults to now in UTC.

        Returns:
            EligibilityResult. On success ``recipients`` holds the labels of
            the matched subscriptions that reach an active channel, or None
            meaning every active channel.

        """
        now = now or datetime.now(UTC)
        reasons: list[str] = []

        if not event.became_free:
            reasons.append(REASON_NO_TRANSITION)

        subscriptions = self.matching_subscriptions(station)
        recipients = self._resolve_recipients(station, subscriptions, reasons)

        meta = self.get_meta(station.key)
        if meta.notified:
            reasons.append(REASON_ALREADY_NOTIFIED)

        cooldown = self._settings.notify_cooldown_min
        if cooldown and meta.last_sent_at is not None:
            if now - meta.last_sent_at < timedelta(minutes=cooldown):
                reasons.append(REASON_COOLDOWN)

        self._check_soc(reasons)
        in_range = self._check_distance(info, reasons)

        if reasons:
            _LOGGER.debug(
                "%s: not eligible for notification: %s",
                station.key,
                ", ".join(reasons),
            )
            return EligibilityResult(eligible=False, reasons=tuple(reasons))

        meta.notified = True
        meta.last_sent_at = now
        if in_range is not None:
            meta.in_range = in_range
        self._save_meta(station.key, meta)

        _LOGGER.debug(
            "%s: eligible for notification, recipients: %s",
            station.key,
            ", ".join(sorted(recipients)) if recipients else "all channels",
        )
        return EligibilityResult(eligible=True, recipients=recipients)
