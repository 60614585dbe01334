"""Fan-out of notifications across the configured messaging channels.

Each supported adapter family has its own payload builder: Telegram is
addressed by chat alias and WhatsApp by phone number, both carried as the
notify ``target`` list. Pushover owns its own recipient list. Channels of
any other family are never sent to.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from .const import NOTIFICATION_TITLE
from .models import ChannelConfig, ChannelFamily, DispatchResult

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

_LOGGER = logging.getLogger(__name__)

# Recipients value selecting every active channel
ALL_CHANNELS = None

Sender = Callable[[str, dict[str, Any]], Awaitable[Any]]
PayloadBuilder = Callable[[str, ChannelConfig, Mapping[str, Any]], dict[str, Any]]


def prune_none(value: Any) -> Any:  # noqa: ANN401
    """Recursively drop dict keys whose value is None."""
    if isinstance(value, Mapping):
        return {
            key: prune_none(item) for key, item in value.items() if item is not None
        }
    if isinstance(value, list):
        return [prune_none(item) for item in value if item is not None]
    return value


def recipient_target(user: str | None) -> list[str] | None:
    """Wrap a recipient the way notify services expect their target."""
    return [user] if user else None


def build_telegram_payload(
    message: str, channel: ChannelConfig, context: Mapping[str, Any]
) -> dict[str, Any]:
    """Build a payload addressed to a chat alias."""
    return {
        "message": message,
        "title": NOTIFICATION_TITLE,
        "target": recipient_target(channel.user),
        "data": dict(context),
    }


def build_whatsapp_payload(
    message: str, channel: ChannelConfig, context: Mapping[str, Any]
) -> dict[str, Any]:
    """Build a payload addressed to a phone number.

    Notify services only accept the phone number as target, dedicated
    WhatsApp services take it as ``phone``.
    """
    payload: dict[str, Any] = {"message": message, "data": dict(context)}
    if channel.is_notify:
        payload["target"] = recipient_target(channel.user)
    else:
        payload["phone"] = channel.user
    return payload


def build_pushover_payload(
    message: str,
    channel: ChannelConfig,  # noqa: ARG001
    context: Mapping[str, Any],
) -> dict[str, Any]:
    """Build a payload without recipient, the adapter routes it itself."""
    return {
        "message": message,
        "title": NOTIFICATION_TITLE,
        "data": dict(context),
    }


PAYLOAD_BUILDERS: dict[ChannelFamily, PayloadBuilder] = {
    ChannelFamily.TELEGRAM: build_telegram_payload,
    ChannelFamily.WHATSAPP: build_whatsapp_payload,
    ChannelFamily.PUSHOVER: build_pushover_payload,
}


def build_payload(
    channel: ChannelConfig,
    message: str,
    context: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the pruned payload for a channel.

    Raises:
        ValueError: If the channel family is not supported.

    """
    family = channel.family
    if family is None:
        error_msg = f"Unsupported channel instance: {channel.instance}"
        raise ValueError(error_msg)
    payload = PAYLOAD_BUILDERS[family](message, channel, context or {})
    return prune_none(payload)


def select_channels(channels: Iterable[ChannelConfig]) -> list[ChannelConfig]:
    """Return enabled channels of a supported family, warning about the rest."""
    selected = []
    for channel in channels:
        if not channel.enabled:
            continue
        if channel.family is None:
            _LOGGER.warning(
                "Ignoring channel %s: unsupported messaging adapter", channel.instance
            )
            continue
        selected.append(channel)
    return selected


def create_service_sender(hass: HomeAssistant) -> Sender:
    """Create a sender calling the channel instance as a Home Assistant service."""

    async def _send(instance: str, payload: dict[str, Any]) -> None:
        domain, _, service = instance.partition(".")
        await hass.services.async_call(domain, service, payload, blocking=True)

    return _send


class ChannelFanout:
    """Deliver one message per matching channel, isolating failures."""

    def __init__(self, channels: Iterable[ChannelConfig], sender: Sender) -> None:
        self._channels = select_channels(channels)
        self._sender = sender

    @property
    def channels(self) -> list[ChannelConfig]:
        """Return the active channels."""
        return list(self._channels)

    def resolve(self, recipients: Iterable[str] | None) -> list[ChannelConfig]:
        """Return the active channels for a recipient set.

        None selects every active channel; otherwise channels are matched
        by label, case-insensitively.
        """
        if recipients is ALL_CHANNELS:
            return list(self._channels)
        labels = {label.casefold() for label in recipients}
        return [
            channel
            for channel in self._channels
            if channel.label and channel.label.casefold() in labels
        ]

    async def dispatch(
        self,
        message: str,
        recipients: Iterable[str] | None = ALL_CHANNELS,
        context: Mapping[str, Any] | None = None,
    ) -> DispatchResult:
        """Send a message to every resolved channel.

        Args:
            message: Message text.
            recipients: Channel labels, or None for all active channels.
            context: Station fields merged into each payload.

        Returns:
            DispatchResult with delivered and failed counts.

        """
        targets = self.resolve(recipients)
        if not targets:
            _LOGGER.warning("No active channel matches recipients %s", recipients)
            return DispatchResult()

        ok = 0
        failed = 0
        for channel in targets:
            payload = build_payload(channel, message, context)
            try:
                await self._sender(channel.instance, payload)
            except Exception as err:  # noqa: BLE001
                failed += 1
                _LOGGER.warning(
                    "Failed to send notification via %s: %s", channel.instance, err
                )
            else:
                ok += 1
                _LOGGER.debug("Notification sent via %s", channel.instance)

        _LOGGER.info("Notification delivered to %d channels, %d failed", ok, failed)
        return DispatchResult(ok=ok, failed=failed)
