"""Channel resolution and delivery of magic link messages."""

import re
from collections.abc import Iterable, Sequence

from loguru import logger

from src.modules.magic_auth.domain.exceptions import NotificationDeliveryError
from src.modules.magic_auth.domain.identifiers import (
    EmailIdentifier,
    NotificationChannel,
    PhoneIdentifier,
)
from src.modules.magic_auth.domain.ports import LinkMessage, NotificationSender

_PLACEHOLDER = re.compile(r":(app|url|minutes)\b")


def render_message(template: str, *, app: str, url: str, minutes: int) -> str:
    """Fill the `:app`, `:url` and `:minutes` placeholders in one pass.

    >>> render_message("Login to :app: :url (:minutes min)", app="Acme", url="https://x", minutes=15)
    'Login to Acme: https://x (15 min)'
    """
    values = {"app": app, "url": url, "minutes": str(minutes)}
    return _PLACEHOLDER.sub(lambda match: values[match.group(1)], template)


class NotificationDispatcher:
    """Selects channels for a recipient and sends through each of them."""

    def __init__(
        self,
        senders: Iterable[NotificationSender],
        default_channels: Sequence[str | NotificationChannel],
        available_channels: Sequence[str | NotificationChannel],
    ) -> None:
        self._senders = {sender.channel: sender for sender in senders}
        self.default_channels = tuple(NotificationChannel(c) for c in default_channels)
        self.available_channels = frozenset(
            NotificationChannel(c) for c in available_channels
        )
        self.logger = logger.bind(service="notification_dispatcher")

    def _usable(
        self,
        requested: Iterable[NotificationChannel],
        recipient: EmailIdentifier | PhoneIdentifier,
    ) -> tuple[NotificationChannel, ...]:
        usable: list[NotificationChannel] = []
        for channel in requested:
            if (
                channel in self.available_channels
                and channel in recipient.capabilities
                and channel in self._senders
                and channel not in usable
            ):
                usable.append(channel)
        return tuple(usable)

    def resolve_channels(
        self,
        recipient: EmailIdentifier | PhoneIdentifier,
        override: Sequence[NotificationChannel] | None = None,
    ) -> tuple[NotificationChannel, ...]:
        """Override, else the recipient's own channels, else the configured default.

        Every candidate is filtered by the available list, the recipient's
        capabilities and the registered senders. May return an empty tuple.
        """
        requested = tuple(override) if override else recipient.capabilities
        channels = self._usable(requested, recipient)
        if not channels:
            channels = self._usable(self.default_channels, recipient)
        return channels

    async def dispatch(
        self,
        message: LinkMessage,
        channels: Sequence[NotificationChannel],
    ) -> None:
        """Send through every channel; the first failure aborts delivery."""
        if not channels:
            raise NotificationDeliveryError(
                None, f"no delivery channel available for {message.recipient.kind}"
            )

        for channel in channels:
            sender = self._senders[channel]
            try:
                await sender.send(message)
            except NotificationDeliveryError:
                raise
            except Exception as e:
                self.logger.error(f"Sender {channel.value} crashed: {e}")
                raise NotificationDeliveryError(channel, str(e)) from e
            self.logger.debug(f"Magic link dispatched via {channel.value}")
