"""Magic link issuance."""

from dataclasses import dataclass

from loguru import logger

from src.core.domain.clock import Clock, utc_now
from src.core.domain.events import EventBusProtocol
from src.core.infrastructure.logging import BusinessEvents, mask_identifier
from src.modules.magic_auth.application.commands import SendMagicLinkCommand
from src.modules.magic_auth.application.notifications import NotificationDispatcher
from src.modules.magic_auth.application.results import IssuedLink, IssueOutcome, RateLimited
from src.modules.magic_auth.domain.entities import MagicLink
from src.modules.magic_auth.domain.events import (
    MagicLinkFailed,
    MagicLinkGenerating,
    MagicLinkSent,
)
from src.modules.magic_auth.domain.exceptions import (
    DeliveryFailedError,
    NotificationDeliveryError,
)
from src.modules.magic_auth.domain.guards import GuardRegistry
from src.modules.magic_auth.domain.identifiers import classify_identifier
from src.modules.magic_auth.domain.ports import (
    LinkMessage,
    LinkSigner,
    RateLimiter,
    UnitOfWorkFactory,
)

RATE_LIMIT_PREFIX = "magic-link"


def rate_limit_key(identifier: str) -> str:
    return f"{RATE_LIMIT_PREFIX}:{identifier}"


@dataclass(frozen=True)
class ThrottlePolicy:
    max_attempts: int
    decay_seconds: int


class LinkIssuer:
    """Issue a magic link and hand it to the delivery channels.

    Only successful deliveries count against the throttle, so a caller whose
    send failed can retry straight away.
    """

    def __init__(
        self,
        guards: GuardRegistry,
        uow_factory: UnitOfWorkFactory,
        rate_limiter: RateLimiter,
        throttle: ThrottlePolicy,
        dispatcher: NotificationDispatcher,
        signer: LinkSigner,
        event_bus: EventBusProtocol,
        app_name: str,
        clock: Clock = utc_now,
    ):
        self.guards = guards
        self.uow_factory = uow_factory
        self.rate_limiter = rate_limiter
        self.throttle = throttle
        self.dispatcher = dispatcher
        self.signer = signer
        self.event_bus = event_bus
        self.app_name = app_name
        self.clock = clock
        self.logger = logger.bind(service="link_issuer")

    async def issue(self, command: SendMagicLinkCommand) -> IssueOutcome:
        guard = self.guards.get(command.guard)
        recipient = classify_identifier(command.identifier)
        key = rate_limit_key(recipient.value)

        if await self.rate_limiter.too_many_attempts(key, self.throttle.max_attempts):
            retry_after = await self.rate_limiter.available_in(key)
            BusinessEvents.magic_link_rate_limited(
                identifier=recipient.value,
                guard=guard.name,
                retry_after_seconds=retry_after,
            )
            return RateLimited(retry_after_seconds=retry_after)

        now = self.clock()
        expires_at = self.guards.expires_at(guard, now)
        link = MagicLink.issue(recipient, guard.name, command.attributes, expires_at, now)

        # 作废旧链接与写入新链接在同一事务内完成，同一 (recipient, guard) 串行执行
        async with self.uow_factory() as uow:
            await uow.magic_links.lock_recipient(recipient, guard.name)
            invalidated = await uow.magic_links.invalidate_redeemable(
                recipient, guard.name, now
            )
            link = await uow.magic_links.create(link)

        if invalidated:
            self.logger.info(
                f"Superseded {invalidated} magic link(s) for "
                f"{mask_identifier(recipient.value)} on guard {guard.name}"
            )

        channels = self.dispatcher.resolve_channels(recipient, command.channels)
        message = LinkMessage(
            recipient=recipient,
            guard=guard.name,
            url=self.signer.build_url(link.token, guard.name, expires_at),
            expires_at=expires_at,
            expires_minutes=self.guards.expiration_minutes(guard),
            app_name=self.app_name,
        )

        await self.event_bus.publish(
            MagicLinkGenerating(
                guard=guard.name,
                identifier=recipient.value,
                magic_link_id=link.id,
                channels=[channel.value for channel in channels],
            )
        )

        try:
            await self.dispatcher.dispatch(message, channels)
        except NotificationDeliveryError as e:
            await self._void(link)
            self.logger.warning(f"Magic link delivery failed: {e}")
            await self.event_bus.publish(
                MagicLinkFailed(
                    guard=guard.name,
                    identifier=recipient.value,
                    magic_link_id=link.id,
                    error=str(e),
                )
            )
            raise DeliveryFailedError(str(e)) from e

        await self.event_bus.publish(
            MagicLinkSent(
                guard=guard.name,
                identifier=recipient.value,
                magic_link_id=link.id,
                channels=[channel.value for channel in channels],
                expires_at=expires_at,
            )
        )
        await self.rate_limiter.hit(key, self.throttle.decay_seconds)

        return IssuedLink(
            magic_link_id=link.id,
            url=message.url,
            expires_at=expires_at,
            channels=tuple(channels),
        )

    async def _void(self, link: MagicLink) -> None:
        """Make an undelivered link unusable."""
        async with self.uow_factory() as uow:
            await uow.magic_links.mark_used_if_redeemable(link.id, self.clock())
