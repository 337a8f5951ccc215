"""Magic auth service facade.

Entry point used by the HTTP layer and maintenance scripts. Issuance and
redemption are delegated to LinkIssuer and LinkVerifier.
"""

from typing import Any, Literal

from loguru import logger

from src.core.domain.clock import Clock, utc_now
from src.core.infrastructure.logging import BusinessEvents, mask_identifier
from src.modules.magic_auth.application.commands import (
    SendMagicLinkCommand,
    VerifyMagicLinkCommand,
)
from src.modules.magic_auth.application.issuer import (
    LinkIssuer,
    ThrottlePolicy,
    rate_limit_key,
)
from src.modules.magic_auth.application.results import (
    IssuedLink,
    RateLimited,
    VerificationResult,
)
from src.modules.magic_auth.application.verifier import LinkVerifier
from src.modules.magic_auth.domain.exceptions import RateLimitedError
from src.modules.magic_auth.domain.guards import GuardRegistry
from src.modules.magic_auth.domain.identifiers import (
    NotificationChannel,
    classify_identifier,
)
from src.modules.magic_auth.domain.ports import RateLimiter, UnitOfWorkFactory
from src.modules.magic_auth.domain.repository import MagicLinkStats


class MagicAuthService:
    def __init__(
        self,
        issuer: LinkIssuer,
        verifier: LinkVerifier,
        guards: GuardRegistry,
        uow_factory: UnitOfWorkFactory,
        rate_limiter: RateLimiter,
        throttle: ThrottlePolicy,
        clock: Clock = utc_now,
    ):
        self.issuer = issuer
        self.verifier = verifier
        self.guards = guards
        self.uow_factory = uow_factory
        self.rate_limiter = rate_limiter
        self.throttle = throttle
        self.clock = clock
        self.logger = logger.bind(service="magic_auth")

    async def issue(self, command: SendMagicLinkCommand) -> IssuedLink:
        """Issue and deliver a link, raising RateLimitedError when throttled."""
        outcome = await self.issuer.issue(command)
        if isinstance(outcome, RateLimited):
            raise RateLimitedError(outcome.retry_after_seconds)
        return outcome

    async def send_magic_link(
        self,
        identifier: str,
        guard: str = "web",
        attributes: dict[str, Any] | None = None,
        channels: list[NotificationChannel] | None = None,
    ) -> bool:
        """Send a magic link to an email address or phone number.

        Returns True once the link was delivered. Raises UnknownGuardError,
        RateLimitedError or DeliveryFailedError otherwise.
        """
        command = SendMagicLinkCommand(
            identifier=identifier,
            guard=guard,
            attributes=attributes or {},
            channels=channels,
        )
        await self.issue(command)
        return True

    async def verify(
        self, token: str, guard: str = "web", signature: str | None = None
    ) -> VerificationResult:
        command = VerifyMagicLinkCommand(token=token, guard=guard, signature=signature)
        return await self.verifier.verify(command)

    async def verify_and_login(
        self, token: str, guard: str = "web", signature: str | None = None
    ) -> str | Literal[False]:
        """Redeem a link and return the redirect target, or False when invalid."""
        result = await self.verify(token, guard, signature)
        if not result.success or result.redirect_to is None:
            return False
        return result.redirect_to

    async def is_valid_link(self, token: str, guard: str = "web") -> bool:
        """Check a link without consuming it."""
        async with self.uow_factory() as uow:
            link = await uow.magic_links.find_redeemable(token, guard, self.clock())
        return link is not None

    async def invalidate_links(self, identifier: str, guard: str | None = None) -> int:
        """Void every redeemable link of an identifier, optionally for one guard."""
        recipient = classify_identifier(identifier)
        async with self.uow_factory() as uow:
            count = await uow.magic_links.invalidate_redeemable(
                recipient, guard, self.clock()
            )
        self.logger.info(
            f"Invalidated {count} magic link(s) for {mask_identifier(recipient.value)}"
        )
        return count

    async def cleanup(self) -> int:
        """Delete expired links, used or not. Returns the number removed."""
        async with self.uow_factory() as uow:
            deleted = await uow.magic_links.delete_expired(self.clock())
        BusinessEvents.magic_links_cleaned(deleted)
        return deleted

    async def get_stats(
        self, identifier: str | None = None, guard: str | None = None
    ) -> MagicLinkStats:
        recipient = classify_identifier(identifier) if identifier else None
        async with self.uow_factory() as uow:
            return await uow.magic_links.stats(self.clock(), recipient, guard)

    async def get_remaining_attempts(self, identifier: str) -> int:
        """Sends left for an identifier in the current throttle window."""
        recipient = classify_identifier(identifier)
        return await self.rate_limiter.remaining(
            rate_limit_key(recipient.value), self.throttle.max_attempts
        )
