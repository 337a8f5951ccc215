"""Magic link redemption."""

import asyncio
from collections.abc import Callable
from datetime import datetime

from loguru import logger

from src.core.domain.clock import Clock, utc_now
from src.core.domain.events import EventBusProtocol
from src.modules.magic_auth.application.commands import VerifyMagicLinkCommand
from src.modules.magic_auth.application.results import VerificationResult
from src.modules.magic_auth.domain.entities import MagicLink
from src.modules.magic_auth.domain.events import (
    MagicLinkVerificationCompleted,
    MagicLinkVerificationError,
    MagicLinkVerificationFailed,
    MagicLinkVerificationStarted,
)
from src.modules.magic_auth.domain.exceptions import (
    InvalidSignatureError,
    VerificationTransactionError,
)
from src.modules.magic_auth.domain.guards import GuardConfig
from src.modules.magic_auth.domain.guards import GuardRegistry
from src.modules.magic_auth.domain.ports import (
    LinkSigner,
    SessionAuthenticator,
    UnitOfWorkFactory,
)
from src.modules.users.application.passwords import new_placeholder_password_hash
from src.modules.users.domain.entities import User
from src.modules.users.domain.repository import UserRepository


def default_display_name(identifier: str) -> str:
    """Local part of an email address, or the phone number itself."""
    return identifier.split("@", 1)[0]


class LinkVerifier:
    """Redeem a magic link exactly once and sign the user in.

    Marking the link used, provisioning the account and the login itself share
    one transaction: either all of them happen or none does.
    """

    def __init__(
        self,
        guards: GuardRegistry,
        uow_factory: UnitOfWorkFactory,
        signer: LinkSigner,
        authenticator: SessionAuthenticator,
        event_bus: EventBusProtocol,
        clock: Clock = utc_now,
        password_hash_factory: Callable[[], str] = new_placeholder_password_hash,
    ):
        self.guards = guards
        self.uow_factory = uow_factory
        self.signer = signer
        self.authenticator = authenticator
        self.event_bus = event_bus
        self.clock = clock
        self.password_hash_factory = password_hash_factory
        self.logger = logger.bind(service="link_verifier")

    async def verify(self, command: VerifyMagicLinkCommand) -> VerificationResult:
        guard = self.guards.get(command.guard)

        if command.signature is not None:
            try:
                self.signer.verify(command.token, guard.name, command.signature)
            except InvalidSignatureError as e:
                return await self._reject(guard.name, f"invalid_signature: {e}")

        now = self.clock()
        async with self.uow_factory() as uow:
            link = await uow.magic_links.find_redeemable(command.token, guard.name, now)
        if link is None:
            return await self._reject(guard.name, "not_found_or_expired")

        try:
            async with self.uow_factory() as uow:
                await self.event_bus.publish(
                    MagicLinkVerificationStarted(
                        guard=guard.name,
                        identifier=link.identifier,
                        magic_link_id=link.id,
                    )
                )
                claimed = await uow.magic_links.mark_used_if_redeemable(link.id, now)
                if claimed:
                    user = await self._provision_user(uow.users, link, guard, now)
                    user.record_login(now)
                    user = await uow.users.update(user)
                    access_token = await self.authenticator.login(user, guard, now)
        except Exception as e:
            self.logger.error(
                f"Magic link redemption rolled back: link_id={link.id}, error={e}"
            )
            await self.event_bus.publish(
                MagicLinkVerificationError(
                    guard=guard.name,
                    identifier=link.identifier,
                    magic_link_id=link.id,
                    error=str(e),
                )
            )
            raise VerificationTransactionError(str(e)) from e

        if not claimed:
            # 并发兑换：另一请求已先一步将其标记为已使用
            return await self._reject(guard.name, "already_used", link.identifier)

        await self.event_bus.publish(
            MagicLinkVerificationCompleted(
                guard=guard.name,
                identifier=link.identifier,
                magic_link_id=link.id,
                user_id=user.id,
                redirect_to=guard.redirect_on_success,
            )
        )
        return VerificationResult(
            success=True,
            redirect_to=guard.redirect_on_success,
            user=user,
            access_token=access_token,
        )

    async def _provision_user(
        self,
        users: UserRepository,
        link: MagicLink,
        guard: GuardConfig,
        now: datetime,
    ) -> User:
        """Find or create the account for the link's identifier.

        Attributes only seed new accounts; an existing account without a
        password gets a random, never-disclosed one.
        """
        attributes = dict(link.attributes)
        name = attributes.pop("name", None) or default_display_name(link.identifier)
        candidate = User(
            provider=guard.provider,
            email=link.email,
            phone=link.phone,
            name=str(name),
            email_verified_at=now if link.email else None,
            attributes=attributes,
            created_at=now,
            updated_at=now,
        )
        user, created = await users.get_or_create(candidate)
        if created:
            self.logger.info(f"Created user {user.id} from magic link on guard {guard.name}")
        if not user.has_password():
            # bcrypt 计算耗时，放到线程中执行
            password_hash = await asyncio.to_thread(self.password_hash_factory)
            user.set_password_hash(password_hash, now)
        return user

    async def _reject(
        self, guard: str, reason: str, identifier: str | None = None
    ) -> VerificationResult:
        await self.event_bus.publish(
            MagicLinkVerificationFailed(guard=guard, identifier=identifier, reason=reason)
        )
        return VerificationResult.invalid()
