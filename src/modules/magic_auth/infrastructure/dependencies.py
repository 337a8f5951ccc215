"""Magic auth module dependencies.

Wires the application services to SQLAlchemy, Redis, SMTP and Twilio from
`settings`. The service is built once per process.
"""

from functools import lru_cache

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.config import Settings, settings
from src.core.domain.clock import Clock, utc_now
from src.core.domain.events import EventBus
from src.core.infrastructure.database.session import AsyncSessionLocal
from src.core.infrastructure.email.smtp import SMTPProvider
from src.core.infrastructure.redis import RedisClient, get_redis_client
from src.core.infrastructure.security.jwt import get_token_service
from src.modules.magic_auth.application.issuer import LinkIssuer, ThrottlePolicy
from src.modules.magic_auth.application.notifications import NotificationDispatcher
from src.modules.magic_auth.application.observers import register_event_logger
from src.modules.magic_auth.application.service import MagicAuthService
from src.modules.magic_auth.application.verifier import LinkVerifier
from src.modules.magic_auth.domain.guards import GuardRegistry
from src.modules.magic_auth.domain.identifiers import NotificationChannel
from src.modules.magic_auth.domain.ports import NotificationSender, RateLimiter
from src.modules.magic_auth.infrastructure.authenticator import JWTSessionAuthenticator
from src.modules.magic_auth.infrastructure.channels import (
    LogLinkSender,
    SMTPMailSender,
    TwilioMessageSender,
)
from src.modules.magic_auth.infrastructure.rate_limiter import (
    InMemoryRateLimiter,
    RedisRateLimiter,
)
from src.modules.magic_auth.infrastructure.signed_url import JWTLinkSigner
from src.modules.magic_auth.infrastructure.unit_of_work import (
    SQLAlchemyMagicAuthUnitOfWork,
)


def build_rate_limiter(
    config: Settings, redis: RedisClient, clock: Clock = utc_now
) -> RateLimiter:
    if config.MAGIC_AUTH_RATE_LIMIT_BACKEND == "memory":
        return InMemoryRateLimiter(clock)
    return RedisRateLimiter(redis)


def build_senders(config: Settings) -> list[NotificationSender]:
    """Register a sender for every channel that has credentials configured."""
    senders: list[NotificationSender] = []

    if config.emails_enabled:
        senders.append(SMTPMailSender(SMTPProvider(), config.MAGIC_AUTH_MAIL_SUBJECT))

    if config.twilio_enabled:
        twilio_routes = (
            (NotificationChannel.SMS, config.TWILIO_SMS_FROM, config.MAGIC_AUTH_SMS_MESSAGE),
            (
                NotificationChannel.WHATSAPP,
                config.TWILIO_WHATSAPP_FROM,
                config.MAGIC_AUTH_WHATSAPP_MESSAGE,
            ),
        )
        for channel, from_number, template in twilio_routes:
            if not from_number:
                continue
            senders.append(
                TwilioMessageSender(
                    channel=channel,
                    account_sid=config.TWILIO_ACCOUNT_SID or "",
                    auth_token=config.TWILIO_AUTH_TOKEN or "",
                    from_number=from_number,
                    template=template,
                    api_base=config.TWILIO_API_BASE,
                    timeout=config.TWILIO_TIMEOUT_SECONDS,
                )
            )

    if config.MAGIC_AUTH_LOG_ONLY_DELIVERY:
        configured = {sender.channel for sender in senders}
        for channel in NotificationChannel:
            if channel not in configured:
                logger.warning(f"No {channel.value} provider configured, links will be logged")
                senders.append(LogLinkSender(channel))

    return senders


def build_dispatcher(config: Settings) -> NotificationDispatcher:
    return NotificationDispatcher(
        senders=build_senders(config),
        default_channels=config.MAGIC_AUTH_CHANNELS_DEFAULT,
        available_channels=config.MAGIC_AUTH_CHANNELS_AVAILABLE,
    )


def build_magic_auth_service(
    config: Settings = settings,
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
    redis: RedisClient | None = None,
    clock: Clock = utc_now,
) -> MagicAuthService:
    guards = GuardRegistry.from_mapping(
        config.MAGIC_AUTH_GUARDS, config.MAGIC_LINK_EXPIRE_MINUTES
    )
    throttle = ThrottlePolicy(
        max_attempts=config.MAGIC_AUTH_THROTTLE_MAX_ATTEMPTS,
        decay_seconds=config.MAGIC_AUTH_THROTTLE_DECAY_MINUTES * 60,
    )
    rate_limiter = build_rate_limiter(config, redis or get_redis_client(), clock)
    signer = JWTLinkSigner(
        secret_key=config.SECRET_KEY,
        verify_url=config.magic_link_verify_url,
        algorithm=config.JWT_ALGORITHM,
        clock=clock,
    )

    event_bus = EventBus()
    register_event_logger(event_bus)

    def uow_factory() -> SQLAlchemyMagicAuthUnitOfWork:
        return SQLAlchemyMagicAuthUnitOfWork(session_factory)

    issuer = LinkIssuer(
        guards=guards,
        uow_factory=uow_factory,
        rate_limiter=rate_limiter,
        throttle=throttle,
        dispatcher=build_dispatcher(config),
        signer=signer,
        event_bus=event_bus,
        app_name=config.PROJECT_NAME,
        clock=clock,
    )
    verifier = LinkVerifier(
        guards=guards,
        uow_factory=uow_factory,
        signer=signer,
        authenticator=JWTSessionAuthenticator(get_token_service()),
        event_bus=event_bus,
        clock=clock,
    )
    return MagicAuthService(
        issuer=issuer,
        verifier=verifier,
        guards=guards,
        uow_factory=uow_factory,
        rate_limiter=rate_limiter,
        throttle=throttle,
        clock=clock,
    )


@lru_cache(maxsize=1)
def get_magic_auth_service() -> MagicAuthService:
    return build_magic_auth_service()
