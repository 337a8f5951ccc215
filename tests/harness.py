"""MagicAuthService wired to in-memory adapters for unit tests."""

from dataclasses import dataclass

from src.core.domain.events import EventBus
from src.modules.magic_auth.application.issuer import LinkIssuer, ThrottlePolicy
from src.modules.magic_auth.application.notifications import NotificationDispatcher
from src.modules.magic_auth.application.service import MagicAuthService
from src.modules.magic_auth.application.verifier import LinkVerifier
from src.modules.magic_auth.domain.guards import GuardRegistry
from src.modules.magic_auth.domain.identifiers import NotificationChannel
from src.modules.magic_auth.infrastructure.rate_limiter import InMemoryRateLimiter
from src.modules.magic_auth.infrastructure.signed_url import JWTLinkSigner
from tests.fakes import (
    EventRecorder,
    FrozenClock,
    InMemoryStore,
    RecordingSender,
    StaticAuthenticator,
    recording_bus,
    uow_factory_for,
)

TEST_SECRET = "test-secret-key-for-testing-only-0123456789"
VERIFY_URL = "http://testserver/api/v1/auth/verify"

GUARDS = {
    "web": {"provider": "users", "redirect_on_success": "/dashboard"},
    "admin": {"provider": "admins", "link_expiration": 5, "redirect_on_success": "/admin"},
}


@dataclass
class MagicAuthHarness:
    """Service wired to in-memory adapters, with handles on every fake."""

    clock: FrozenClock
    store: InMemoryStore
    guards: GuardRegistry
    rate_limiter: InMemoryRateLimiter
    throttle: ThrottlePolicy
    senders: dict[NotificationChannel, RecordingSender]
    signer: JWTLinkSigner
    authenticator: StaticAuthenticator
    event_bus: EventBus
    recorder: EventRecorder
    issuer: LinkIssuer
    verifier: LinkVerifier
    service: MagicAuthService

    def sent(self, channel: NotificationChannel = NotificationChannel.MAIL):
        return self.senders[channel].messages


def build_harness(
    senders: list | None = None,
    default_channels: list[str] | None = None,
    available_channels: list[str] | None = None,
    max_attempts: int = 5,
    decay_seconds: int = 600,
    authenticator: StaticAuthenticator | None = None,
) -> MagicAuthHarness:
    clock = FrozenClock()
    store = InMemoryStore()
    guards = GuardRegistry.from_mapping(GUARDS, default_expiration_minutes=15)
    rate_limiter = InMemoryRateLimiter(clock)
    throttle = ThrottlePolicy(max_attempts=max_attempts, decay_seconds=decay_seconds)
    if senders is None:
        senders = [RecordingSender(channel) for channel in NotificationChannel]
    signer = JWTLinkSigner(TEST_SECRET, VERIFY_URL, clock=clock)
    authenticator = authenticator or StaticAuthenticator()
    event_bus, recorder = recording_bus()
    uow_factory = uow_factory_for(store)

    dispatcher = NotificationDispatcher(
        senders=senders,
        default_channels=default_channels or ["mail"],
        available_channels=available_channels or ["mail", "whatsapp", "sms"],
    )
    issuer = LinkIssuer(
        guards=guards,
        uow_factory=uow_factory,
        rate_limiter=rate_limiter,
        throttle=throttle,
        dispatcher=dispatcher,
        signer=signer,
        event_bus=event_bus,
        app_name="TestApp",
        clock=clock,
    )
    verifier = LinkVerifier(
        guards=guards,
        uow_factory=uow_factory,
        signer=signer,
        authenticator=authenticator,
        event_bus=event_bus,
        clock=clock,
        password_hash_factory=lambda: "placeholder-hash",
    )
    service = MagicAuthService(
        issuer=issuer,
        verifier=verifier,
        guards=guards,
        uow_factory=uow_factory,
        rate_limiter=rate_limiter,
        throttle=throttle,
        clock=clock,
    )
    return MagicAuthHarness(
        clock=clock,
        store=store,
        guards=guards,
        rate_limiter=rate_limiter,
        throttle=throttle,
        senders={sender.channel: sender for sender in senders},
        signer=signer,
        authenticator=authenticator,
        event_bus=event_bus,
        recorder=recorder,
        issuer=issuer,
        verifier=verifier,
        service=service,
    )


