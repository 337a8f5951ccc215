"""Tests for channel resolution, dispatch and channel adapters."""

from datetime import UTC, datetime, timedelta

import httpx
import pytest

from src.core.infrastructure.email.smtp import EmailResult
from src.core.infrastructure.email.template_loader import render_email
from src.modules.magic_auth.application.notifications import (
    NotificationDispatcher,
    render_message,
)
from src.modules.magic_auth.domain.exceptions import NotificationDeliveryError
from src.modules.magic_auth.domain.identifiers import (
    EmailIdentifier,
    NotificationChannel,
    PhoneIdentifier,
)
from src.modules.magic_auth.domain.ports import LinkMessage
from src.modules.magic_auth.infrastructure.channels import (
    LogLinkSender,
    SMTPMailSender,
    TwilioMessageSender,
)
from tests.fakes import FailingSender, RecordingSender

MAIL = NotificationChannel.MAIL
SMS = NotificationChannel.SMS
WHATSAPP = NotificationChannel.WHATSAPP

EMAIL = EmailIdentifier(value="alice@example.com")
PHONE = PhoneIdentifier(value="+15551234567")


def make_message(recipient=EMAIL) -> LinkMessage:
    expires_at = datetime(2026, 1, 1, 12, 15, tzinfo=UTC)
    return LinkMessage(
        recipient=recipient,
        guard="web",
        url="https://app.test/api/v1/auth/verify?token=abc",
        expires_at=expires_at,
        expires_minutes=15,
        app_name="TestApp",
    )


def make_dispatcher(senders, default=("mail",), available=("mail", "whatsapp", "sms")):
    return NotificationDispatcher(senders, list(default), list(available))


class TestRenderMessage:
    def test_replaces_all_placeholders(self):
        text = render_message(
            "Your :app login link: :url (expires in :minutes minutes)",
            app="Acme",
            url="https://x.test/v",
            minutes=15,
        )

        assert text == "Your Acme login link: https://x.test/v (expires in 15 minutes)"

    def test_values_are_not_rescanned(self):
        text = render_message(":url", app="A", url="https://x.test/?q=:app", minutes=1)

        assert text == "https://x.test/?q=:app"


class TestResolveChannels:
    def test_email_recipient_uses_mail(self):
        dispatcher = make_dispatcher([RecordingSender(c) for c in (MAIL, SMS, WHATSAPP)])

        assert dispatcher.resolve_channels(EMAIL) == (MAIL,)

    def test_phone_recipient_uses_whatsapp_and_sms(self):
        dispatcher = make_dispatcher([RecordingSender(c) for c in (MAIL, SMS, WHATSAPP)])

        assert dispatcher.resolve_channels(PHONE) == (WHATSAPP, SMS)

    def test_override_is_filtered_by_capability(self):
        dispatcher = make_dispatcher([RecordingSender(c) for c in (MAIL, SMS, WHATSAPP)])

        assert dispatcher.resolve_channels(PHONE, [SMS, MAIL]) == (SMS,)

    def test_unavailable_channels_are_dropped(self):
        dispatcher = make_dispatcher(
            [RecordingSender(c) for c in (MAIL, SMS, WHATSAPP)], available=("mail", "sms")
        )

        assert dispatcher.resolve_channels(PHONE) == (SMS,)

    def test_channels_without_sender_are_dropped(self):
        dispatcher = make_dispatcher([RecordingSender(MAIL)])

        assert dispatcher.resolve_channels(PHONE) == ()

    def test_falls_back_to_default_when_override_is_unusable(self):
        dispatcher = make_dispatcher(
            [RecordingSender(c) for c in (MAIL, SMS, WHATSAPP)], default=("sms",)
        )

        assert dispatcher.resolve_channels(PHONE, [MAIL]) == (SMS,)


class TestDispatch:
    @pytest.mark.anyio
    async def test_sends_through_every_channel(self):
        whatsapp, sms = RecordingSender(WHATSAPP), RecordingSender(SMS)
        dispatcher = make_dispatcher([whatsapp, sms])
        message = make_message(PHONE)

        await dispatcher.dispatch(message, (WHATSAPP, SMS))

        assert whatsapp.messages == [message]
        assert sms.messages == [message]

    @pytest.mark.anyio
    async def test_empty_channel_set_fails(self):
        dispatcher = make_dispatcher([])

        with pytest.raises(NotificationDeliveryError):
            await dispatcher.dispatch(make_message(), ())

    @pytest.mark.anyio
    async def test_unexpected_sender_error_is_wrapped(self):
        dispatcher = make_dispatcher([FailingSender(MAIL, RuntimeError("boom"))])

        with pytest.raises(NotificationDeliveryError) as exc_info:
            await dispatcher.dispatch(make_message(), (MAIL,))

        assert exc_info.value.channel == MAIL
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class FakeSMTPProvider:
    def __init__(self, configured: bool = True) -> None:
        self.configured = configured
        self.sent: list[tuple[str, str, str, str | None]] = []

    def is_configured(self) -> bool:
        return self.configured

    def send(self, to_email, subject, html_body, plain_body=None) -> EmailResult:
        self.sent.append((to_email, subject, html_body, plain_body))
        return EmailResult(success=True, message_id="<id@test>")


class TestSMTPMailSender:
    @pytest.mark.anyio
    async def test_renders_and_sends_email(self):
        provider = FakeSMTPProvider()
        sender = SMTPMailSender(provider, "Your Magic Login Link")

        await sender.send(make_message())

        to_email, subject, html_body, plain_body = provider.sent[0]
        assert to_email == "alice@example.com"
        assert subject == "Your Magic Login Link"
        assert "https://app.test/api/v1/auth/verify?token=abc" in html_body
        assert "15 minutes" in plain_body
        assert "TestApp" in plain_body

    @pytest.mark.anyio
    async def test_unconfigured_provider_fails_fast(self):
        provider = FakeSMTPProvider(configured=False)
        sender = SMTPMailSender(provider, "Subject")

        with pytest.raises(NotificationDeliveryError):
            await sender.send(make_message())

        assert provider.sent == []


class TestTwilioMessageSender:
    @staticmethod
    def make_sender(channel, handler) -> TwilioMessageSender:
        return TwilioMessageSender(
            channel=channel,
            account_sid="AC123",
            auth_token="secret",
            from_number="+15550000000",
            template="Your :app login link: :url (expires in :minutes minutes)",
            api_base="https://twilio.test/2010-04-01",
            transport=httpx.MockTransport(handler),
        )

    @pytest.mark.anyio
    async def test_posts_sms(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(201, json={"sid": "SM1"})

        await self.make_sender(SMS, handler).send(make_message(PHONE))

        request = requests[0]
        assert request.url.path == "/2010-04-01/Accounts/AC123/Messages.json"
        body = dict(httpx.QueryParams(request.content.decode()))
        assert body["To"] == "+15551234567"
        assert body["From"] == "+15550000000"
        assert body["Body"].startswith("Your TestApp login link: https://app.test/")
        assert request.headers["authorization"].startswith("Basic ")

    @pytest.mark.anyio
    async def test_whatsapp_addresses_are_prefixed(self):
        bodies: list[dict[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(dict(httpx.QueryParams(request.content.decode())))
            return httpx.Response(201, json={"sid": "SM2"})

        await self.make_sender(WHATSAPP, handler).send(make_message(PHONE))

        assert bodies[0]["To"] == "whatsapp:+15551234567"
        assert bodies[0]["From"] == "whatsapp:+15550000000"

    @pytest.mark.anyio
    async def test_rejected_message_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"message": "invalid To"})

        with pytest.raises(NotificationDeliveryError) as exc_info:
            await self.make_sender(SMS, handler).send(make_message(PHONE))

        assert exc_info.value.channel == SMS
        assert "HTTP 400" in exc_info.value.reason

    def test_mail_is_not_a_twilio_channel(self):
        with pytest.raises(ValueError):
            self.make_sender(MAIL, lambda request: httpx.Response(201))


@pytest.mark.anyio
async def test_log_sender_never_fails():
    await LogLinkSender(SMS).send(make_message(PHONE))


def test_email_templates_render_all_variables():
    html_body, plain_body = render_email(
        "magic_link",
        subject="Sign in",
        project_name="TestApp",
        login_url="https://app.test/verify?token=abc&guard=web",
        expires_minutes=15,
        expires_str=(datetime(2026, 1, 1, tzinfo=UTC) + timedelta(minutes=15)).strftime(
            "%Y-%m-%d %H:%M UTC"
        ),
        to_email="alice@example.com",
    )

    assert "<!DOCTYPE html>" in html_body
    assert "token=abc&amp;guard=web" in html_body
    assert "token=abc&guard=web" in plain_body
    assert "2026-01-01 00:15 UTC" in plain_body
