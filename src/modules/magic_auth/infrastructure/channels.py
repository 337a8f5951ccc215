"""Delivery channel adapters.

- mail: SMTP with Jinja2 templates
- sms / whatsapp: Twilio Messages REST API over httpx
- log: prints the link instead of sending it (local development)
"""

import asyncio

import httpx
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.infrastructure.email.smtp import SMTPProvider
from src.core.infrastructure.email.template_loader import render_email
from src.core.infrastructure.logging import mask_identifier
from src.modules.magic_auth.application.notifications import render_message
from src.modules.magic_auth.domain.exceptions import NotificationDeliveryError
from src.modules.magic_auth.domain.identifiers import NotificationChannel
from src.modules.magic_auth.domain.ports import LinkMessage, NotificationSender


class SMTPMailSender(NotificationSender):
    """Sends the magic link email."""

    channel = NotificationChannel.MAIL

    def __init__(self, provider: SMTPProvider, subject: str):
        self.provider = provider
        self.subject = subject

    async def send(self, message: LinkMessage) -> None:
        if not self.provider.is_configured():
            raise NotificationDeliveryError(self.channel, "SMTP not configured")

        html_body, plain_body = render_email(
            "magic_link",
            subject=self.subject,
            project_name=message.app_name,
            login_url=message.url,
            expires_minutes=message.expires_minutes,
            expires_str=message.expires_at.strftime("%Y-%m-%d %H:%M UTC"),
            to_email=message.recipient.value,
        )
        await self._deliver(message.recipient.value, html_body, plain_body)
        logger.info(f"Magic link email sent to {mask_identifier(message.recipient.value)}")

    @retry(
        retry=retry_if_exception_type(NotificationDeliveryError),
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    async def _deliver(self, to_email: str, html_body: str, plain_body: str) -> None:
        result = await asyncio.to_thread(
            self.provider.send, to_email, self.subject, html_body, plain_body
        )
        if not result.success:
            raise NotificationDeliveryError(self.channel, result.error or "unknown error")


class TwilioMessageSender(NotificationSender):
    """Sends the link as an SMS or WhatsApp message through Twilio."""

    def __init__(
        self,
        channel: NotificationChannel,
        account_sid: str,
        auth_token: str,
        from_number: str,
        template: str,
        api_base: str = "https://api.twilio.com/2010-04-01",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if channel not in (NotificationChannel.SMS, NotificationChannel.WHATSAPP):
            raise ValueError(f"Twilio cannot deliver over {channel.value}")
        self.channel = channel
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.template = template
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _address(self, number: str) -> str:
        if self.channel == NotificationChannel.WHATSAPP:
            return f"whatsapp:{number}"
        return number

    async def send(self, message: LinkMessage) -> None:
        body = render_message(
            self.template,
            app=message.app_name,
            url=message.url,
            minutes=message.expires_minutes,
        )
        payload = {
            "To": self._address(message.recipient.value),
            "From": self._address(self.from_number),
            "Body": body,
        }
        try:
            response = await self._post(payload)
        except httpx.HTTPError as e:
            logger.warning(f"Twilio {self.channel.value} request failed: {e}")
            raise NotificationDeliveryError(self.channel, f"transport error: {e}") from e

        if response.status_code >= 400:
            logger.warning(
                f"Twilio {self.channel.value} rejected message: HTTP {response.status_code}"
            )
            raise NotificationDeliveryError(
                self.channel, f"HTTP {response.status_code}: {response.text[:200]}"
            )
        logger.info(
            f"Magic link {self.channel.value} sent to {mask_identifier(message.recipient.value)}"
        )

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    async def _post(self, payload: dict[str, str]) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            auth=(self.account_sid, self.auth_token),
            transport=self.transport,
        ) as client:
            return await client.post(
                f"{self.api_base}/Accounts/{self.account_sid}/Messages.json",
                data=payload,
            )


class LogLinkSender(NotificationSender):
    """Writes the link to the log instead of delivering it."""

    def __init__(self, channel: NotificationChannel):
        self.channel = channel

    async def send(self, message: LinkMessage) -> None:
        logger.warning(
            f"[DEV LOGIN] {self.channel.value} link for "
            f"{mask_identifier(message.recipient.value)}: {message.url}"
        )
