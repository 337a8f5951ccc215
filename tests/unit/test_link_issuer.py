"""Tests for magic link issuance."""

import asyncio
from datetime import timedelta
from urllib.parse import parse_qs, urlsplit

import pytest

from src.modules.magic_auth.application.commands import SendMagicLinkCommand
from src.modules.magic_auth.application.issuer import rate_limit_key
from src.modules.magic_auth.application.results import IssuedLink, RateLimited
from src.modules.magic_auth.domain.exceptions import (
    DeliveryFailedError,
    UnknownGuardError,
)
from src.modules.magic_auth.domain.identifiers import NotificationChannel
from tests.fakes import FailingSender, RecordingSender
from tests.harness import build_harness

pytestmark = pytest.mark.anyio


def links_of(harness):
    return list(harness.store.links.values())


async def test_issue_persists_and_delivers_by_mail(harness) -> None:
    outcome = await harness.issuer.issue(
        SendMagicLinkCommand(identifier="alice@example.com", attributes={"name": "Alice"})
    )

    assert isinstance(outcome, IssuedLink)
    assert outcome.channels == (NotificationChannel.MAIL,)
    assert outcome.expires_at == harness.clock() + timedelta(minutes=15)

    [link] = links_of(harness)
    assert link.email == "alice@example.com"
    assert link.guard == "web"
    assert link.attributes == {"name": "Alice"}
    assert not link.is_used

    [message] = harness.sent(NotificationChannel.MAIL)
    assert message.url == outcome.url
    assert message.expires_minutes == 15
    assert message.app_name == "TestApp"
    query = parse_qs(urlsplit(outcome.url).query)
    assert query["token"] == [link.token]
    assert query["guard"] == ["web"]


async def test_phone_is_delivered_over_whatsapp_and_sms(harness) -> None:
    await harness.issuer.issue(SendMagicLinkCommand(identifier="+15551234567"))

    assert len(harness.sent(NotificationChannel.WHATSAPP)) == 1
    assert len(harness.sent(NotificationChannel.SMS)) == 1
    assert harness.sent(NotificationChannel.MAIL) == []
    [link] = links_of(harness)
    assert link.phone == "+15551234567"
    assert link.email is None


async def test_guard_expiration_override(harness) -> None:
    outcome = await harness.issuer.issue(
        SendMagicLinkCommand(identifier="root@example.com", guard="admin")
    )

    assert outcome.expires_at == harness.clock() + timedelta(minutes=5)


async def test_new_link_supersedes_previous_on_same_guard(harness) -> None:
    first = await harness.issuer.issue(SendMagicLinkCommand(identifier="a@example.com"))
    other_guard = await harness.issuer.issue(
        SendMagicLinkCommand(identifier="a@example.com", guard="admin")
    )
    second = await harness.issuer.issue(SendMagicLinkCommand(identifier="a@example.com"))

    links = harness.store.links
    assert links[first.magic_link_id].is_used
    assert not links[other_guard.magic_link_id].is_used
    assert not links[second.magic_link_id].is_used


async def test_events_are_published_in_order(harness) -> None:
    await harness.issuer.issue(SendMagicLinkCommand(identifier="a@example.com"))

    assert harness.recorder.names == [
        "magic-auth.link.generating",
        "magic-auth.link.sent",
    ]
    sent = harness.recorder.events[-1]
    assert sent.identifier == "a@example.com"
    assert sent.channels == ["mail"]


async def test_successful_sends_consume_attempts(harness) -> None:
    for _ in range(5):
        assert isinstance(
            await harness.issuer.issue(SendMagicLinkCommand(identifier="a@example.com")),
            IssuedLink,
        )

    outcome = await harness.issuer.issue(SendMagicLinkCommand(identifier="a@example.com"))

    assert isinstance(outcome, RateLimited)
    assert outcome.retry_after_seconds == 600
    assert len(harness.sent()) == 5
    assert len(harness.store.links) == 5


async def test_throttle_is_per_identifier(harness) -> None:
    for _ in range(5):
        await harness.issuer.issue(SendMagicLinkCommand(identifier="a@example.com"))

    outcome = await harness.issuer.issue(SendMagicLinkCommand(identifier="b@example.com"))

    assert isinstance(outcome, IssuedLink)


async def test_throttle_window_expires(harness) -> None:
    for _ in range(5):
        await harness.issuer.issue(SendMagicLinkCommand(identifier="a@example.com"))

    harness.clock.advance(seconds=601)

    outcome = await harness.issuer.issue(SendMagicLinkCommand(identifier="a@example.com"))
    assert isinstance(outcome, IssuedLink)


async def test_delivery_failure_voids_link_and_keeps_attempts() -> None:
    harness = build_harness(senders=[FailingSender(NotificationChannel.MAIL)])

    with pytest.raises(DeliveryFailedError):
        await harness.issuer.issue(SendMagicLinkCommand(identifier="a@example.com"))

    [link] = links_of(harness)
    assert link.is_used
    assert await harness.rate_limiter.attempts(rate_limit_key("a@example.com")) == 0
    assert harness.recorder.names == [
        "magic-auth.link.generating",
        "magic-auth.link.failed",
    ]


async def test_no_usable_channel_is_a_delivery_failure() -> None:
    harness = build_harness(senders=[RecordingSender(NotificationChannel.MAIL)])

    with pytest.raises(DeliveryFailedError):
        await harness.issuer.issue(SendMagicLinkCommand(identifier="+15551234567"))

    [link] = links_of(harness)
    assert link.is_used


async def test_unknown_guard_stores_nothing(harness) -> None:
    with pytest.raises(UnknownGuardError):
        await harness.issuer.issue(
            SendMagicLinkCommand(identifier="a@example.com", guard="api")
        )

    assert harness.store.links == {}
    assert harness.recorder.events == []


def test_blank_identifier_is_rejected() -> None:
    with pytest.raises(ValueError):
        SendMagicLinkCommand(identifier="   ")


async def test_issuance_locks_recipient_before_invalidating(harness) -> None:
    await harness.issuer.issue(SendMagicLinkCommand(identifier="alice@example.com"))

    assert harness.store.operations == ["lock", "invalidate", "create"]


async def test_concurrent_issues_leave_one_redeemable_link(harness) -> None:
    command = SendMagicLinkCommand(identifier="alice@example.com")

    outcomes = await asyncio.gather(*(harness.issuer.issue(command) for _ in range(4)))

    assert all(isinstance(outcome, IssuedLink) for outcome in outcomes)
    links = links_of(harness)
    assert len(links) == 4
    redeemable = [link.id for link in links if not link.is_used]
    assert len(redeemable) == 1
    assert redeemable[0] in {outcome.magic_link_id for outcome in outcomes}


async def test_concurrent_issues_on_other_guards_do_not_interfere(harness) -> None:
    await asyncio.gather(
        harness.issuer.issue(SendMagicLinkCommand(identifier="alice@example.com")),
        harness.issuer.issue(
            SendMagicLinkCommand(identifier="alice@example.com", guard="admin")
        ),
    )

    assert sorted(link.guard for link in links_of(harness) if not link.is_used) == [
        "admin",
        "web",
    ]
