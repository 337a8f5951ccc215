"""Tests for identifier classification and guard configuration."""

from datetime import UTC, datetime, timedelta

import pytest

from src.modules.magic_auth.domain.entities import MagicLink, generate_secret
from src.modules.magic_auth.domain.exceptions import UnknownGuardError
from src.modules.magic_auth.domain.guards import GuardRegistry
from src.modules.magic_auth.domain.identifiers import (
    EmailIdentifier,
    NotificationChannel,
    PhoneIdentifier,
    classify_identifier,
)


class TestClassifyIdentifier:
    def test_email_address(self):
        recipient = classify_identifier("alice@example.com")

        assert isinstance(recipient, EmailIdentifier)
        assert recipient.value == "alice@example.com"
        assert recipient.capabilities == (NotificationChannel.MAIL,)

    def test_phone_number(self):
        recipient = classify_identifier("+15551234567")

        assert isinstance(recipient, PhoneIdentifier)
        assert recipient.capabilities == (
            NotificationChannel.WHATSAPP,
            NotificationChannel.SMS,
        )

    def test_anything_else_is_treated_as_phone(self):
        recipient = classify_identifier("not-an-email@")

        assert isinstance(recipient, PhoneIdentifier)
        assert recipient.column == "phone"

    def test_surrounding_whitespace_is_stripped(self):
        assert classify_identifier("  bob@example.com ").value == "bob@example.com"


class TestMagicLinkEntity:
    def test_issue_stores_identifier_in_matching_column(self):
        now = datetime(2026, 1, 1, tzinfo=UTC)
        link = MagicLink.issue(
            PhoneIdentifier(value="+15551234567"),
            "web",
            {"name": "Bob"},
            now + timedelta(minutes=15),
            now,
        )

        assert link.phone == "+15551234567"
        assert link.email is None
        assert link.identifier == "+15551234567"
        assert link.is_used is False
        assert link.expires_at == now + timedelta(minutes=15)
        assert link.created_at == now

    def test_requires_exactly_one_identifier(self):
        now = datetime(2026, 1, 1, tzinfo=UTC)
        with pytest.raises(ValueError):
            MagicLink(token="t", guard="web", expires_at=now)
        with pytest.raises(ValueError):
            MagicLink(
                email="a@example.com",
                phone="+1555",
                token="t",
                guard="web",
                expires_at=now,
            )

    def test_secrets_are_long_and_unique(self):
        secrets = {generate_secret() for _ in range(50)}

        assert len(secrets) == 50
        assert all(len(secret) == 64 for secret in secrets)


class TestGuardRegistry:
    def test_expiration_falls_back_to_default(self):
        registry = GuardRegistry.from_mapping(
            {"web": {}, "admin": {"link_expiration": 5}}, default_expiration_minutes=15
        )
        now = datetime(2026, 1, 1, tzinfo=UTC)

        assert registry.expires_at(registry.get("web"), now) == now + timedelta(minutes=15)
        assert registry.expires_at(registry.get("admin"), now) == now + timedelta(minutes=5)

    def test_unknown_guard_raises(self):
        registry = GuardRegistry.from_mapping({"web": {}}, default_expiration_minutes=15)

        with pytest.raises(UnknownGuardError) as exc_info:
            registry.get("api")

        assert exc_info.value.http_status_code == 400
        assert "api" not in registry
        assert registry.names == ["web"]
