"""Tests for verification email providers."""
import smtplib
from unittest.mock import MagicMock, patch

import pytest

from src.lib.settings import settings
from src.services.email_provider import (
    ConsoleEmailProvider,
    SmtpEmailProvider,
    get_email_provider,
)

LINK = "http://localhost:3000/verify-email?token=abc"


@pytest.fixture
def smtp_settings(monkeypatch):
    monkeypatch.setattr(settings, "smtp_username", "mailer@example.com")
    monkeypatch.setattr(settings, "smtp_password", "app-password")
    monkeypatch.setattr(settings, "smtp_host", "smtp.example.com")
    monkeypatch.setattr(settings, "smtp_port", 587)
    monkeypatch.setattr(settings, "smtp_from_email", "")


@pytest.mark.asyncio
async def test_console_provider_always_succeeds():
    assert await ConsoleEmailProvider().send_verification_email("dana@example.com", "Dana", LINK) is True


@pytest.mark.unit
def test_smtp_provider_requires_credentials(monkeypatch):
    monkeypatch.setattr(settings, "smtp_username", "")
    monkeypatch.setattr(settings, "smtp_password", "")

    with pytest.raises(ValueError, match="SMTP credentials not configured"):
        SmtpEmailProvider()


@pytest.mark.unit
def test_message_contains_link(smtp_settings):
    msg = SmtpEmailProvider()._build_message("dana@example.com", "Dana", LINK)

    assert msg["To"] == "dana@example.com"
    assert msg["From"] == "Prime Care <mailer@example.com>"
    assert msg["Subject"] == "Verify your Prime Care email"
    plain, html = msg.get_payload()
    assert LINK in plain.get_payload()
    assert f'href="{LINK}"' in html.get_payload()


@pytest.mark.asyncio
async def test_smtp_provider_uses_starttls(smtp_settings):
    """Test STARTTLS flow on a submission port."""
    with patch("src.services.email_provider.smtplib.SMTP") as smtp_cls:
        server = MagicMock()
        smtp_cls.return_value.__enter__.return_value = server

        sent = await SmtpEmailProvider().send_verification_email("dana@example.com", "Dana", LINK)

    assert sent is True
    smtp_cls.assert_called_once_with("smtp.example.com", 587)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("mailer@example.com", "app-password")
    server.send_message.assert_called_once()


@pytest.mark.asyncio
async def test_smtp_provider_uses_ssl_on_465(smtp_settings, monkeypatch):
    monkeypatch.setattr(settings, "smtp_port", 465)
    with patch("src.services.email_provider.smtplib.SMTP_SSL") as ssl_cls:
        server = MagicMock()
        ssl_cls.return_value.__enter__.return_value = server

        sent = await SmtpEmailProvider().send_verification_email("dana@example.com", "Dana", LINK)

    assert sent is True
    server.starttls.assert_not_called()
    server.send_message.assert_called_once()


@pytest.mark.asyncio
async def test_smtp_failure_returns_false(smtp_settings):
    with patch("src.services.email_provider.smtplib.SMTP") as smtp_cls:
        server = MagicMock()
        server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        smtp_cls.return_value.__enter__.return_value = server

        sent = await SmtpEmailProvider().send_verification_email("dana@example.com", "Dana", LINK)

    assert sent is False


@pytest.mark.unit
def test_get_email_provider(monkeypatch, smtp_settings):
    monkeypatch.setattr(settings, "email_provider", "console")
    assert isinstance(get_email_provider(), ConsoleEmailProvider)

    monkeypatch.setattr(settings, "email_provider", "SMTP")
    assert isinstance(get_email_provider(), SmtpEmailProvider)

    monkeypatch.setattr(settings, "email_provider", "pigeon")
    with pytest.raises(ValueError, match="Unknown email provider"):
        get_email_provider()
