import logging
from email.message import EmailMessage
from unittest.mock import MagicMock

import pytest

from warbler.config import Settings
from warbler.services.email import EmailService

RESET_LINK = "http://localhost:3000/reset-password?token=abc"


@pytest.mark.unit
class TestEmailService:
    async def test_log_only_mode_logs_link(self, caplog):
        # Arrange
        transport = MagicMock()
        service = EmailService(log_only=True, transport=transport)

        # Act
        with caplog.at_level(logging.INFO, logger="warbler.services.email"):
            logged = await service.send_password_reset("alice@example.com", RESET_LINK)

        # Assert
        assert logged is True
        assert RESET_LINK in caplog.text
        transport.assert_not_called()

    async def test_sends_plain_text_message(self):
        # Arrange
        sent: list[EmailMessage] = []
        service = EmailService(
            user="mailer@example.com",
            sender="Warbler <no-reply@example.com>",
            transport=sent.append,
        )

        # Act
        logged = await service.send_password_reset("alice@example.com", RESET_LINK)

        # Assert
        assert logged is False
        assert len(sent) == 1
        message = sent[0]
        assert message["To"] == "alice@example.com"
        assert message["From"] == "Warbler <no-reply@example.com>"
        assert message["Subject"] == "Password reset request"
        assert message.get_content().strip() == f"Reset your password using this link: {RESET_LINK}"

    async def test_sender_falls_back_to_smtp_user(self):
        sent: list[EmailMessage] = []
        service = EmailService(user="mailer@example.com", transport=sent.append)

        await service.send_password_reset("alice@example.com", RESET_LINK)

        assert sent[0]["From"] == "mailer@example.com"

    async def test_transport_errors_propagate(self):
        transport = MagicMock(side_effect=OSError("connection refused"))
        service = EmailService(transport=transport)

        with pytest.raises(OSError):
            await service.send_password_reset("alice@example.com", RESET_LINK)

    def test_starttls_over_plain_smtp(self, mocker):
        # Arrange
        smtp = MagicMock()
        smtp.has_extn.return_value = True
        smtp_class = mocker.patch("warbler.services.email.smtplib.SMTP")
        smtp_class.return_value.__enter__.return_value = smtp
        service = EmailService(host="smtp.example.com", port=587, user="u", password="p")

        # Act
        service._send_over_smtp(EmailMessage())

        # Assert
        smtp_class.assert_called_once_with("smtp.example.com", 587, timeout=30)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("u", "p")
        smtp.send_message.assert_called_once()

    def test_implicit_tls_when_secure(self, mocker):
        smtp = MagicMock()
        smtp_ssl_class = mocker.patch("warbler.services.email.smtplib.SMTP_SSL")
        smtp_ssl_class.return_value.__enter__.return_value = smtp
        service = EmailService(host="smtp.example.com", port=465, secure=True)

        service._send_over_smtp(EmailMessage())

        smtp.starttls.assert_not_called()
        smtp.login.assert_not_called()
        smtp.send_message.assert_called_once()

    def test_from_settings(self):
        settings = Settings(
            smtp_host="mail.example.com",
            smtp_port=2525,
            smtp_user="mailer",
            email_from="no-reply@example.com",
            log_email_only=True,
        )

        service = EmailService.from_settings(settings)

        assert service.host == "mail.example.com"
        assert service.port == 2525
        assert service.sender == "no-reply@example.com"
        assert service.log_only is True
