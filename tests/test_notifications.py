"""Tests for notification channels and the gateway."""

import smtplib
from unittest.mock import MagicMock, Mock, patch

import requests

from src.config import Settings
from src.core.notifications.channels import (
    MAX_RETRIES,
    ConsoleChannel,
    EmailChannel,
    SmsChannel,
)
from src.core.notifications.gateway import NotificationGateway, build_gateway
from src.db.models import AlertChannel


def make_channel(result=True, side_effect=None):
    channel = Mock()
    channel.send.return_value = result
    channel.send.side_effect = side_effect
    return channel


class TestNotificationGateway:
    """Tests for NotificationGateway."""

    def test_sends_on_requested_channels(self):
        email, sms = make_channel(), make_channel()
        gateway = NotificationGateway(email, sms)

        result = gateway.send(
            "ana@example.com", "+56911111111", "Asunto", "Hola",
            channels=[AlertChannel.EMAIL, AlertChannel.SMS],
        )

        assert result.email_sent is True
        assert result.sms_sent is True
        email.send.assert_called_once_with("ana@example.com", "Asunto", "Hola")
        sms.send.assert_called_once_with("+56911111111", "Asunto", "Hola")

    def test_defaults_to_email_only(self):
        email, sms = make_channel(), make_channel()

        result = NotificationGateway(email, sms).send("ana@example.com", "+56911111111", "Asunto", "Hola")

        assert result.email_sent is True
        assert result.sms_sent is False
        sms.send.assert_not_called()

    def test_email_failure_does_not_stop_sms(self):
        email = make_channel(side_effect=smtplib.SMTPAuthenticationError(535, b"bad credentials"))
        sms = make_channel()

        result = NotificationGateway(email, sms).send(
            "ana@example.com", "+56911111111", "Asunto", "Hola",
            channels=[AlertChannel.EMAIL, AlertChannel.SMS],
        )

        assert result.email_sent is False
        assert result.sms_sent is True
        assert result.any_sent is True

    def test_missing_contact_skips_channel(self):
        email, sms = make_channel(), make_channel()

        result = NotificationGateway(email, sms).send(
            None, "+56911111111", "Asunto", "Hola", channels=[AlertChannel.EMAIL]
        )

        assert result.any_sent is False
        email.send.assert_not_called()
        sms.send.assert_not_called()

    def test_channel_returning_false(self):
        result = NotificationGateway(make_channel(result=False), make_channel()).send(
            "ana@example.com", None, "Asunto", "Hola"
        )

        assert result.any_sent is False

    def test_build_gateway_console_mode(self):
        gateway = build_gateway(Settings(notifications_console=True))

        assert isinstance(gateway.email_channel, ConsoleChannel)
        assert isinstance(gateway.sms_channel, ConsoleChannel)

    def test_build_gateway_real_channels(self):
        gateway = build_gateway(
            Settings(
                notifications_console=False,
                smtp_user="alertas@example.com",
                smtp_password="secret",
                twilio_account_sid="AC123",
                twilio_auth_token="token",
                twilio_from_number="+15550001111",
            )
        )

        assert isinstance(gateway.email_channel, EmailChannel)
        assert gateway.email_channel.configured
        assert isinstance(gateway.sms_channel, SmsChannel)
        assert gateway.sms_channel.configured


class TestConsoleChannel:
    def test_prints_and_succeeds(self):
        console = Mock()

        assert ConsoleChannel("sms", console=console).send("+569", "Asunto", "Hola") is True
        console.print.assert_called_once()


class TestSmsChannel:
    """Tests for the Twilio SMS channel."""

    def make_sms(self):
        return SmsChannel(account_sid="AC123", auth_token="token", from_number="+15550001111")

    def test_not_configured(self):
        with patch("src.core.notifications.channels.requests.post") as mock_post:
            assert SmsChannel("", "", "").send("+569", "Asunto", "Hola") is False
            mock_post.assert_not_called()

    def test_success(self):
        with patch("src.core.notifications.channels.requests.post") as mock_post:
            mock_post.return_value = Mock(status_code=201)

            assert self.make_sms().send("+56911111111", "Asunto", "Hola") is True

            args, kwargs = mock_post.call_args
            assert "AC123" in args[0]
            assert kwargs["data"] == {"To": "+56911111111", "From": "+15550001111", "Body": "Asunto: Hola"}
            assert kwargs["auth"] == ("AC123", "token")

    def test_client_error_is_not_retried(self):
        with patch("src.core.notifications.channels.requests.post") as mock_post:
            mock_post.return_value = Mock(status_code=400, text="invalid number")

            assert self.make_sms().send("bad", "Asunto", "Hola") is False
            assert mock_post.call_count == 1

    def test_server_error_is_retried(self):
        with patch("src.core.notifications.channels.requests.post") as mock_post, patch(
            "src.core.notifications.channels.time.sleep"
        ) as mock_sleep:
            mock_post.return_value = Mock(status_code=503)

            assert self.make_sms().send("+569", "Asunto", "Hola") is False
            assert mock_post.call_count == MAX_RETRIES
            assert mock_sleep.call_count == MAX_RETRIES - 1

    def test_recovers_after_timeout(self):
        with patch("src.core.notifications.channels.requests.post") as mock_post, patch(
            "src.core.notifications.channels.time.sleep"
        ):
            mock_post.side_effect = [requests.Timeout(), Mock(status_code=201)]

            assert self.make_sms().send("+569", "Asunto", "Hola") is True
            assert mock_post.call_count == 2


class TestEmailChannel:
    """Tests for the SMTP email channel."""

    def make_email(self, port=587):
        return EmailChannel(
            host="smtp.example.com",
            port=port,
            username="alertas@example.com",
            password="secret",
            sender_name="Dannig Óptica",
        )

    def test_not_configured(self):
        with patch("src.core.notifications.channels.smtplib.SMTP") as mock_smtp:
            channel = EmailChannel("smtp.example.com", 587, "", "")
            assert channel.send("ana@example.com", "Asunto", "Hola") is False
            mock_smtp.assert_not_called()

    def test_starttls_send(self):
        with patch("src.core.notifications.channels.smtplib.SMTP") as mock_smtp:
            server = MagicMock()
            mock_smtp.return_value = server

            assert self.make_email().send("ana@example.com", "Asunto", "Hola") is True

            server.starttls.assert_called_once()
            server.login.assert_called_once_with("alertas@example.com", "secret")
            from_addr, to_addrs, _ = server.sendmail.call_args.args
            assert from_addr == "alertas@example.com"
            assert to_addrs == ["ana@example.com"]
            server.quit.assert_called_once()

    def test_ssl_port_uses_smtp_ssl(self):
        with patch("src.core.notifications.channels.smtplib.SMTP_SSL") as mock_ssl, patch(
            "src.core.notifications.channels.smtplib.SMTP"
        ) as mock_smtp:
            mock_ssl.return_value = MagicMock()

            assert self.make_email(port=465).send("ana@example.com", "Asunto", "Hola") is True
            mock_ssl.assert_called_once()
            mock_smtp.assert_not_called()

    def test_login_failure_returns_false(self):
        with patch("src.core.notifications.channels.smtplib.SMTP") as mock_smtp:
            server = MagicMock()
            server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
            mock_smtp.return_value = server

            assert self.make_email().send("ana@example.com", "Asunto", "Hola") is False
            server.sendmail.assert_not_called()
            server.quit.assert_called_once()

    def test_connection_failure_returns_false(self):
        with patch("src.core.notifications.channels.smtplib.SMTP") as mock_smtp:
            mock_smtp.side_effect = ConnectionRefusedError()

            assert self.make_email().send("ana@example.com", "Asunto", "Hola") is False

    def test_message_has_plain_and_html_parts(self):
        msg = self.make_email()._build_message("ana@example.com", "Asunto", "Hola Ana")

        assert msg["To"] == "ana@example.com"
        assert msg["Subject"] == "Asunto"
        assert [part.get_content_type() for part in msg.get_payload()] == ["text/plain", "text/html"]
