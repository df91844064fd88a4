"""Delivery channels for client notifications."""

from __future__ import annotations

import logging
import smtplib
import ssl
import time
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import requests
from rich.console import Console
from rich.panel import Panel

from src.config import Settings, get_settings
from .templates import render_html

logger = logging.getLogger(__name__)

# Retry configuration
MAX_RETRIES = 3
RETRY_DELAY_SECONDS = 2


class BaseChannel(ABC):
    """Abstract base class for delivery channels."""

    name: str = "base"

    @abstractmethod
    def send(self, to: str, subject: str, message: str) -> bool:
        """Deliver a message to a single recipient.

        Args:
            to: Email address or phone number
            subject: Message subject
            message: Plain-text body

        Returns:
            True if the message was accepted for delivery
        """
        ...


class ConsoleChannel(BaseChannel):
    """Prints notifications to the terminal instead of sending them."""

    def __init__(self, name: str = "console", console: Optional[Console] = None):
        self.name = name
        self.console = console or Console()

    def send(self, to: str, subject: str, message: str) -> bool:
        """Print the notification in a panel.

        Returns:
            True (always succeeds for console)
        """
        self.console.print(
            Panel(
                f"[dim]To: {to}[/dim]\n\n{message}",
                title=f"[bold green]{self.name.upper()}[/bold green] {subject}",
                border_style="green",
            )
        )
        return True


class EmailChannel(BaseChannel):
    """SMTP email channel."""

    name = "email"

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str = "",
        sender_name: str = "",
        timeout: int = 30,
    ):
        """Initialize SMTP channel.

        Args:
            host: SMTP server
            port: SMTP port (465 uses implicit SSL, others STARTTLS)
            username: SMTP login
            password: SMTP password
            from_address: Sender address (defaults to username)
            sender_name: Display name for the From header
            timeout: Socket timeout in seconds
        """
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address or username
        self.sender_name = sender_name
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailChannel":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            from_address=settings.smtp_from,
            sender_name=settings.clinic_name,
        )

    @property
    def configured(self) -> bool:
        return bool(self.username and self.password)

    def _build_message(self, to: str, subject: str, message: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.sender_name} <{self.from_address}>" if self.sender_name else self.from_address
        msg["To"] = to
        msg.attach(MIMEText(message, "plain", "utf-8"))
        msg.attach(MIMEText(render_html(subject, message), "html", "utf-8"))
        return msg

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.port == 465:
            return smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=self.timeout)

        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        server.starttls(context=context)
        return server

    def send(self, to: str, subject: str, message: str) -> bool:
        """Send an email.

        Returns:
            True if the SMTP server accepted the message
        """
        if not self.configured:
            logger.warning("SMTP not configured (missing user or password), email not sent")
            return False

        msg = self._build_message(to, subject, message)
        try:
            server = self._connect()
            try:
                server.login(self.username, self.password)
                server.sendmail(self.from_address, [to], msg.as_string())
            finally:
                server.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email to {to} failed: {e}")
            return False

        logger.info(f"Email sent to {to}")
        return True


class SmsChannel(BaseChannel):
    """SMS channel using the Twilio Messages REST API."""

    name = "sms"
    TWILIO_API_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"

    def __init__(self, account_sid: str, auth_token: str, from_number: str, timeout: int = 15):
        """Initialize Twilio SMS channel.

        Args:
            account_sid: Twilio account SID
            auth_token: Twilio auth token
            from_number: Sender phone number (E.164)
            timeout: Request timeout in seconds
        """
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmsChannel":
        return cls(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_from_number,
        )

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    def send(self, to: str, subject: str, message: str) -> bool:
        """Send an SMS with retry logic.

        The subject is prepended to the body since SMS has no subject line.

        Returns:
            True if Twilio accepted the message
        """
        if not self.configured:
            logger.warning("SMS not configured (missing Twilio credentials), SMS not sent")
            return False

        body = f"{subject}: {message}"

        for attempt in range(MAX_RETRIES):
            try:
                response = requests.post(
                    self.TWILIO_API_URL.format(sid=self.account_sid),
                    data={"To": to, "From": self.from_number, "Body": body},
                    auth=(self.account_sid, self.auth_token),
                    timeout=self.timeout,
                )

                if response.status_code in (200, 201):
                    logger.info(f"SMS sent to {to}")
                    return True
                elif response.status_code >= 500:
                    # Server error - retry
                    logger.warning(
                        f"Twilio server error (attempt {attempt + 1}/{MAX_RETRIES}): "
                        f"{response.status_code}"
                    )
                else:
                    # Client error - don't retry
                    logger.error(f"Twilio API error: {response.status_code} - {response.text}")
                    return False

            except requests.Timeout:
                logger.warning(f"Twilio timeout (attempt {attempt + 1}/{MAX_RETRIES}) for {to}")
            except requests.RequestException as e:
                logger.warning(f"Twilio request failed (attempt {attempt + 1}/{MAX_RETRIES}): {e}")

            if attempt < MAX_RETRIES - 1:
                time.sleep(RETRY_DELAY_SECONDS * (attempt + 1))

        logger.error(f"SMS to {to} failed after {MAX_RETRIES} attempts")
        return False
