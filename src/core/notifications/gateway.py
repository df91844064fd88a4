"""Multi-channel notification gateway."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from src.config import Settings, get_settings
from src.db.models import AlertChannel
from .channels import BaseChannel, ConsoleChannel, EmailChannel, SmsChannel

logger = logging.getLogger(__name__)


@dataclass
class DeliveryResult:
    """Per-channel outcome of a send."""

    email_sent: bool = False
    sms_sent: bool = False

    @property
    def any_sent(self) -> bool:
        return self.email_sent or self.sms_sent


class NotificationGateway:
    """Sends a message over email and/or SMS.

    Channels are attempted independently: a failure or exception on one
    never prevents the other from being tried.
    """

    def __init__(self, email_channel: BaseChannel, sms_channel: BaseChannel):
        self.email_channel = email_channel
        self.sms_channel = sms_channel

    def _attempt(self, channel: BaseChannel, to: str, subject: str, message: str) -> bool:
        try:
            return bool(channel.send(to, subject, message))
        except Exception as e:
            logger.error(f"Channel {type(channel).__name__} failed for {to}: {e}")
            return False

    def send(
        self,
        email: Optional[str],
        phone: Optional[str],
        subject: str,
        message: str,
        channels: Sequence[AlertChannel] = (AlertChannel.EMAIL,),
    ) -> DeliveryResult:
        """Deliver a message on each requested channel.

        A channel is only attempted when the matching contact value is
        present.

        Args:
            email: Recipient email address
            phone: Recipient phone number
            subject: Message subject
            message: Plain-text body
            channels: Channels to attempt

        Returns:
            DeliveryResult with one flag per channel
        """
        result = DeliveryResult()

        if AlertChannel.EMAIL in channels and email:
            result.email_sent = self._attempt(self.email_channel, email, subject, message)

        if AlertChannel.SMS in channels and phone:
            result.sms_sent = self._attempt(self.sms_channel, phone, subject, message)

        return result


def build_gateway(settings: Optional[Settings] = None) -> NotificationGateway:
    """Build the gateway from settings.

    With ``notifications_console`` enabled both channels print to the
    terminal instead of sending.
    """
    settings = settings or get_settings()

    if settings.notifications_console:
        logger.debug("Console notifications enabled")
        return NotificationGateway(ConsoleChannel("email"), ConsoleChannel("sms"))

    email_channel = EmailChannel.from_settings(settings)
    sms_channel = SmsChannel.from_settings(settings)
    if not email_channel.configured:
        logger.warning("SMTP not configured. Email notifications will not be delivered.")
    if not sms_channel.configured:
        logger.warning("Twilio not configured. SMS notifications will not be delivered.")

    return NotificationGateway(email_channel, sms_channel)
