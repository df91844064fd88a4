"""Notification channels, gateway and message templates."""

from .channels import BaseChannel, ConsoleChannel, EmailChannel, SmsChannel
from .gateway import DeliveryResult, NotificationGateway, build_gateway
from .templates import NotificationMessage

__all__ = [
    "BaseChannel",
    "ConsoleChannel",
    "EmailChannel",
    "SmsChannel",
    "DeliveryResult",
    "NotificationGateway",
    "build_gateway",
    "NotificationMessage",
]
