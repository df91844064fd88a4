"""Database module."""

from .database import get_db, init_db, engine, SessionLocal
from .models import (
    Base,
    Client,
    Campaign,
    Appointment,
    Product,
    Sale,
    SaleItem,
    Warranty,
    Alert,
    AlertKind,
    AlertChannel,
    AlertSource,
    AppointmentStatus,
)

__all__ = [
    "get_db",
    "init_db",
    "engine",
    "SessionLocal",
    "Base",
    "Client",
    "Campaign",
    "Appointment",
    "Product",
    "Sale",
    "SaleItem",
    "Warranty",
    "Alert",
    "AlertKind",
    "AlertChannel",
    "AlertSource",
    "AppointmentStatus",
]
