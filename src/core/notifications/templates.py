"""Client-facing message templates.

Every template returns a :class:`NotificationMessage` with a subject and a
plain-text body. Dates are stored as naive UTC and rendered in the clinic's
timezone, in Spanish long form (``lunes, 3 de marzo de 2025``).
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from src.config import BRAND_COLORS, get_settings
from src.db.models import AlertKind

settings = get_settings()

WEEKDAYS = ["lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"]
MONTHS = [
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
]


@dataclass(frozen=True)
class NotificationMessage:
    """Subject and plain-text body of a notification."""

    subject: str
    body: str


def to_clinic_time(value: datetime, tz_name: Optional[str] = None) -> datetime:
    """Convert a naive UTC timestamp to the clinic's local time."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(tz_name or settings.clinic_timezone))


def format_calendar_date(value: datetime) -> str:
    """Format the stored calendar date as e.g. ``lunes, 3 de marzo de 2025``.

    For day-only fields (warranty end, campaign date); no timezone shift.
    """
    return f"{WEEKDAYS[value.weekday()]}, {value.day} de {MONTHS[value.month - 1]} de {value.year}"


def format_long_date(value: datetime, tz_name: Optional[str] = None) -> str:
    """Format as e.g. ``lunes, 3 de marzo de 2025`` in the clinic's timezone."""
    return format_calendar_date(to_clinic_time(value, tz_name))


def format_long_datetime(value: datetime, tz_name: Optional[str] = None) -> str:
    """Format as e.g. ``lunes, 3 de marzo de 2025, 10:30``."""
    local = to_clinic_time(value, tz_name)
    return f"{format_long_date(value, tz_name)}, {local:%H:%M}"


def _subject(title: str) -> str:
    return f"{title} - {settings.clinic_name}"


def _signature() -> str:
    return f"Saludos,\nEquipo {settings.clinic_name}"


# Subjects used when dispatching stored alerts
SUBJECT_TITLES = {
    AlertKind.APPOINTMENT_REMINDER: "Recordatorio de Cita",
    AlertKind.WARRANTY_EXPIRY: "Vencimiento de Garantía",
    AlertKind.CAMPAIGN_ANNOUNCEMENT: "Nuevo Operativo Oftalmológico",
}


def subject_for(kind: Optional[AlertKind]) -> str:
    """Subject line for an alert kind, with a generic fallback."""
    title = SUBJECT_TITLES.get(kind) if kind is not None else None
    if title is None:
        return f"Notificación de {settings.clinic_name}"
    return _subject(title)


def appointment_reminder(
    client_name: str,
    when: str,
    location: Optional[str] = None,
) -> NotificationMessage:
    """Reminder sent ahead of a confirmed appointment."""
    place = f"\nLugar: {location}" if location else ""
    body = (
        f"Hola {client_name},\n\n"
        f"Te recordamos que tienes una cita agendada para:\n"
        f"Fecha y Hora: {when}{place}\n\n"
        f"Por favor confirma tu asistencia o contáctanos si necesitas reprogramar.\n\n"
        f"{_signature()}"
    )
    return NotificationMessage(subject_for(AlertKind.APPOINTMENT_REMINDER), body)


def appointment_confirmation(
    client_name: str,
    when: str,
    location: Optional[str] = None,
) -> NotificationMessage:
    """Confirmation sent when an appointment is confirmed."""
    place = f"\nLugar: {location}" if location else ""
    body = (
        f"Hola {client_name},\n\n"
        f"Tu cita ha sido confirmada:\n"
        f"Fecha y Hora: {when}{place}\n\n"
        f"Te esperamos.\n\n"
        f"{_signature()}"
    )
    return NotificationMessage(_subject("Confirmación de Cita"), body)


def warranty_expiry(client_name: str, product_name: str, expires_on: str) -> NotificationMessage:
    """Notice that a product warranty is about to expire."""
    body = (
        f"Hola {client_name},\n\n"
        f'Tu garantía para el producto "{product_name}" vencerá el {expires_on}.\n\n'
        f"Si necesitas hacer uso de tu garantía o tienes alguna consulta, "
        f"contáctanos antes de la fecha de vencimiento.\n\n"
        f"{_signature()}"
    )
    return NotificationMessage(subject_for(AlertKind.WARRANTY_EXPIRY), body)


def new_campaign(
    client_name: str,
    campaign_name: str,
    date: str,
    location: Optional[str] = None,
) -> NotificationMessage:
    """Announcement of an upcoming ophthalmology campaign."""
    body = (
        f"Hola {client_name},\n\n"
        f"Tenemos un nuevo operativo oftalmológico disponible:\n\n"
        f"{campaign_name}\n"
        f"Fecha: {date}\n"
        f"Lugar: {location or ''}\n\n"
        f"Si estás interesado, contáctanos para agendar tu cita.\n\n"
        f"{_signature()}"
    )
    return NotificationMessage(subject_for(AlertKind.CAMPAIGN_ANNOUNCEMENT), body)


def render_html(subject: str, body: str) -> str:
    """Wrap a plain-text message in the clinic's branded email layout."""
    content = html.escape(body).replace("\n", "<br>")
    colors = BRAND_COLORS
    year = datetime.now(timezone.utc).year
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <div style="background: linear-gradient(135deg, {colors['clinic_green']} 0%, {colors['clinic_green_light']} 100%); padding: 2rem; text-align: center;">
        <h1 style="color: white; margin: 0;">{html.escape(settings.clinic_name)}</h1>
      </div>
      <div style="padding: 2rem; background: {colors['panel_gray']};">
        <h2 style="color: {colors['clinic_green']}; margin-top: 0;">{html.escape(subject)}</h2>
        <p style="color: {colors['text_gray']}; line-height: 1.6; font-size: 1rem;">{content}</p>
      </div>
      <div style="padding: 1rem; background: {colors['footer_gray']}; text-align: center; font-size: 0.875rem; color: {colors['muted_gray']};">
        <p style="margin: 0;">{html.escape(settings.clinic_address)}</p>
        <p style="margin: 0.5rem 0 0;">&copy; {year} {html.escape(settings.clinic_name)}</p>
      </div>
    </div>
    """
