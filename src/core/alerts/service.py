"""Alert service - generates alerts from source records and dispatches due ones.

Generators scan appointments, warranties and campaigns and insert one alert
per qualifying record unless an equivalent alert already exists. The
dispatcher sends due alerts through the notification gateway and marks them
sent only when at least one channel delivered.

Every record is processed and committed on its own: a failure is logged and
rolled back, and the batch moves on to the next record.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from src.config import get_settings
from src.core.exceptions import NotFoundError
from src.core.notifications import templates
from src.core.notifications.gateway import NotificationGateway, build_gateway
from src.db.database import get_db
from src.db.models import (
    Alert,
    AlertChannel,
    AlertKind,
    AlertSource,
    Appointment,
    AppointmentStatus,
    Campaign,
    Client,
    SaleItem,
    Sale,
    Warranty,
    utcnow,
)
from .repository import AlertRepository

logger = logging.getLogger(__name__)
settings = get_settings()

# Appointment reminders
REMINDER_LOOKAHEAD = timedelta(hours=24)
REMINDER_LEAD = timedelta(hours=23)
REMINDER_WINDOW = (timedelta(hours=25), timedelta(hours=23))  # before the appointment

# Warranty expiry
WARRANTY_LOOKAHEAD = timedelta(days=7)
WARRANTY_LEAD = timedelta(days=7)
WARRANTY_WINDOW = (timedelta(days=8), timedelta(days=6))  # before the end date

# Campaign announcements
CAMPAIGN_MARGIN = timedelta(days=2)  # either side of the campaign date


def preferred_channel(client: Client) -> AlertChannel:
    """Email when the client has one, otherwise SMS."""
    return AlertChannel.EMAIL if client.email else AlertChannel.SMS


class AlertService:
    """Service for generating and dispatching client alerts."""

    def __init__(
        self,
        db: Session,
        gateway: Optional[NotificationGateway] = None,
        batch_size: Optional[int] = None,
    ):
        """Initialize the alert service.

        Args:
            db: Database session
            gateway: Notification gateway (built from settings when first needed)
            batch_size: Maximum alerts dispatched per run
        """
        self.db = db
        self.repo = AlertRepository(db)
        self._gateway = gateway
        self.batch_size = settings.dispatch_batch_size if batch_size is None else batch_size

    @property
    def gateway(self) -> NotificationGateway:
        if self._gateway is None:
            self._gateway = build_gateway()
        return self._gateway

    def _process_record(self, label: str, action: Callable[[], bool]) -> bool:
        """Run one record's work in its own transaction.

        Returns:
            True if the action reported success and was committed
        """
        try:
            done = action()
            self.db.commit()
            return done
        except Exception:
            self.db.rollback()
            logger.exception(f"Error processing {label}")
            return False

    # ------------------------------------------------------------------
    # Generators
    # ------------------------------------------------------------------

    def generate_appointment_reminders(self, now: Optional[datetime] = None) -> int:
        """Create reminders for confirmed appointments in the next 24 hours.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            Number of alerts created
        """
        now = now or utcnow()

        appointments = (
            self.db.query(Appointment)
            .options(joinedload(Appointment.client), joinedload(Appointment.campaign))
            .filter(
                Appointment.status == AppointmentStatus.CONFIRMED,
                Appointment.scheduled_at >= now,
                Appointment.scheduled_at <= now + REMINDER_LOOKAHEAD,
            )
            .order_by(Appointment.scheduled_at.asc())
            .all()
        )

        created = 0
        for appointment in appointments:
            if self._process_record(
                f"appointment {appointment.id}",
                lambda a=appointment: self._create_reminder(a, now),
            ):
                created += 1

        logger.info(f"Appointment reminders: {created} created from {len(appointments)} appointment(s)")
        return created

    def _create_reminder(self, appointment: Appointment, now: datetime) -> bool:
        client = appointment.client
        if not client.has_contact:
            logger.debug(f"Client {client.id} has no contact channel, skipping appointment {appointment.id}")
            return False

        duplicate = self.repo.find_duplicate(
            client_id=client.id,
            kind=AlertKind.APPOINTMENT_REMINDER,
            window_start=appointment.scheduled_at - REMINDER_WINDOW[0],
            window_end=appointment.scheduled_at - REMINDER_WINDOW[1],
            source_type=AlertSource.APPOINTMENT,
            source_id=appointment.id,
        )
        if duplicate:
            logger.debug(f"Reminder for appointment {appointment.id} already exists (alert {duplicate.id})")
            return False

        location = appointment.campaign.location if appointment.campaign else None
        content = templates.appointment_reminder(
            client.name,
            templates.format_long_datetime(appointment.scheduled_at),
            location,
        )

        self.repo.create(
            client_id=client.id,
            kind=AlertKind.APPOINTMENT_REMINDER,
            channel=preferred_channel(client),
            message=content.body,
            scheduled_at=now + REMINDER_LEAD,
            source_type=AlertSource.APPOINTMENT,
            source_id=appointment.id,
        )
        return True

    def generate_warranty_expiry_alerts(self, now: Optional[datetime] = None) -> int:
        """Create notices for warranties ending in the next 7 days.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            Number of alerts created
        """
        now = now or utcnow()

        warranties = (
            self.db.query(Warranty)
            .options(
                joinedload(Warranty.item).joinedload(SaleItem.product),
                joinedload(Warranty.item).joinedload(SaleItem.sale).joinedload(Sale.client),
            )
            .filter(
                Warranty.end_date >= now,
                Warranty.end_date <= now + WARRANTY_LOOKAHEAD,
            )
            .order_by(Warranty.end_date.asc())
            .all()
        )

        created = 0
        for warranty in warranties:
            if self._process_record(
                f"warranty {warranty.id}",
                lambda w=warranty: self._create_warranty_alert(w),
            ):
                created += 1

        logger.info(f"Warranty alerts: {created} created from {len(warranties)} warranty(ies)")
        return created

    def _create_warranty_alert(self, warranty: Warranty) -> bool:
        client = warranty.client
        if not client.has_contact:
            logger.debug(f"Client {client.id} has no contact channel, skipping warranty {warranty.id}")
            return False

        duplicate = self.repo.find_duplicate(
            client_id=client.id,
            kind=AlertKind.WARRANTY_EXPIRY,
            window_start=warranty.end_date - WARRANTY_WINDOW[0],
            window_end=warranty.end_date - WARRANTY_WINDOW[1],
            source_type=AlertSource.WARRANTY,
            source_id=warranty.id,
        )
        if duplicate:
            logger.debug(f"Expiry alert for warranty {warranty.id} already exists (alert {duplicate.id})")
            return False

        content = templates.warranty_expiry(
            client.name,
            warranty.item.product.name,
            templates.format_calendar_date(warranty.end_date),
        )

        self.repo.create(
            client_id=client.id,
            kind=AlertKind.WARRANTY_EXPIRY,
            channel=preferred_channel(client),
            message=content.body,
            scheduled_at=warranty.end_date - WARRANTY_LEAD,
            source_type=AlertSource.WARRANTY,
            source_id=warranty.id,
        )
        return True

    def generate_campaign_alerts(self, campaign_id: int, now: Optional[datetime] = None) -> int:
        """Announce a campaign to every client that can be contacted.

        Args:
            campaign_id: Campaign ID
            now: Reference time (defaults to current UTC time)

        Returns:
            Number of alerts created

        Raises:
            NotFoundError: If the campaign does not exist
        """
        now = now or utcnow()

        campaign = self.db.query(Campaign).filter_by(id=campaign_id).first()
        if not campaign:
            raise NotFoundError("Campaign", campaign_id)

        clients = (
            self.db.query(Client)
            .filter(or_(Client.email.isnot(None), Client.phone.isnot(None)))
            .order_by(Client.id.asc())
            .all()
        )

        created = 0
        for client in clients:
            if self._process_record(
                f"campaign {campaign.id} for client {client.id}",
                lambda c=client: self._create_campaign_alert(campaign, c, now),
            ):
                created += 1

        logger.info(f"Campaign {campaign.id} alerts: {created} created for {len(clients)} client(s)")
        return created

    def _create_campaign_alert(self, campaign: Campaign, client: Client, now: datetime) -> bool:
        if not client.has_contact:
            return False

        duplicate = self.repo.find_duplicate(
            client_id=client.id,
            kind=AlertKind.CAMPAIGN_ANNOUNCEMENT,
            window_start=campaign.date - CAMPAIGN_MARGIN,
            window_end=campaign.date + CAMPAIGN_MARGIN,
            source_type=AlertSource.CAMPAIGN,
            source_id=campaign.id,
        )
        if duplicate:
            return False

        content = templates.new_campaign(
            client.name,
            campaign.name,
            templates.format_calendar_date(campaign.date),
            campaign.location,
        )

        self.repo.create(
            client_id=client.id,
            kind=AlertKind.CAMPAIGN_ANNOUNCEMENT,
            channel=preferred_channel(client),
            message=content.body,
            scheduled_at=now,
            source_type=AlertSource.CAMPAIGN,
            source_id=campaign.id,
        )
        return True

    # ------------------------------------------------------------------
    # Dispatcher
    # ------------------------------------------------------------------

    def process_pending_alerts(self, now: Optional[datetime] = None) -> int:
        """Send due alerts, at most one batch per call.

        Alerts that fail stay unsent with their attempt time recorded, and
        are retried by a later run after alerts not yet attempted.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            Number of alerts sent
        """
        now = now or utcnow()
        alerts = self.repo.get_pending(now, limit=self.batch_size)

        sent = 0
        for alert in alerts:
            if self._process_record(f"alert {alert.id}", lambda a=alert: self._dispatch(a)):
                sent += 1
            else:
                self._process_record(
                    f"attempt on alert {alert.id}",
                    lambda a=alert: self.repo.record_attempt(a.id, now),
                )

        logger.info(f"Dispatch: {sent} of {len(alerts)} pending alert(s) sent")
        return sent

    def _dispatch(self, alert: Alert) -> bool:
        client = alert.client
        kind = AlertKind(alert.kind)

        result = self.gateway.send(
            email=client.email or None,
            phone=client.phone or None,
            subject=templates.subject_for(kind),
            message=alert.message,
            channels=[AlertChannel(alert.channel)],
        )

        if not result.any_sent:
            logger.warning(f"Alert {alert.id} not delivered via {AlertChannel(alert.channel).value}, will retry")
            return False

        self.repo.mark_sent(alert.id)
        return True


# ----------------------------------------------------------------------
# Convenience functions (open their own session)
# ----------------------------------------------------------------------


def generate_appointment_reminders(session_factory: Optional[Callable[[], Session]] = None) -> int:
    """Generate appointment reminders in a new session."""
    with get_db(session_factory) as db:
        return AlertService(db).generate_appointment_reminders()


def generate_warranty_expiry_alerts(session_factory: Optional[Callable[[], Session]] = None) -> int:
    """Generate warranty expiry alerts in a new session."""
    with get_db(session_factory) as db:
        return AlertService(db).generate_warranty_expiry_alerts()


def generate_campaign_alerts(
    campaign_id: int,
    session_factory: Optional[Callable[[], Session]] = None,
) -> int:
    """Generate campaign announcements in a new session.

    Raises:
        NotFoundError: If the campaign does not exist
    """
    with get_db(session_factory) as db:
        return AlertService(db).generate_campaign_alerts(campaign_id)


def process_pending_alerts(
    session_factory: Optional[Callable[[], Session]] = None,
    gateway: Optional[NotificationGateway] = None,
) -> int:
    """Dispatch due alerts in a new session."""
    with get_db(session_factory) as db:
        return AlertService(db, gateway=gateway).process_pending_alerts()
