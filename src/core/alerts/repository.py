"""Alert repository for CRUD operations."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from src.db.models import (
    MESSAGE_MAX_LENGTH,
    Alert,
    AlertChannel,
    AlertKind,
    AlertSource,
)
from .models import AlertStats

DEFAULT_LIST_LIMIT = 200
DEFAULT_BATCH_SIZE = 50


def truncate_message(message: str) -> str:
    """Clip a message to the stored column size."""
    return message[:MESSAGE_MAX_LENGTH]


class AlertRepository:
    """Repository for Alert CRUD operations."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def create(
        self,
        client_id: int,
        kind: AlertKind,
        channel: AlertChannel,
        message: str,
        scheduled_at: datetime,
        source_type: Optional[AlertSource] = None,
        source_id: Optional[int] = None,
    ) -> Alert:
        """Create a new unsent alert.

        Args:
            client_id: Client to notify
            kind: Alert kind
            channel: Delivery channel
            message: Message body (truncated to 240 characters)
            scheduled_at: When the alert becomes eligible for dispatch
            source_type: Type of the originating row, if any
            source_id: ID of the originating row, if any

        Returns:
            Created alert
        """
        alert = Alert(
            client_id=client_id,
            kind=kind,
            channel=channel,
            message=truncate_message(message),
            scheduled_at=scheduled_at,
            sent=False,
            source_type=source_type,
            source_id=source_id,
        )
        self.db.add(alert)
        self.db.flush()
        return alert

    def get_by_id(self, alert_id: int) -> Optional[Alert]:
        """Get an alert by ID."""
        return self.db.query(Alert).filter_by(id=alert_id).first()

    def get_filtered(
        self,
        client_id: Optional[int] = None,
        kind: Optional[AlertKind] = None,
        channel: Optional[AlertChannel] = None,
        sent: Optional[bool] = None,
        scheduled_from: Optional[datetime] = None,
        scheduled_to: Optional[datetime] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> List[Alert]:
        """List alerts matching the given filters.

        Returns:
            Alerts ordered by scheduled_at desc
        """
        query = self.db.query(Alert).options(joinedload(Alert.client))

        if client_id is not None:
            query = query.filter(Alert.client_id == client_id)
        if kind is not None:
            query = query.filter(Alert.kind == kind)
        if channel is not None:
            query = query.filter(Alert.channel == channel)
        if sent is not None:
            query = query.filter(Alert.sent == sent)
        if scheduled_from is not None:
            query = query.filter(Alert.scheduled_at >= scheduled_from)
        if scheduled_to is not None:
            query = query.filter(Alert.scheduled_at <= scheduled_to)

        return query.order_by(Alert.scheduled_at.desc()).limit(limit).all()

    @staticmethod
    def stats(alerts: List[Alert]) -> AlertStats:
        """Summarize a list of alerts."""
        by_kind = {kind.value: 0 for kind in AlertKind}
        for alert in alerts:
            by_kind[AlertKind(alert.kind).value] += 1

        sent = sum(1 for a in alerts if a.sent)
        return AlertStats(pending=len(alerts) - sent, sent=sent, by_kind=by_kind)

    def find_duplicate(
        self,
        client_id: int,
        kind: AlertKind,
        window_start: datetime,
        window_end: datetime,
        source_type: Optional[AlertSource] = None,
        source_id: Optional[int] = None,
    ) -> Optional[Alert]:
        """Find an existing alert that makes a new one redundant.

        An alert is a duplicate when it was generated from the same source
        row, or when it is for the same client and kind and scheduled inside
        ``[window_start, window_end]``.
        """
        in_window = and_(
            Alert.client_id == client_id,
            Alert.kind == kind,
            Alert.scheduled_at >= window_start,
            Alert.scheduled_at <= window_end,
        )

        condition = in_window
        if source_type is not None and source_id is not None:
            same_source = and_(
                Alert.client_id == client_id,
                Alert.source_type == source_type,
                Alert.source_id == source_id,
            )
            condition = or_(in_window, same_source)

        return self.db.query(Alert).filter(condition).first()

    def get_pending(self, now: datetime, limit: int = DEFAULT_BATCH_SIZE) -> List[Alert]:
        """Get unsent alerts that are due.

        Alerts never attempted come first, then those whose last failed
        attempt is oldest.

        Args:
            now: Reference time
            limit: Maximum number of alerts

        Returns:
            Due alerts, oldest scheduled first within each group
        """
        return (
            self.db.query(Alert)
            .options(joinedload(Alert.client))
            .filter(Alert.sent == False, Alert.scheduled_at <= now)  # noqa: E712
            .order_by(
                Alert.last_attempt_at.asc().nulls_first(),
                Alert.scheduled_at.asc(),
                Alert.id.asc(),
            )
            .limit(limit)
            .all()
        )

    def record_attempt(self, alert_id: int, attempted_at: datetime) -> bool:
        """Record a failed dispatch attempt.

        Returns:
            True if updated, False if not found
        """
        alert = self.get_by_id(alert_id)
        if not alert:
            return False

        alert.last_attempt_at = attempted_at
        self.db.flush()
        return True

    def mark_sent(self, alert_id: int) -> bool:
        """Mark an alert as sent.

        Args:
            alert_id: Alert ID

        Returns:
            True if updated, False if not found
        """
        alert = self.get_by_id(alert_id)
        if not alert:
            return False

        alert.sent = True
        self.db.flush()
        return True

    def delete(self, alert_id: int) -> bool:
        """Delete an alert.

        Args:
            alert_id: Alert ID

        Returns:
            True if deleted, False if not found
        """
        alert = self.get_by_id(alert_id)
        if not alert:
            return False

        self.db.delete(alert)
        self.db.flush()
        return True
