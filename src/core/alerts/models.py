"""Pydantic schemas for alert operations."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from src.db.models import MESSAGE_MAX_LENGTH, AlertChannel, AlertKind, AlertSource


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware timestamp to the naive UTC form stored in the database."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class AlertCreate(BaseModel):
    """Schema for creating an alert manually."""

    client_id: int = Field(..., gt=0)
    kind: AlertKind
    channel: AlertChannel
    message: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH)
    scheduled_at: datetime

    @field_validator("scheduled_at")
    @classmethod
    def normalize_scheduled_at(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class AlertClient(BaseModel):
    """Client contact summary embedded in alert responses."""

    id: int
    rut: Optional[str] = None
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    class Config:
        from_attributes = True


class AlertResponse(BaseModel):
    """Schema for alert response."""

    id: int
    client_id: int
    kind: AlertKind
    channel: AlertChannel
    message: str
    scheduled_at: datetime
    sent: bool
    last_attempt_at: Optional[datetime] = None
    source_type: Optional[AlertSource] = None
    source_id: Optional[int] = None
    created_at: datetime
    client: Optional[AlertClient] = None

    class Config:
        from_attributes = True


class AlertStats(BaseModel):
    """Counts over a list of alerts."""

    pending: int = 0
    sent: int = 0
    by_kind: Dict[str, int] = Field(default_factory=dict)


class AlertListResponse(BaseModel):
    """Filtered alert listing with statistics."""

    alerts: List[AlertResponse]
    total: int
    stats: AlertStats


class PipelineRunResponse(BaseModel):
    """Result of an on-demand generation or dispatch run."""

    status: str
    message: str
    count: int
