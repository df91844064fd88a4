"""Alerts API routes."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from src.api.deps import get_db, get_gateway, limiter, require_api_key
from src.core.alerts.models import (
    AlertCreate,
    AlertListResponse,
    AlertResponse,
    PipelineRunResponse,
    to_naive_utc,
)
from src.core.alerts.repository import AlertRepository
from src.core.alerts.service import AlertService
from src.core.notifications.gateway import NotificationGateway
from src.db.models import AlertChannel, AlertKind, Client

router = APIRouter(dependencies=[Depends(require_api_key)])


@router.post("/", response_model=AlertResponse, status_code=status.HTTP_201_CREATED)
def create_alert(
    data: AlertCreate,
    db: Session = Depends(get_db),
):
    """Create an alert manually for a specific client."""
    client = db.query(Client).filter_by(id=data.client_id).first()
    if not client:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Client {data.client_id} not found",
        )

    if data.channel == AlertChannel.EMAIL and not client.email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Client has no email address",
        )
    if data.channel == AlertChannel.SMS and not client.phone:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Client has no phone number",
        )

    repo = AlertRepository(db)
    alert = repo.create(
        client_id=data.client_id,
        kind=data.kind,
        channel=data.channel,
        message=data.message,
        scheduled_at=data.scheduled_at,
    )
    return AlertResponse.model_validate(alert)


@router.get("/", response_model=AlertListResponse)
def list_alerts(
    client_id: Optional[int] = None,
    kind: Optional[AlertKind] = None,
    channel: Optional[AlertChannel] = None,
    sent: Optional[bool] = None,
    date_from: Optional[datetime] = Query(None, description="Scheduled at or after"),
    date_to: Optional[datetime] = Query(None, description="Scheduled at or before"),
    limit: int = Query(200, ge=1, le=200, description="Maximum alerts to return"),
    db: Session = Depends(get_db),
):
    """List alerts with optional filters and summary statistics."""
    repo = AlertRepository(db)
    alerts = repo.get_filtered(
        client_id=client_id,
        kind=kind,
        channel=channel,
        sent=sent,
        scheduled_from=to_naive_utc(date_from) if date_from else None,
        scheduled_to=to_naive_utc(date_to) if date_to else None,
        limit=limit,
    )

    return AlertListResponse(
        alerts=[AlertResponse.model_validate(a) for a in alerts],
        total=len(alerts),
        stats=repo.stats(alerts),
    )


@router.get("/{alert_id}", response_model=AlertResponse)
def get_alert(
    alert_id: int,
    db: Session = Depends(get_db),
):
    """Get a specific alert by ID."""
    repo = AlertRepository(db)
    alert = repo.get_by_id(alert_id)
    if not alert:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Alert {alert_id} not found",
        )
    return AlertResponse.model_validate(alert)


@router.delete("/{alert_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_alert(
    alert_id: int,
    db: Session = Depends(get_db),
):
    """Delete an alert by ID."""
    repo = AlertRepository(db)
    if not repo.delete(alert_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Alert {alert_id} not found",
        )


@router.post("/generate/appointments", response_model=PipelineRunResponse)
def generate_appointment_alerts(db: Session = Depends(get_db)):
    """Generate appointment reminders now (normally hourly)."""
    count = AlertService(db).generate_appointment_reminders()
    return PipelineRunResponse(
        status="ok",
        message=f"{count} appointment reminder(s) generated",
        count=count,
    )


@router.post("/generate/warranties", response_model=PipelineRunResponse)
def generate_warranty_alerts(db: Session = Depends(get_db)):
    """Generate warranty expiry alerts now (normally daily)."""
    count = AlertService(db).generate_warranty_expiry_alerts()
    return PipelineRunResponse(
        status="ok",
        message=f"{count} warranty alert(s) generated",
        count=count,
    )


@router.post("/generate/campaigns/{campaign_id}", response_model=PipelineRunResponse)
@limiter.limit("10/minute")
def generate_campaign_alerts(
    request: Request,
    campaign_id: int,
    db: Session = Depends(get_db),
):
    """Announce a campaign to every client with a contact channel.

    Returns 404 if the campaign does not exist.
    """
    count = AlertService(db).generate_campaign_alerts(campaign_id)
    return PipelineRunResponse(
        status="ok",
        message=f"{count} campaign alert(s) generated",
        count=count,
    )


@router.post("/process", response_model=PipelineRunResponse)
def process_alerts(
    db: Session = Depends(get_db),
    gateway: NotificationGateway = Depends(get_gateway),
):
    """Send due alerts now (normally every 15 minutes)."""
    count = AlertService(db, gateway=gateway).process_pending_alerts()
    return PipelineRunResponse(
        status="ok",
        message=f"{count} alert(s) sent",
        count=count,
    )
