"""Alert generation and dispatch."""

from .models import AlertCreate, AlertResponse, AlertListResponse, AlertStats, PipelineRunResponse
from .repository import AlertRepository
from .service import (
    AlertService,
    generate_appointment_reminders,
    generate_warranty_expiry_alerts,
    generate_campaign_alerts,
    process_pending_alerts,
)

__all__ = [
    "AlertCreate",
    "AlertResponse",
    "AlertListResponse",
    "AlertStats",
    "PipelineRunResponse",
    "AlertRepository",
    "AlertService",
    "generate_appointment_reminders",
    "generate_warranty_expiry_alerts",
    "generate_campaign_alerts",
    "process_pending_alerts",
]
