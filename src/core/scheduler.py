"""Scheduler for the periodic alert jobs."""

from __future__ import annotations

import logging
import signal
import sys
from typing import Callable, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from src.config import get_settings
from src.core.alerts import service
from src.core.notifications.gateway import NotificationGateway

logger = logging.getLogger(__name__)
settings = get_settings()

DISPATCH_JOB_ID = "process_pending_alerts"
APPOINTMENTS_JOB_ID = "generate_appointment_reminders"
WARRANTIES_JOB_ID = "generate_warranty_expiry_alerts"


class AlertScheduler:
    """Owns the periodic alert jobs.

    Built once at application start. Job callbacks only use the session
    factory and gateway passed in here.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        gateway: Optional[NotificationGateway] = None,
        blocking: bool = False,
        timezone: Optional[str] = None,
    ):
        """Initialize the scheduler.

        Args:
            session_factory: Session factory for job sessions (defaults to SessionLocal)
            gateway: Notification gateway for dispatch (defaults to settings)
            blocking: Run in the foreground instead of a background thread
            timezone: Timezone for cron triggers (defaults to the clinic's)
        """
        self.session_factory = session_factory
        self.gateway = gateway
        self.timezone = timezone or settings.clinic_timezone
        self.blocking = blocking
        self.scheduler: BaseScheduler = (
            BlockingScheduler(timezone=self.timezone) if blocking else BackgroundScheduler(timezone=self.timezone)
        )
        self.run_counts: Dict[str, int] = {}
        self._shutdown_requested = False
        self._add_jobs()

    def _add_jobs(self) -> None:
        jobs = [
            (
                DISPATCH_JOB_ID,
                "Process pending alerts",
                self.process_pending,
                CronTrigger(minute="*/15", timezone=self.timezone),
            ),
            (
                APPOINTMENTS_JOB_ID,
                "Generate appointment reminders",
                self.generate_appointments,
                CronTrigger(minute=0, timezone=self.timezone),
            ),
            (
                WARRANTIES_JOB_ID,
                "Generate warranty expiry alerts",
                self.generate_warranties,
                CronTrigger(hour=settings.warranty_alert_hour, minute=0, timezone=self.timezone),
            ),
        ]

        for job_id, name, func, trigger in jobs:
            self.scheduler.add_job(
                func,
                trigger=trigger,
                id=job_id,
                name=name,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )

    def _run_job(self, job_id: str, func: Callable[[], int]) -> Optional[int]:
        """Execute one job run, logging instead of raising."""
        count = self.run_counts.get(job_id, 0) + 1
        self.run_counts[job_id] = count

        logger.info(f"[{job_id} #{count}] Starting")
        try:
            result = func()
        except Exception as e:
            logger.error(f"[{job_id} #{count}] Error: {e}")
            return None

        logger.info(f"[{job_id} #{count}] Done: {result}")
        return result

    def process_pending(self) -> Optional[int]:
        return self._run_job(
            DISPATCH_JOB_ID,
            lambda: service.process_pending_alerts(self.session_factory, self.gateway),
        )

    def generate_appointments(self) -> Optional[int]:
        return self._run_job(
            APPOINTMENTS_JOB_ID,
            lambda: service.generate_appointment_reminders(self.session_factory),
        )

    def generate_warranties(self) -> Optional[int]:
        return self._run_job(
            WARRANTIES_JOB_ID,
            lambda: service.generate_warranty_expiry_alerts(self.session_factory),
        )

    def _handle_signal(self, signum, frame) -> None:
        """Handle shutdown signals gracefully."""
        if self._shutdown_requested:
            # Force exit on second signal
            logger.warning("Received second shutdown signal, forcing exit...")
            sys.exit(1)

        logger.info("Received shutdown signal, stopping scheduler...")
        self._shutdown_requested = True
        self.shutdown()

    def start(self) -> None:
        """Start the scheduler.

        Blocks until shutdown when the scheduler was built with ``blocking=True``.
        """
        logger.info(
            f"Starting alert scheduler ({self.timezone}): dispatch every 15 minutes, "
            f"appointment reminders hourly, warranty alerts daily at {settings.warranty_alert_hour:02d}:00"
        )

        if not self.blocking:
            self.scheduler.start()
            return

        # Set up signal handlers for graceful shutdown
        signal.signal(signal.SIGINT, self._handle_signal)
        signal.signal(signal.SIGTERM, self._handle_signal)

        try:
            self.scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            pass  # Expected on shutdown
        finally:
            logger.info("Scheduler stopped")

    def shutdown(self) -> None:
        """Stop the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler shutdown complete")


def start_scheduler(run_now: bool = False) -> None:
    """Start the blocking alert scheduler (convenience function).

    Args:
        run_now: Run every job once before waiting for the first trigger
    """
    scheduler = AlertScheduler(blocking=True)
    if run_now:
        scheduler.generate_appointments()
        scheduler.generate_warranties()
        scheduler.process_pending()
    scheduler.start()
