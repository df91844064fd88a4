"""Tests for the alert scheduler."""

from datetime import timedelta
from unittest.mock import patch

import pytest

from src.core.scheduler import (
    APPOINTMENTS_JOB_ID,
    DISPATCH_JOB_ID,
    WARRANTIES_JOB_ID,
    AlertScheduler,
)
from src.db.models import Alert

from conftest import NOW


@pytest.fixture
def scheduler(session_factory, gateway):
    alert_scheduler = AlertScheduler(session_factory=session_factory, gateway=gateway, timezone="UTC")
    yield alert_scheduler
    alert_scheduler.shutdown()


class TestAlertScheduler:
    """Tests for AlertScheduler."""

    def test_registers_jobs(self, scheduler):
        jobs = {job.id: job for job in scheduler.scheduler.get_jobs()}

        assert set(jobs) == {DISPATCH_JOB_ID, APPOINTMENTS_JOB_ID, WARRANTIES_JOB_ID}
        assert "minute='*/15'" in str(jobs[DISPATCH_JOB_ID].trigger)
        assert "minute='0'" in str(jobs[APPOINTMENTS_JOB_ID].trigger)
        assert "hour='8'" in str(jobs[WARRANTIES_JOB_ID].trigger)

    def test_jobs_never_overlap(self, scheduler):
        for job in scheduler.scheduler.get_jobs():
            assert job.max_instances == 1
            assert job.coalesce is True

    def test_job_error_is_logged_not_raised(self, scheduler):
        with patch("src.core.scheduler.service.process_pending_alerts", side_effect=RuntimeError("db down")):
            assert scheduler.process_pending() is None

        assert scheduler.run_counts[DISPATCH_JOB_ID] == 1

    def test_dispatch_job_uses_injected_dependencies(self, scheduler, db_session, make_client, make_alert, gateway):
        alert = make_alert(make_client(), NOW - timedelta(hours=1))

        assert scheduler.process_pending() == 1

        gateway.send.assert_called_once()
        db_session.expire_all()
        assert db_session.get(Alert, alert.id).sent is True

    def test_generator_jobs_report_counts(self, scheduler):
        assert scheduler.generate_appointments() == 0
        assert scheduler.generate_warranties() == 0
        assert scheduler.run_counts == {APPOINTMENTS_JOB_ID: 1, WARRANTIES_JOB_ID: 1}

    def test_background_start_and_shutdown(self, scheduler):
        scheduler.start()
        assert scheduler.scheduler.running

        scheduler.shutdown()
        assert not scheduler.scheduler.running
