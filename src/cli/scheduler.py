"""Scheduler CLI commands."""

from __future__ import annotations

import typer
from rich.console import Console

from src.config import get_settings

console = Console()
app = typer.Typer()
settings = get_settings()


@app.command("start")
def start_daemon(
    run_now: bool = typer.Option(
        False, "--run-now", "-r", help="Run every job once before waiting for the schedule"
    ),
):
    """Start the alert scheduler (runs continuously)."""
    from src.core.scheduler import start_scheduler

    console.print("[bold]Starting alert scheduler[/bold]")
    console.print(f"  Timezone: {settings.clinic_timezone}")
    console.print("  Dispatch: every 15 minutes")
    console.print("  Appointment reminders: hourly")
    console.print(f"  Warranty alerts: daily at {settings.warranty_alert_hour:02d}:00")
    console.print(f"  Batch size: {settings.dispatch_batch_size}")
    console.print()
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    start_scheduler(run_now=run_now)
