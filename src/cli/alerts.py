"""Alerts CLI commands."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from src.core.alerts import service
from src.core.alerts.repository import AlertRepository
from src.core.exceptions import NotFoundError
from src.db.database import get_db
from src.db.models import AlertChannel, AlertKind

console = Console()
app = typer.Typer()
generate_app = typer.Typer(help="Generate alerts from appointments, warranties or campaigns")
app.add_typer(generate_app, name="generate")


@app.command("list")
def list_alerts(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of alerts to show"),
    client_id: Optional[int] = typer.Option(None, "--client", "-c", help="Filter by client ID"),
    kind: Optional[AlertKind] = typer.Option(None, "--kind", "-k", help="Filter by alert kind"),
    pending: bool = typer.Option(False, "--pending", "-p", help="Only alerts not yet sent"),
):
    """Show alerts, most recently scheduled first."""
    with get_db() as db:
        repo = AlertRepository(db)
        alerts = repo.get_filtered(
            client_id=client_id,
            kind=kind,
            sent=False if pending else None,
            limit=limit,
        )

        if not alerts:
            console.print("[yellow]No alerts found.[/yellow]")
            return

        table = Table(title=f"Alerts (last {len(alerts)})")
        table.add_column("ID", style="dim")
        table.add_column("Scheduled", style="dim")
        table.add_column("Client", style="cyan")
        table.add_column("Kind")
        table.add_column("Channel")
        table.add_column("Sent")
        table.add_column("Message", max_width=40)

        for alert in alerts:
            first_line = alert.message.splitlines()[0] if alert.message else ""
            table.add_row(
                str(alert.id),
                alert.scheduled_at.strftime("%Y-%m-%d %H:%M"),
                alert.client.name,
                AlertKind(alert.kind).value,
                AlertChannel(alert.channel).value,
                "[green]yes[/green]" if alert.sent else "[yellow]no[/yellow]",
                first_line[:40],
            )

        console.print(table)

        stats = repo.stats(alerts)
        console.print(f"\n  Pending: {stats.pending}  Sent: {stats.sent}")


@generate_app.command("appointments")
def generate_appointments():
    """Create reminders for confirmed appointments in the next 24 hours."""
    created = service.generate_appointment_reminders()
    console.print(f"[bold green]{created} appointment reminder(s) generated[/bold green]")


@generate_app.command("warranties")
def generate_warranties():
    """Create notices for warranties expiring in the next 7 days."""
    created = service.generate_warranty_expiry_alerts()
    console.print(f"[bold green]{created} warranty alert(s) generated[/bold green]")


@generate_app.command("campaign")
def generate_campaign(
    campaign_id: int = typer.Argument(..., help="Campaign ID"),
):
    """Announce a campaign to every client with email or phone."""
    try:
        created = service.generate_campaign_alerts(campaign_id)
    except NotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[bold green]{created} campaign alert(s) generated[/bold green]")


@app.command("process")
def process():
    """Send alerts that are due."""
    sent = service.process_pending_alerts()
    if sent:
        console.print(f"[bold green]{sent} alert(s) sent[/bold green]")
    else:
        console.print("[dim]No alerts sent.[/dim]")


@app.command("delete")
def delete_alert(
    alert_id: int = typer.Argument(..., help="Alert ID"),
):
    """Delete an alert."""
    with get_db() as db:
        if not AlertRepository(db).delete(alert_id):
            console.print(f"[red]Error:[/red] Alert {alert_id} not found")
            raise typer.Exit(1)

    console.print(f"[green]Deleted alert {alert_id}[/green]")
