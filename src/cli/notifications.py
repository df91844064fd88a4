"""CLI commands for notification channels."""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from src.config import get_settings
from src.core.notifications.channels import EmailChannel, SmsChannel
from src.core.notifications.gateway import build_gateway
from src.db.models import AlertChannel

console = Console()
app = typer.Typer(help="Check notification channels")
settings = get_settings()


@app.command("status")
def show_status():
    """Show which notification channels are configured."""
    email = EmailChannel.from_settings(settings)
    sms = SmsChannel.from_settings(settings)

    table = Table(title="Notification Channels")
    table.add_column("Channel", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")

    table.add_row(
        "Email",
        "[green]Configured[/green]" if email.configured else "[red]Not configured[/red]",
        f"{email.host}:{email.port} as {email.from_address or '-'}",
    )
    table.add_row(
        "SMS",
        "[green]Configured[/green]" if sms.configured else "[red]Not configured[/red]",
        f"Twilio from {sms.from_number or '-'}",
    )

    console.print(table)

    if settings.notifications_console:
        console.print("\n[yellow]Note:[/yellow] NOTIFICATIONS_CONSOLE is set, messages are printed, not sent")


@app.command("test")
def send_test(
    email: Optional[str] = typer.Option(None, "--email", "-e", help="Send a test email to this address"),
    phone: Optional[str] = typer.Option(None, "--phone", "-p", help="Send a test SMS to this number"),
):
    """Send a test message to verify channel configuration."""
    if not email and not phone:
        console.print("[red]Error:[/red] Pass --email and/or --phone")
        raise typer.Exit(1)

    channels = []
    if email:
        channels.append(AlertChannel.EMAIL)
    if phone:
        channels.append(AlertChannel.SMS)

    result = build_gateway().send(
        email=email,
        phone=phone,
        subject=f"Mensaje de prueba - {settings.clinic_name}",
        message="Este es un mensaje de prueba del sistema de alertas.",
        channels=channels,
    )

    if email:
        console.print(f"Email: {'[green]sent[/green]' if result.email_sent else '[red]failed[/red]'}")
    if phone:
        console.print(f"SMS: {'[green]sent[/green]' if result.sms_sent else '[red]failed[/red]'}")

    if not result.any_sent:
        raise typer.Exit(1)
