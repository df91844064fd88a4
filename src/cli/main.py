"""Main CLI entry point using Typer."""

import logging

import typer
from rich.console import Console

from src.db.database import init_db
from src.config import PRODUCT_NAME, PRODUCT_TAGLINE, PRODUCT_VERSION, get_settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries
logging.getLogger("apscheduler").setLevel(logging.WARNING)
logging.getLogger("urllib3").setLevel(logging.WARNING)

console = Console()
app = typer.Typer(
    name="clinic-alerts",
    help=f"{PRODUCT_NAME}: {PRODUCT_TAGLINE}",
    add_completion=False,
)


@app.callback()
def main_callback():
    """Initialize database on startup."""
    init_db()


# Import and add subcommands
from src.cli.alerts import app as alerts_app
from src.cli.scheduler import app as scheduler_app
from src.cli.notifications import app as notifications_app

app.add_typer(alerts_app, name="alerts", help="Generate, send and inspect client alerts")
app.add_typer(scheduler_app, name="scheduler", help="Run the periodic alert jobs")
app.add_typer(notifications_app, name="notifications", help="Check notification channels")


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]{PRODUCT_NAME}[/bold] {PRODUCT_VERSION}")
    console.print(PRODUCT_TAGLINE)


if __name__ == "__main__":
    app()
