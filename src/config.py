"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from pydantic_settings import BaseSettings

# ===========================================
# Product Branding
# ===========================================
PRODUCT_NAME = "Clinic Alerts"
PRODUCT_TAGLINE = "Automated reminders for the optical clinic."
PRODUCT_VERSION = "1.0.0"
PRODUCT_DESCRIPTION = "Appointment reminders, warranty expiry notices and campaign announcements."

# Email template colors
BRAND_COLORS = {
    "clinic_green": "#065f46",
    "clinic_green_light": "#047857",
    "text_gray": "#374151",
    "muted_gray": "#6b7280",
    "panel_gray": "#f9fafb",
    "footer_gray": "#e5e7eb",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///./clinic_alerts.db"

    # Logging
    log_level: str = "INFO"

    # API Security
    api_key: str = ""  # Set in .env for production

    # Clinic
    clinic_name: str = "Dannig Óptica"
    clinic_address: str = "Av. Pajaritos #3195, piso 13 oficina 1318, Maipú"
    clinic_timezone: str = "America/Santiago"

    # Email (SMTP)
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""  # Falls back to smtp_user

    # SMS (Twilio)
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_from_number: str = ""

    # Print notifications to the terminal instead of sending them
    notifications_console: bool = False

    # Scheduling
    scheduler_enabled: bool = True
    dispatch_batch_size: int = 50
    warranty_alert_hour: int = 8

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
