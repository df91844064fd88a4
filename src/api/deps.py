"""FastAPI dependencies."""

from __future__ import annotations

import secrets
from typing import Generator, Optional

from fastapi import Header, HTTPException, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from src.db.database import get_db as db_context
from src.config import get_settings
from src.core.notifications.gateway import NotificationGateway, build_gateway

settings = get_settings()

# Rate limiter - key by IP address
limiter = Limiter(key_func=get_remote_address)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session."""
    with db_context() as db:
        yield db


def require_api_key(x_api_key: Optional[str] = Header(None)) -> None:
    """Check the shared API key for protected endpoints.

    When no API key is configured every request is allowed (dev mode).
    """
    if not settings.api_key:
        return

    if x_api_key and secrets.compare_digest(x_api_key, settings.api_key):
        return

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or missing API key",
        headers={"WWW-Authenticate": "ApiKey"},
    )


def get_gateway() -> NotificationGateway:
    """Notification gateway built from settings."""
    return build_gateway()
