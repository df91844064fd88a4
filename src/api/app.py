"""FastAPI application setup."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.deps import limiter
from src.api.routes import alerts
from src.config import PRODUCT_NAME, PRODUCT_TAGLINE, PRODUCT_VERSION, PRODUCT_DESCRIPTION, get_settings
from src.core.exceptions import NotFoundError
from src.core.scheduler import AlertScheduler
from src.db.database import init_db

logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(
    title=f"{PRODUCT_NAME} API",
    description=PRODUCT_DESCRIPTION,
    version=PRODUCT_VERSION,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.state.scheduler = None


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.on_event("startup")
def startup():
    """Initialize database and start the alert scheduler."""
    init_db()

    if settings.scheduler_enabled:
        app.state.scheduler = AlertScheduler()
        app.state.scheduler.start()
    else:
        logger.info("Alert scheduler disabled")


@app.on_event("shutdown")
def shutdown():
    """Stop the alert scheduler."""
    if app.state.scheduler is not None:
        app.state.scheduler.shutdown()
        app.state.scheduler = None


@app.get("/api/health")
def health():
    """Health check endpoint."""
    return {
        "name": PRODUCT_NAME,
        "version": PRODUCT_VERSION,
        "status": "ok",
        "tagline": PRODUCT_TAGLINE,
        "scheduler": "running" if app.state.scheduler is not None else "stopped",
    }


# Mount API routers
app.include_router(alerts.router, prefix="/api/alerts", tags=["alerts"])
