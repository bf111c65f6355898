"""
AEM → MLE Sync Service
FastAPI application that forwards approved AEM asset metadata to MLE.
"""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from asset_sync.config import get_settings
from asset_sync.dependencies import close_pipeline
from asset_sync.errors import EventValidationError, SignatureError
from asset_sync.routers import webhooks

APP_VERSION = "1.0.0"

# Configure logging to output to console
logging.basicConfig(
    level=get_settings().log_level_value,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


app = FastAPI(
    title="AEM MLE Sync",
    description="Synchronizes approved AEM asset metadata to the Media Logic Engine",
    version=APP_VERSION,
)

# Include routers
app.include_router(webhooks.router, prefix="/webhook", tags=["webhooks"])


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------

@app.exception_handler(SignatureError)
async def signature_error_handler(request: Request, exc: SignatureError) -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": "Invalid signature"})


@app.exception_handler(EventValidationError)
async def validation_error_handler(request: Request, exc: EventValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": str(exc), "timestamp": _now_iso()},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: the process keeps serving, the caller gets a 500."""
    logger.exception("Error processing request %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "timestamp": _now_iso()},
    )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

@app.on_event("startup")
async def log_startup_configuration() -> None:
    """
    Log where the service listens and the non-secret configuration, and warn
    about required settings that are missing (every sync would fail with an
    authentication error until they are set).

    Example output:

        AEM-MLE Sync Service running on port 8000
        Configuration loaded: {'mle_api_url': ..., 'webhook_secret_configured': True, ...}
    """
    settings = get_settings()
    logger.info("AEM-MLE Sync Service running on port %s", settings.port)
    logger.info("Configuration loaded: %s", settings.summary())

    missing = settings.missing_required()
    if missing:
        logger.warning("Missing required configuration: %s", ", ".join(missing))
    if not settings.signature_required:
        logger.warning(
            "AEM_WEBHOOK_SECRET is not set; webhook signatures will NOT be verified"
        )


@app.on_event("shutdown")
async def shutdown_pipeline() -> None:
    await close_pipeline()


@app.get("/health")
async def health():
    return {"status": "healthy", "timestamp": _now_iso(), "version": APP_VERSION}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
