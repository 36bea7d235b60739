"""
Main FastAPI application for the Offer Studio backend.
Handles CORS, request logging middleware, lifespan events, error mapping,
and router registration.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import close_db, init_db
from app.routers import health, offers, profiles
from app.services.debounce import audit_registry
from app.services.exceptions import (
    AuthError,
    EmptyResponseError,
    MalformedOutputError,
    PipelineError,
    TransportError,
    WebhookDeliveryError,
)
from app.services.offer_store import RecordNotFoundError

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Startup / shutdown helpers
# ---------------------------------------------------------------------------

async def _check_database() -> bool:
    """Initialise DB tables and verify the connection.  Returns True on success."""
    try:
        await init_db()
        logger.info("✓ Database connection OK")
        return True
    except Exception as exc:
        logger.error("✗ Database connection failed: %s", exc)
        raise


def _check_generation_backend() -> bool:
    """Warn (never raise) when no generation credential is configured."""
    if settings.ANTHROPIC_API_KEY.strip():
        logger.info("✓ Generation backend: %s (%s)", settings.ANTHROPIC_BASE_URL, settings.ANTHROPIC_MODEL)
        return True
    logger.warning(
        "⚠ ANTHROPIC_API_KEY is not set. Extraction, audit, drafting and "
        "rendering requests will fail with 503 until it is configured."
    )
    return False


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting Offer Studio backend …")
    logger.info("=" * 60)

    # 1 — Database (required; raises on failure)
    await _check_database()

    # 2 — Generation credential (optional; logs a warning)
    _check_generation_backend()

    if not settings.OFFER_WEBHOOK_URL:
        logger.warning("⚠ OFFER_WEBHOOK_URL is not set; /send will fail with 502")

    logger.info("=" * 60)
    logger.info("  Offer Studio ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("Shutting down Offer Studio backend …")
    audit_registry.close()
    await close_db()
    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Offer Studio API",
    description=(
        "**Offer Studio** — turns a business's own knowledge into grounded "
        "client offers.\n\n"
        "Key endpoints:\n"
        "- `POST /api/profiles` — create a knowledge profile\n"
        "- `POST /api/profiles/{id}/ingest` — extract facts / proof points\n"
        "- `POST /api/profiles/{id}/audit` — knowledge gap suggestions\n"
        "- `POST /api/profiles/{id}/offers` — draft and save an offer\n"
        "- `POST /api/offers/{id}/render` — styled document\n"
        "- `POST /api/offers/{id}/send` — deliver via webhook\n"
    ),
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) to every response.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    if request.url.path not in ("/api/health/", "/"):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

def _status_for(exc: PipelineError) -> int:
    if isinstance(exc, AuthError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(
        exc, (TransportError, EmptyResponseError, MalformedOutputError, WebhookDeliveryError)
    ):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(PipelineError)
async def pipeline_exception_handler(request: Request, exc: PipelineError):
    """Map a typed pipeline failure to a JSON error; nothing was persisted."""
    code = _status_for(exc)
    logger.warning(
        "%s %s failed: %s: %s",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc,
    )
    return JSONResponse(
        status_code=code,
        content={"detail": str(exc), "error_type": type(exc).__name__},
    )


@app.exception_handler(RecordNotFoundError)
async def not_found_handler(request: Request, exc: RecordNotFoundError):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc), "error_type": "RecordNotFoundError"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error": str(exc),
            "path": str(request.url.path),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router,   prefix="/api/health",   tags=["Health"])
app.include_router(profiles.router, prefix="/api/profiles", tags=["Profiles"])
app.include_router(offers.router,   prefix="/api/offers",   tags=["Offers"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root — returns basic service info."""
    return {
        "name": "Offer Studio API",
        "version": API_VERSION,
        "description": "Knowledge extraction and offer drafting backend",
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "profiles": "/api/profiles",
            "offers": "/api/offers",
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
