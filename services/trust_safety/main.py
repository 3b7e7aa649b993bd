"""
Trust & Safety Service - Main Application
=========================================

FastAPI application for marketplace profiles, provider risk, client trust
and warnings.

Version: 0.1.0
"""

from contextlib import asynccontextmanager
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware

from shared.config import settings
from shared.exceptions import TrustSafetyError
from shared.logging import bind_context, clear_context, get_logger, setup_logging
from shared.models.common import HealthResponse
from shared.store import get_document_store

from services.trust_safety.routes import clients, profiles, providers, warnings
from services.trust_safety.services.notifications import get_notifier

# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name="trust-safety",
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "trust_safety_starting",
        environment=settings.environment.value,
        port=settings.ports.trust_safety,
        store_mode=settings.store.mode.value,
    )

    # Startup
    store = get_document_store()
    try:
        await store.connect()
        await store.create_indexes()
        logger.info("document_store_connected", mode=store.mode.value)
    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    yield

    # Shutdown
    logger.info("trust_safety_shutting_down")
    await get_notifier().close()
    await store.close()


# Create FastAPI application
app = FastAPI(
    title="Trust & Safety Service",
    description="Profiles, provider risk, client trust and warnings for the services marketplace",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next: Any) -> Any:
    """Tag every log line emitted while serving a request with its id."""
    request_id = request.headers.get("X-Request-ID") or uuid4().hex
    bind_context(request_id=request_id, path=request.url.path)
    try:
        response = await call_next(request)
    finally:
        clear_context()
    response.headers["X-Request-ID"] = request_id
    return response


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """
    Service health check.

    Returns health status of the service and its document store.
    """
    components: dict[str, dict[str, Any]] = {}

    components["document_store"] = await get_document_store().health_check()

    all_healthy = all(c.get("status") == "healthy" for c in components.values())

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        service="trust-safety",
        version="0.1.0",
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "Trust & Safety Service",
        "version": "0.1.0",
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    profiles.router,
    prefix="/api/v1/profiles",
    tags=["Profiles"],
)

app.include_router(
    providers.router,
    prefix="/api/v1/providers",
    tags=["Provider Profiles"],
)

app.include_router(
    clients.router,
    prefix="/api/v1/clients",
    tags=["Client Profiles"],
)

app.include_router(
    warnings.router,
    prefix="/api/v1/warnings",
    tags=["Warnings"],
)


# ============================================================================
# Error Handlers
# ============================================================================


@app.exception_handler(TrustSafetyError)
async def trust_safety_exception_handler(request: Any, exc: TrustSafetyError) -> Any:
    """Map domain errors onto their HTTP status."""
    from fastapi.responses import JSONResponse

    logger.warning(
        "domain_error",
        error_code=exc.error_code,
        error=exc.message,
        status_code=exc.status_code,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.message,
            "error_code": exc.error_code,
            "details": exc.details,
            "status_code": exc.status_code,
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Any, exc: HTTPException) -> Any:
    """Handle HTTP exceptions."""
    from fastapi.responses import JSONResponse

    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "status_code": exc.status_code,
        },
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Any, exc: Exception) -> Any:
    """Handle unexpected exceptions."""
    from fastapi.responses import JSONResponse

    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Internal server error",
            "status_code": 500,
        },
    )


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.trust_safety.main:app",
        host="0.0.0.0",
        port=settings.ports.trust_safety,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )
