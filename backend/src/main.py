"""FastAPI application entry point for Laudos.

Forensic expert case management and report generation REST API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from laudos import __version__
from laudos.api import register_exception_handlers
from laudos.api.middleware import setup_middleware
from laudos.config import get_settings
from laudos.db import close_all_connections, ping_database
from laudos.logging import get_logger, setup_logging

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    from laudos.extraction.llm import get_llm_client
    from laudos.processes.autosave import get_autosave_buffer
    from laudos.reports.remote import get_remote_report_client
    from laudos.scheduling.email import get_schedule_mailer

    # Startup
    settings = get_settings()
    logger.info(
        "Starting Laudos API",
        extra={
            "environment": settings.environment,
            "debug": settings.api_debug,
        },
    )

    yield

    # Shutdown
    logger.info("Shutting down Laudos API")
    results = await get_autosave_buffer().close()
    failed = [r for r in results if not r.saved]
    if failed:
        logger.warning(f"{len(failed)} pending autosave(s) failed on shutdown")
    await get_llm_client().close()
    await get_remote_report_client().close()
    await get_schedule_mailer().close()
    await close_all_connections()


# Create FastAPI application
settings = get_settings()

app = FastAPI(
    title="Laudos API",
    description="Gestão de processos periciais e geração de laudos",
    version=__version__,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_middleware(app)

register_exception_handlers(app)


# =========================
# Health Check Endpoints
# =========================


@app.get("/health", tags=["Health"])
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "laudos-api"}


@app.get("/health/ready", tags=["Health"])
async def readiness_check():
    """Readiness check that verifies database connectivity."""
    checks = {"postgres": "unknown"}

    try:
        await ping_database()
        checks["postgres"] = "healthy"
    except Exception as e:
        checks["postgres"] = f"unhealthy: {str(e)}"

    all_healthy = all(v == "healthy" for v in checks.values())
    status_code = 200 if all_healthy else 503

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if all_healthy else "not_ready",
            "checks": checks,
        },
    )


@app.get("/health/live", tags=["Health"])
async def liveness_check():
    """Liveness check - just confirms the service is running."""
    return {"status": "alive"}


# =========================
# API Routers
# =========================

from laudos.api.documents import router as documents_router
from laudos.api.extraction import router as extraction_router
from laudos.api.linked_users import router as linked_users_router
from laudos.api.notifications import router as notifications_router
from laudos.api.processes import router as processes_router
from laudos.api.reports import functions_router
from laudos.api.reports import router as reports_router
from laudos.api.scheduling import router as scheduling_router

app.include_router(processes_router, prefix="/api/v1", tags=["Processes"])
app.include_router(documents_router, prefix="/api/v1", tags=["Documents"])
app.include_router(reports_router, prefix="/api/v1", tags=["Reports"])
app.include_router(functions_router, prefix="/api/v1", tags=["Functions"])
app.include_router(extraction_router, prefix="/api/v1", tags=["Extraction"])
app.include_router(scheduling_router, prefix="/api/v1", tags=["Scheduling"])
app.include_router(notifications_router, prefix="/api/v1", tags=["Notifications"])
app.include_router(linked_users_router, prefix="/api/v1", tags=["Linked users"])


# =========================
# Root Endpoint
# =========================


@app.get("/", tags=["Root"])
async def root():
    """API root endpoint."""
    return {
        "name": "Laudos API",
        "version": __version__,
        "description": "Gestão de processos periciais e geração de laudos",
        "docs": "/docs" if settings.is_development else None,
    }
