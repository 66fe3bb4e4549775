"""
ScriptSentries - Script Clearance Assistant
===========================================
FastAPI application entry point.

Serves:
- Zero-retention PDF script scanning
- Per-page legal/IP risk classification with an LLM
- Role-gated project workspaces with versioned scripts
- Reviewer comments and @mention notifications
- Redaction-aware clearance report export
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import collab_router, projects_router, scripts_router, users_router
from core.config import get_settings
from core.errors import ScriptSentriesError
from core.pipeline import sweep_stale_scratch
from schemas import HealthCheckResponse

__version__ = "1.0.0"

# === Configuration ===
settings = get_settings()

# pdfminer logs every font and stream it parses at DEBUG/INFO
NOISY_LOGGERS = ("pdfminer", "httpx", "openai")


# === Logging Setup ===
def setup_logging():
    """Configure structured logging."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.debug
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


setup_logging()
logger = structlog.get_logger(__name__)


# === Lifespan Management ===
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    - Validate the model endpoint configuration
    - Erase scratch copies orphaned by a previous crash
    """
    logger.info("Starting ScriptSentries API", version=__version__)

    try:
        settings.validate_llm_config()
        logger.info("Model endpoint configured", model=settings.llm_model, base_url=settings.llm_base_url)
    except ValueError as e:
        logger.error("Configuration error", error=str(e))

    if settings.scratch_dir is not None:
        sweep_stale_scratch(settings.scratch_dir, settings.scratch_stale_after_seconds)
    logger.info("Scratch storage", path=str(settings.scratch_dir or "system temp"))

    yield

    logger.info("Shutting down ScriptSentries API")


# === Application Setup ===
app = FastAPI(
    title="ScriptSentries API",
    description="""
    ## Script Clearance Assistant

    ScriptSentries reviews film and television scripts for clearance risks:

    - **Scans** PDF scripts page by page without retaining the upload
    - **Classifies** brand, likeness, music, location, number and prop risks
    - **Organizes** scripts as versions inside role-gated projects
    - **Exports** clearance reports with per-risk redaction

    ### Typical Flow

    1. `POST /projects` - Create a project workspace
    2. `POST /scripts/scan` - Upload and analyze a script
    3. `PATCH /risks/{id}` - Review findings
    4. `GET /scripts/{id}/export` - Download the clearance report

    Workspace calls identify the acting user with the `X-User-Id` header.
    """,
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


# === Exception Handlers ===
@app.exception_handler(ScriptSentriesError)
async def domain_exception_handler(request: Request, exc: ScriptSentriesError):
    """Render domain errors with their own status code."""
    logger.info("Request rejected", path=request.url.path, error=exc.error, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions."""
    logger.exception("Unhandled exception", path=request.url.path, error=str(exc))

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "InternalServerError",
            "message": "An unexpected error occurred. Please try again.",
            "details": {"path": request.url.path} if settings.debug else None
        }
    )


# === Health Check ===
@app.get(
    "/health",
    response_model=HealthCheckResponse,
    tags=["Health"],
    summary="Health check",
    description="Reports whether the model endpoint is configured."
)
async def health_check() -> HealthCheckResponse:
    return HealthCheckResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.utcnow(),
        services={
            "api": "healthy",
            "llm": "configured" if settings.openai_api_key else "not_configured",
            "scratch": "dedicated" if settings.scratch_dir else "system_temp",
        }
    )


@app.get("/", tags=["Health"], summary="Service index")
async def root():
    return {
        "name": "ScriptSentries API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


app.include_router(users_router)
app.include_router(projects_router)
app.include_router(scripts_router)
app.include_router(collab_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
