"""
DentalHub - Main Application Entry Point

Dental practice management API: patients, appointments, staff, insurance
through Sikka, AI voice calls through Retell, outreach campaigns and
practice advisor agents.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dentalhub import __version__
from dentalhub.core.config import settings
from dentalhub.core.logging import setup_logging, get_logger
from dentalhub.core.exceptions import (
    DentalHubException,
    AuthenticationError,
    RateLimitError
)
from dentalhub.db import initialize_database, close_database
from dentalhub.services.cache import close_redis
from dentalhub.integrations.sikka import close_sikka_client
from dentalhub.api.routes import (
    agents,
    appointments,
    auth,
    calls,
    campaigns,
    dashboard,
    health,
    insurance,
    marketing,
    patients,
    practices,
    procedure_codes,
    sikka,
    staff,
    webhooks,
)

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup and shutdown events
    """
    # Startup
    logger.info("=" * 60)
    logger.info("Starting DentalHub API")
    logger.info(f"Version: {__version__}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"API Base URL: {settings.api_base_url}")
    logger.info(f"Database Type: {settings.database_type}")
    logger.info("=" * 60)

    if await initialize_database():
        logger.info(f"Database ({settings.database_type}) initialized successfully")
    else:
        logger.error("Database initialization failed; data routes will be unavailable")

    yield

    # Shutdown
    logger.info("Shutting down DentalHub API")

    await close_database()
    await close_redis()
    await close_sikka_client()

    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="DentalHub API",
    description="""
    ## Dental Practice Management API

    ### Features

    - **Patients & Appointments**: Records, family links, scheduling and reminders
    - **Staff**: Profiles, roles and license tracking
    - **Insurance**: Verification, eligibility, benefits and claims through Sikka
    - **Voice Calls**: AI patient calls through Retell with transcripts and recordings
    - **Campaigns**: Voice, SMS and email outreach with delivery metrics
    - **AI Agents**: Specialist advisors coordinated by the Head Brain orchestrator

    ### Authentication

    Sign in through `/api/v1/auth/login` and send the access token as
    `Authorization: Bearer <token>` (or rely on the session cookie), or use a
    practice API key:
    - Header: `X-API-Key: your-api-key`
    - Bearer Token: `Authorization: Bearer your-api-key`
    - Query Parameter: `?api_key=your-api-key`

    ### Rate Limits

    - **Requests**: 60 requests/minute per practice
    - **Calls**: 100 calls/hour per practice
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Custom Exception Handlers
@app.exception_handler(DentalHubException)
async def dentalhub_exception_handler(request: Request, exc: DentalHubException):
    """Handle custom DentalHub exceptions"""
    logger.warning(f"DentalHubException: {exc.error_code} - {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


@app.exception_handler(AuthenticationError)
async def auth_exception_handler(request: Request, exc: AuthenticationError):
    """Handle authentication errors"""
    logger.warning(f"AuthenticationError: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers={"WWW-Authenticate": "Bearer"}
    )


@app.exception_handler(RateLimitError)
async def rate_limit_exception_handler(request: Request, exc: RateLimitError):
    """Handle rate limit errors"""
    logger.warning(f"RateLimitError: {exc.message}")
    retry_after = exc.details.get("retry_after_seconds", 60)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers={"Retry-After": str(retry_after)}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "details": {"exception": str(exc)} if settings.debug else {}
        }
    )


# Include routers
app.include_router(health.router)
for module in (
    auth,
    practices,
    patients,
    appointments,
    staff,
    campaigns,
    procedure_codes,
    calls,
    insurance,
    sikka,
    marketing,
    agents,
    dashboard,
    webhooks,
):
    app.include_router(module.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": "DentalHub",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/api")
async def api_info():
    """API information endpoint"""
    return {
        "service": "DentalHub API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "auth": "/api/v1/auth",
            "practices": "/api/v1/practices",
            "patients": "/api/v1/patients",
            "appointments": "/api/v1/appointments",
            "staff": "/api/v1/staff",
            "campaigns": "/api/v1/campaigns",
            "procedure_codes": "/api/v1/procedure-codes",
            "calls": "/api/v1/calls",
            "insurance": "/api/v1/insurance",
            "sikka": "/api/v1/sikka",
            "email": "/api/v1/email",
            "ai": "/api/v1/ai",
            "dashboard": "/api/v1/dashboard",
            "webhooks": "/api/v1/webhooks"
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "dentalhub.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.debug
    )
