"""
Helpdesk Service - Main Application
====================================

Multi-tenant ticket lifecycle and SLA tracking service.

Modules:
- Tickets: create, update, assign and comment on tickets
- SLA Monitoring: deadlines, status evaluation, reconciliation, dashboard

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Database, email, YAML policy, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration
from helpdesk.config import settings

# Infrastructure
from helpdesk.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
)
from helpdesk.shared.infrastructure.cache import InMemoryTTLCache
from helpdesk.shared.infrastructure.email import HTTPEmailClient, LoggingEmailClient

# SLA Module
from helpdesk.sla.application import SLAReconciliationService
from helpdesk.sla.infrastructure import (
    SLAConfigManager,
    SLAScheduler,
    SQLAlchemySLAStatusRepository,
)
from helpdesk.tickets.infrastructure import SQLAlchemyUnitOfWork

# Module Routers
from helpdesk.sla.interfaces import sla_router
from helpdesk.tickets.interfaces import tickets_router

# Middleware
from helpdesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    register_exception_handlers,
)

# Logging
from helpdesk.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)


def build_email_sender():
    """HTTP provider when configured, otherwise log-only delivery."""
    if settings.email_api_url and settings.email_api_key:
        return HTTPEmailClient(
            api_url=settings.email_api_url,
            api_key=settings.email_api_key,
            default_sender=settings.email_from,
            timeout_seconds=settings.email_timeout_seconds,
        )
    logger.info("Email provider not configured - notifications will be logged only")
    return LoggingEmailClient()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Load SLA policy and watch the file
    4. Create cache and email sender
    5. Start SLA reconciliation scheduler

    SHUTDOWN:
    1. Stop SLA scheduler
    2. Stop policy watcher
    3. Close email sender
    4. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Helpdesk Service", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Tables are created for development - use migrations in production
    try:
        await create_tables()
    except Exception as e:
        logger.warning(
            "Database not available - running in degraded mode",
            extra={"error": str(e)}
        )

    logger.info("Loading SLA policy")
    sla_config_manager = SLAConfigManager()
    sla_config_manager.load(settings.sla_config_path)
    sla_config_manager.start_watching()

    email_sender = build_email_sender()

    app.state.settings = settings
    app.state.sla_policy_provider = sla_config_manager
    app.state.cache = InMemoryTTLCache()
    app.state.email_sender = email_sender

    sla_scheduler = None
    if settings.sla_reconcile_interval_seconds > 0:

        async def sla_reconciliation_job():
            """Background SLA reconciliation job."""
            async with get_session_context() as session:
                service = SLAReconciliationService(
                    SQLAlchemySLAStatusRepository(session),
                    SQLAlchemyUnitOfWork(session),
                    sla_config_manager,
                )
                await service.reconcile()

        sla_scheduler = SLAScheduler(interval_seconds=settings.sla_reconcile_interval_seconds)
        await sla_scheduler.start(sla_reconciliation_job)
    app.state.sla_scheduler = sla_scheduler

    logger.info("Helpdesk Service started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Helpdesk Service")

    if sla_scheduler:
        await sla_scheduler.stop()

    sla_config_manager.stop_watching()
    await email_sender.close()
    await close_database()

    logger.info("Helpdesk Service shutdown complete")


app = FastAPI(
    title="Helpdesk Ticketing API",
    description="""
    ## Multi-tenant Helpdesk Ticket Lifecycle & SLA Service

    ### Tickets
    - `POST /tickets` - Create a ticket (starts SLA clocks)
    - `GET /tickets` - List tickets
    - `GET /tickets/{id}` - Ticket detail with live SLA status
    - `PATCH /tickets/{id}` - Update fields and status
    - `POST /tickets/{id}/assign` - Assign or unassign
    - `POST /tickets/{id}/comments` - Reply or add an internal note
    - `GET /tickets/{id}/comments` - Comment thread

    ### SLA Monitoring
    - `GET /sla/dashboard` - SLA health of the organization
    - `GET /sla/targets` - Active SLA policy

    **SLA Time Limits (Minutes, base x multiplier):**

    | Priority | First Response | Resolution |
    |----------|----------------|------------|
    | Urgent   | 30 x 0.5 = 15  | 240 x 0.5 = 120 |
    | High     | 60 x 0.75 = 45 | 480 x 0.75 = 360 |
    | Medium   | 240 x 1.0 = 240 | 1440 x 1.0 = 1440 |
    | Low      | 480 x 1.5 = 720 | 2880 x 1.5 = 4320 |

    Requests carry `X-Organization-ID` and `X-User-ID` headers set by the
    authentication gateway.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Added last so it runs first and the logger sees the correlation ID
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
register_exception_handlers(app)

# === Include Module Routers ===
app.include_router(tickets_router)
app.include_router(sla_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "sla_policy": "loaded",
                        "sla_scheduler": "running",
                        "email": "HTTPEmailClient"
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """Health check endpoint for load balancers and orchestrators."""
    state = request.app.state
    scheduler = getattr(state, "sla_scheduler", None)
    sender = getattr(state, "email_sender", None)

    checks = {
        "sla_policy": "loaded" if getattr(state, "sla_policy_provider", None) else "not_loaded",
        "sla_scheduler": "running" if scheduler and scheduler.is_running else "stopped",
        "email": type(sender).__name__ if sender else "not_configured",
    }

    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Helpdesk Service",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "tickets": {
                "prefix": "/tickets",
                "endpoints": [
                    "POST /tickets - Create ticket",
                    "GET /tickets - List tickets",
                    "GET /tickets/{id} - Get ticket detail",
                    "PATCH /tickets/{id} - Update ticket",
                    "POST /tickets/{id}/assign - Assign ticket",
                    "POST /tickets/{id}/comments - Add comment",
                    "GET /tickets/{id}/comments - List comments"
                ]
            },
            "sla": {
                "prefix": "/sla",
                "endpoints": [
                    "GET /sla/dashboard - SLA summary",
                    "GET /sla/targets - Active SLA policy"
                ]
            }
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "helpdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower()
    )
