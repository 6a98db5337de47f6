"""HRIS Workflows — FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from hris.audit.router import router as audit_router
from hris.common.exceptions import register_exception_handlers
from hris.common.rate_limit import limiter
from hris.config import settings
from hris.database import engine
from hris.documents.router import router as documents_router
from hris.leave.router import router as leave_router
from hris.loans.router import router as loans_router
from hris.notifications.router import router as notifications_router
from hris.performance.router import router as performance_router
from hris.preboarding.router import router as preboarding_router
from hris.training.router import router as training_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("HRIS starting (environment=%s)", settings.ENVIRONMENT)
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="HRIS Workflows",
        description="Leave calendar, KPIs, loans, document requests, preboarding, training",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(leave_router, prefix="/api/v1/leave", tags=["leave"])
    app.include_router(performance_router, prefix="/api/v1/performance", tags=["performance"])
    app.include_router(loans_router, prefix="/api/v1/loans", tags=["loans"])
    app.include_router(documents_router, prefix="/api/v1/document-requests", tags=["documents"])
    app.include_router(preboarding_router, prefix="/api/v1/preboarding", tags=["preboarding"])
    app.include_router(training_router, prefix="/api/v1/training", tags=["training"])
    app.include_router(notifications_router, prefix="/api/v1/notifications", tags=["notifications"])
    app.include_router(audit_router, prefix="/api/v1/audit-logs", tags=["audit"])

    return app


app = create_app()
