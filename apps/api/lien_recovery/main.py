"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text

from lien_recovery.core.config import settings
from lien_recovery.core.rate_limit import create_limiter
from lien_recovery.core.structured_logging import build_log_context
from lien_recovery.db.session import engine
from lien_recovery.routers import record_duplicates, record_events, records, records_import
from lien_recovery.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    RecordServiceError,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,  # 10% of requests for performance monitoring
        send_default_pii=False,  # Don't send PHI to Sentry
    )
    logging.info("Sentry initialized for error tracking")


ERROR_STATUS_CODES: dict[type[RecordServiceError], int] = {
    InvalidArgumentError: 400,
    ForbiddenError: 403,
    NotFoundError: 404,
    ConflictError: 409,
}


async def record_service_error_handler(request: Request, exc: RecordServiceError) -> JSONResponse:
    """Map the service error taxonomy onto HTTP status codes."""
    status_code = next(
        (code for error_cls, code in ERROR_STATUS_CODES.items() if isinstance(exc, error_cls)),
        400,
    )
    if status_code >= 403:
        context = build_log_context(route=request.url.path, method=request.method)
        logger.info("Request rejected", extra={**context, "status": status_code})
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Lien Recovery API",
        description="Case management for lien collections: records, timelines, queues and follow-ups",
        version=settings.VERSION,
        docs_url="/docs" if settings.ENV == "dev" else None,
        redoc_url="/redoc" if settings.ENV == "dev" else None,
    )

    # Rate limiter, one per app instance
    app.state.limiter = create_limiter(settings)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    app.add_exception_handler(RecordServiceError, record_service_error_handler)

    # CORS middleware - must be added before routers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,  # Required for cookies
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    # Fixed paths first so they are not captured by /records/{record_id}
    app.include_router(record_events.router, prefix="/records", tags=["records"])
    app.include_router(record_duplicates.router, prefix="/records", tags=["records"])
    app.include_router(records_import.router, prefix="/records", tags=["records"])
    app.include_router(records.router, prefix="/records", tags=["records"])

    @app.get("/health")
    def health():
        """
        Health check endpoint.

        Verifies database connectivity and returns environment info.
        """
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}

    return app


app = create_app()
