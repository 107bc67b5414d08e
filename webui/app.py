import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from routing_stats import __version__
from routing_stats.reports.snapshot import SnapshotHolder
from routing_stats.utils.error_handling import (
    InvalidScope, RoutingStatsError, SnapshotUnavailable, ValidationError
)
from webui.schemas import ErrorBody, HealthStatus
from webui.settings import ROUTING_STATS_WEBUI_DOCS, ROUTING_STATS_WEBUI_LOG_LEVEL

# Setup logging
logger = logging.getLogger("routing-stats.webui")
log_level = getattr(logging, ROUTING_STATS_WEBUI_LOG_LEVEL, logging.INFO)
logger.setLevel(log_level)


def _error_response(error: RoutingStatsError, status_code: int) -> JSONResponse:
    body = ErrorBody(**error.to_dict())
    return JSONResponse(body.model_dump(exclude_none=True), status_code=status_code)


def create_app(holder: Optional[SnapshotHolder] = None) -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="routing-stats",
        description="RPKI origin validation statistics",
        version=__version__,
        docs_url="/docs" if ROUTING_STATS_WEBUI_DOCS else None,
        redoc_url=None
    )
    app.state.holder = holder or SnapshotHolder()

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    @app.exception_handler(InvalidScope)
    async def invalid_scope(request: Request, exc: InvalidScope):
        logger.info(f"Rejected scope token '{exc.token}' on {request.url.path}")
        return _error_response(exc, 400)

    @app.exception_handler(ValidationError)
    async def invalid_parameter(request: Request, exc: ValidationError):
        return _error_response(exc, 400)

    @app.exception_handler(SnapshotUnavailable)
    async def snapshot_unavailable(request: Request, exc: SnapshotUnavailable):
        return _error_response(exc, 503)

    @app.get("/healthz", response_model=HealthStatus)
    async def healthz():
        holder = app.state.holder
        return HealthStatus(
            timestamp=datetime.now(timezone.utc).isoformat(),
            snapshot_loaded=holder.is_loaded,
            snapshot_version=holder.version,
        )

    # Include routers
    from webui.api import reports, snapshot

    app.include_router(reports.router, prefix="/api/reports", tags=["reports"])
    app.include_router(snapshot.router, prefix="/api/snapshot", tags=["snapshot"])

    return app
