"""
FastAPI application entry point with health check route.
"""
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.routes import (
    admin_applications,
    auth,
    bookings,
    files,
    provider,
    provider_applications,
    services,
)
from src.api.middleware import register_exception_handlers
from src.lib.logging import get_logger, set_actor_id, set_correlation_id
from src.lib.metrics import get_metrics_collector
from src.lib.settings import settings

logger = get_logger(__name__)


# Correlation ID middleware
class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add correlation_id to all requests for distributed tracing.
    Accepts X-Correlation-ID from incoming requests or generates a new one.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))

        # Request state for handlers, context var for log records
        request.state.correlation_id = correlation_id
        set_correlation_id(correlation_id)
        set_actor_id(None)

        logger.info(
            "Incoming request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None,
            }
        )

        response = await call_next(request)

        response.headers["X-Correlation-ID"] = correlation_id

        logger.info(
            "Response sent",
            extra={
                "status_code": response.status_code,
                "path": request.url.path,
            }
        )

        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup/shutdown events.
    """
    logger.info("Prime Care backend starting up...")
    yield
    logger.info("Prime Care backend shutting down...")


app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description="Home-service marketplace: accounts, provider onboarding, booking and ratings",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-ID"],
)


app.add_middleware(CorrelationIdMiddleware)


register_exception_handlers(app)


# Include routers
app.include_router(auth.router)
app.include_router(services.router)
app.include_router(bookings.router)
app.include_router(provider.router)
app.include_router(provider_applications.router)
app.include_router(admin_applications.router)
app.include_router(files.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/metrics", include_in_schema=False)
def metrics_endpoint():
    """
    Prometheus-compatible metrics endpoint.

    Metrics exposed:
    - bookings_created_total: Booking requests by service
    - booking_transitions_total: Lifecycle moves by target status and outcome
    - ratings_submitted_total: Ratings by star value
    - transaction_conflicts_total: Optimistic-lock retries by operation
    - auth_events_total: Sign-ups, sign-ins and verifications

    Returns:
        Prometheus text format metrics
    """
    metrics = get_metrics_collector()
    return PlainTextResponse(
        content=metrics.export_prometheus(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )
