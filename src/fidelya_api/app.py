from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from fidelya_api.core.settings import settings
from fidelya_api.db.session import record_store
from .api.routes import api_router
from .core.logging import configure_logging
from .observability.tracing import configure_tracing
from .workers import MembershipStandingWorker


@asynccontextmanager
async def lifespan(app: FastAPI):
    standing_worker = MembershipStandingWorker(
        record_store,
        interval_seconds=settings.membership_standing_interval_seconds,
        association_ids=settings.membership_standing_association_ids,
    )
    app.state.membership_standing_worker = standing_worker

    standing_enabled = settings.membership_standing_worker_enabled
    if standing_enabled:
        standing_worker.start()
        logger.info(
            "Membership standing worker enabled",
            interval_seconds=standing_worker.interval_seconds,
            associations=standing_worker.association_ids or "all",
        )
    else:
        logger.info(
            "Membership standing worker disabled",
            reason="membership_standing_worker_enabled is false",
        )

    try:
        yield
    finally:
        if standing_enabled and standing_worker.is_running:
            await standing_worker.stop()


def create_app() -> FastAPI:
    """Application factory for the Fidelya FastAPI service."""
    configure_logging(
        service_name=settings.service_name,
        environment=settings.environment,
        version=settings.version,
        level=settings.log_level,
    )

    app = FastAPI(
        title="Fidelya API",
        version=settings.version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    if settings.tracing_enabled:
        configure_tracing(
            app,
            service_name=settings.service_name,
            service_version=settings.version,
            environment=settings.environment,
            exporter_endpoint=settings.otel_exporter_otlp_endpoint,
            exporter_headers=settings.otel_exporter_otlp_headers,
        )

    app.include_router(api_router)

    @app.get("/healthz", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": settings.environment,
            "version": settings.version,
        }

    return app
