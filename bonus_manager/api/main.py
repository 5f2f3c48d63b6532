"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from bonus_manager.api.middleware import MetricsMiddleware, RequestIDMiddleware
from bonus_manager.api.v1 import snapshot
from bonus_manager.config import settings
from bonus_manager.infrastructure.observability.logging import setup_logging

# Setup structured logging
setup_logging(settings.log_level, service_name=settings.service_name)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Bonus Manager",
        description="Read-only bonus snapshot and spending plan service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name, "credentials": settings.has_credentials}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(snapshot.router, prefix="/v1", tags=["snapshot"])

    return app


app = create_app()
