"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from spurz_engine.api.middleware import RequestIDMiddleware, MetricsMiddleware
from spurz_engine.api.v1 import cards, categories, deals, home, ledger, profile, recommendations
from spurz_engine.infrastructure.observability.logging import setup_logging
from spurz_engine.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Spurz Financial Engine",
        description="Financial health snapshots, card recommendations and deal matching",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(home.router, prefix="/v1", tags=["home"])
    app.include_router(ledger.router, prefix="/v1", tags=["ledger"])
    app.include_router(cards.router, prefix="/v1", tags=["cards"])
    app.include_router(profile.router, prefix="/v1", tags=["profile"])
    app.include_router(categories.router, prefix="/v1", tags=["categories"])
    app.include_router(recommendations.router, prefix="/v1", tags=["recommendations"])
    app.include_router(deals.router, prefix="/v1", tags=["deals"])

    return app


app = create_app()
