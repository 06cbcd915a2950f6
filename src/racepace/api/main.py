"""FastAPI application factory."""
from fastapi import FastAPI

from racepace.api.routes import plans


def create_app() -> FastAPI:
    """Build and return the FastAPI app."""
    app = FastAPI(
        title="Race Pace API",
        description="Goal-time pacing and lap splits for recorded routes",
        version="0.1.0",
    )

    app.include_router(plans.router, prefix="/plans", tags=["plans"])

    return app


# Module-level app instance for uvicorn
app = create_app()
