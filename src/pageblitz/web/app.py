"""
Pageblitz Web - FastAPI application.

Mounts the onboarding router. Serve with:
    uvicorn pageblitz.web.app:app
"""

from fastapi import FastAPI

from pageblitz import __version__
from onboarding.api import router as onboarding_router

app = FastAPI(title="Pageblitz", version=__version__)
app.include_router(onboarding_router)


@app.get("/health")
async def health_check():
    """Health check endpoint for the load balancer."""
    return {"status": "healthy", "version": __version__, "service": "pageblitz"}


def create_app() -> FastAPI:
    """Create and return the FastAPI application."""
    return app
