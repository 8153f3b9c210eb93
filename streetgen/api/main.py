"""StreetGen API - FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import get_config
from ..services.geocoding_service import GeocodingService
from ..services.map_session import MapSession
from .routers import session as session_routes
from .routers import settings as settings_routes
from .websocket import ConnectionManager
from .websocket import router as websocket_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    config = get_config()
    if app.state.session is None:
        config.ensure_directories()
        app.state.session = MapSession.from_config(config)
        await app.state.session.reload_active_fantasy_map()
    if app.state.geocoder is None:
        app.state.geocoder = GeocodingService(config.nominatim_url, config.user_agent)

    yield

    # Shutdown
    await app.state.session.aclose()
    await app.state.geocoder.aclose()


def create_app(
    session: Optional[MapSession] = None,
    geocoder: Optional[GeocodingService] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        session: Session to serve (built from the app config on startup if omitted)
        geocoder: Place search client (built from the app config if omitted)
    """
    app = FastAPI(
        title="StreetGen API",
        description="API for the street view generator",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.session = session
    app.state.geocoder = geocoder
    app.state.connections = ConnectionManager()

    # CORS middleware - allow all origins in development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(session_routes.router, prefix="/api/session", tags=["session"])
    app.include_router(settings_routes.router, prefix="/api", tags=["settings"])
    app.include_router(websocket_router, prefix="/api", tags=["websocket"])

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    @app.get("/api/config")
    async def get_api_config():
        """Get API configuration (non-sensitive)."""
        config = get_config()
        return {
            "data_dir": str(config.data_dir),
            "pictures_dir": str(config.pictures_dir),
            "gemini_model": config.gemini_model,
            "max_source_size": config.max_source_size,
        }

    return app
