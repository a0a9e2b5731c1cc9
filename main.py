import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shelfnote.config import get_settings
from shelfnote.infrastructure.database import engine, initialize_database
from shelfnote.interfaces.api.routes import register_routes
from shelfnote.interfaces.api.routes_helpers import register_exception_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on start-up and release pooled connections on shutdown."""

    initialize_database()
    yield
    engine.dispose()


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""

    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    app = FastAPI(title="shelfnote", lifespan=lifespan)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)
    register_routes(app)
    return app


app = create_app()
