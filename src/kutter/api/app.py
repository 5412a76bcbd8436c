"""FastAPI application factory and server startup."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from kutter.api.maintenance import MaintenanceMiddleware
from kutter.api.pubsub import MessageBus
from kutter.config import Config
from kutter.db import close_db
from kutter.hub import ChatHub
from kutter.store import MessageStore

logger = logging.getLogger(__name__)


def create_api(config: Config) -> FastAPI:
    """Create the chat app. The hub and database live for the app's lifespan."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = MessageStore()
        await store.create_schema(config.database_url)
        app.state.hub = ChatHub(store, MessageBus(capacity=config.bus_capacity))
        if app.state.maintenance:
            logger.warning("Starting in maintenance mode")
        try:
            yield
        finally:
            app.state.hub.close()
            await close_db()

    app = FastAPI(title="Kutter", lifespan=lifespan)

    # Store shared references on app.state
    app.state.config = config
    app.state.maintenance = config.maintenance_mode

    # Added first so CORS (outermost) also decorates 503 responses
    app.add_middleware(MaintenanceMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Accept", "Content-Type"],
        max_age=3600,
    )

    from kutter.api.routes import auth, messages, ws

    app.include_router(auth.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    # Serve the bundled frontend (if it exists) after the API routes
    static_dir = Path(config.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
        logger.info("Serving frontend from %s", static_dir)

    return app


def run_server(app: FastAPI, host: str = "127.0.0.1", port: int = 8080) -> None:
    """Run uvicorn in the foreground (blocking)."""
    import uvicorn

    uvicorn.run(app, host=host, port=port, log_level="info", access_log=False)
