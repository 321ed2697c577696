"""FastAPI application for the memory bank server."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from memory_bank_server import __version__
from memory_bank_server.api.error_handlers import register_exception_handlers
from memory_bank_server.api.stream import get_context
from memory_bank_server.api.stream import router as stream_router
from memory_bank_server.core.context import ServerContext
from memory_bank_server.models.api import HealthResponse
from memory_bank_server.models.config import ServerSettings
from memory_bank_server.protocol.server import ProtocolServer

logger = logging.getLogger(__name__)


async def reap_idle_connections(context: ServerContext) -> None:
    """Periodically drop connections that went quiet."""
    interval = max(context.settings.idle_timeout / 2, 1.0)
    while True:
        await asyncio.sleep(interval)
        reaped = context.connections.reap_idle()
        if reaped:
            logger.info(f"Reaped {len(reaped)} idle connections")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    context: ServerContext = app.state.context
    server: ProtocolServer = app.state.protocol_server

    # Startup
    logger.info(f"Starting memory bank server for {context.store.directory}")
    await context.store.initialize()
    reaper = asyncio.create_task(reap_idle_connections(context))
    logger.info("Memory bank server started successfully")

    yield

    # Shutdown
    logger.info("Shutting down memory bank server")
    reaper.cancel()
    await asyncio.gather(reaper, return_exceptions=True)
    await server.shutdown()
    logger.info("Memory bank server shutdown complete")


def create_app(context: ServerContext | None = None) -> FastAPI:
    """Build the application around an explicit server context."""
    if context is None:
        context = ServerContext.create(ServerSettings.load_from_file())

    app = FastAPI(
        title="Memory Bank Server",
        description="Versioned project context documents over a streaming protocol",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context
    app.state.protocol_server = ProtocolServer(context)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=context.settings.allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/health", response_model=HealthResponse)
    async def health_check(context: ServerContext = Depends(get_context)):
        """Liveness check. Answers even when the connection cap is reached."""
        return HealthResponse(
            version=__version__,
            platform=context.settings.platform_name,
            timestamp=datetime.now(),
        )

    @app.get("/")
    async def root():
        return {"message": "Memory Bank Server", "version": __version__}

    app.include_router(stream_router)
    return app
