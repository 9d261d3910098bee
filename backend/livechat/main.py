"""LiveChat relay application.

This is the main entry point for the LiveChat backend service: a single
realtime group-chat room where clients announce presence, exchange text
messages and see typing indicators. All state lives in process memory and
is lost on restart.

Modules:
    - chat: room engine, roster, history, typing indicators, WebSocket transport
    - chat.api_router: read-only JSON views of the room
    - config: YAML settings
"""
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from livechat.chat.api_router import router as api_router
from livechat.chat.connection import ConnectionHub, get_hub, set_hub
from livechat.chat.engine import RoomEngine, set_engine
from livechat.chat.router import router as chat_router
from livechat.config import get_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Silence verbose third-party loggers.
for _noisy in (
    "uvicorn.access",
    "websockets",
    "httpx",
    "httpcore",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

config = get_config()

# Seconds to wait for queued frames to reach their sockets on shutdown
SHUTDOWN_FLUSH_TIMEOUT = 5.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    app.state.started_at = time.monotonic()
    set_hub(ConnectionHub())
    set_engine(RoomEngine(
        room_name=config.room.name,
        max_history=config.room.max_history,
        join_history=config.room.join_history,
    ))
    logger.info(
        f"Server running on http://{config.server.host}:{config.server.port} "
        f"(room={config.room.name})"
    )

    yield  # Application runs here

    # Shutdown
    hub = get_hub()
    if hub is not None:
        try:
            await asyncio.wait_for(hub.flush(), timeout=SHUTDOWN_FLUSH_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("Outbound queues not drained within %.1fs", SHUTDOWN_FLUSH_TIMEOUT)
        hub.close()
    set_engine(None)
    set_hub(None)
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="LiveChat API",
    description="Realtime group-chat relay",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.server.allowed_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Register all routers
app.include_router(chat_router)
app.include_router(api_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status, seconds since startup and live connection count.
    """
    started_at = getattr(app.state, "started_at", None)
    uptime = time.monotonic() - started_at if started_at is not None else 0.0
    hub = get_hub()
    return {
        "status": "ok",
        "uptime": round(uptime, 3),
        "connections": hub.size if hub is not None else 0,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


_static_dir = Path(config.server.static_dir)
if _static_dir.is_dir():
    # Must be mounted last: "/" would otherwise shadow the API routes.
    app.mount("/", StaticFiles(directory=_static_dir, html=True), name="static")
else:
    @app.get("/")
    async def index() -> dict:
        """Service info, served when no static front-end is present."""
        return {
            "name": "LiveChat",
            "status": "running",
            "room": config.room.name,
            "endpoints": {
                "websocket": "/ws",
                "health": "/health",
                "users": "/api/users",
                "messages": "/api/messages",
            },
        }
