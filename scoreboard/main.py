"""Main FastAPI application with the scoreboard WebSocket endpoint."""

import asyncio
import logging
import socket
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse

from scoreboard.core.audit import AuditTrail
from scoreboard.core.broadcaster import Broadcaster
from scoreboard.core.config import Settings, get_settings
from scoreboard.core.exceptions import PersistenceError
from scoreboard.core.heartbeat import HeartbeatMonitor
from scoreboard.core.persistence import Autosaver, JsonFilePersistence
from scoreboard.core.protocol import ProtocolHandler
from scoreboard.core.registry import ConnectionRegistry
from scoreboard.core.state_store import StateStore
from scoreboard.core.websocket_manager import WebSocketManager
from scoreboard.models.game_state import GameState, utc_timestamp

logger = logging.getLogger(__name__)

DEFAULT_HTML = """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>Live Scoreboard Server</title>
    <style>
        body { font-family: Arial, sans-serif; margin: 40px; background: #f5f5f5; text-align: center; }
        .container { max-width: 800px; margin: 0 auto; background: white; padding: 30px; border-radius: 10px; }
        .status { padding: 20px; background: #e8f5e8; border-radius: 5px; margin: 20px 0; }
    </style>
</head>
<body>
    <div class="container">
        <h1>Live Scoreboard Server</h1>
        <div class="status">
            <p>The server is running.</p>
            <p>Place index.html in the static directory to serve the scoreboard UI.</p>
            <p>Status API: <a href="/api/status">/api/status</a></p>
        </div>
    </div>
</body>
</html>"""


def get_local_ip() -> str:
    """Best guess at the LAN address clients should use."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            # No packets are sent for a UDP connect
            sock.connect(("10.255.255.255", 1))
            return sock.getsockname()[0]
    except OSError:
        return "localhost"


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    exc = context.get("exception")
    logger.error(f"Unhandled exception: {context.get('message')}", exc_info=exc)


def load_initial_state(persistence: JsonFilePersistence) -> GameState:
    try:
        return persistence.load()
    except PersistenceError as e:
        logger.error(f"{str(e)}; starting from defaults")
        return persistence.defaults


def create_app(settings: Settings = None) -> FastAPI:
    """Build the application and wire the scoreboard services together."""
    settings = settings or get_settings()

    defaults = GameState(
        team1_name=settings.team1_default_name,
        team2_name=settings.team2_default_name,
        last_updated=utc_timestamp()
    )
    persistence = JsonFilePersistence(settings.state_file, defaults)
    store = StateStore(load_initial_state(persistence))
    registry = ConnectionRegistry()
    broadcaster = Broadcaster(registry)
    protocol = ProtocolHandler(store, broadcaster, AuditTrail())
    manager = WebSocketManager(store, registry, broadcaster, protocol,
                               send_timeout=settings.send_timeout or None)
    heartbeat = HeartbeatMonitor(registry, broadcaster, settings.heartbeat_interval)
    autosaver = Autosaver(persistence, store.snapshot, settings.autosave_interval)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        asyncio.get_running_loop().set_exception_handler(_log_loop_exception)
        app.state.server_start_time = utc_timestamp()
        heartbeat.start()
        autosaver.start()
        state = store.snapshot()
        logger.info(f"Scoreboard server started on port {settings.port} "
                    f"(LAN: http://{get_local_ip()}:{settings.port})")
        logger.info(f"Current score: {state.team1_name} {state.team1_score}, "
                    f"{state.team2_name} {state.team2_score}")
        try:
            yield
        finally:
            logger.info("Shutting down scoreboard server")
            await heartbeat.stop()
            await autosaver.stop()
            autosaver.save_now()
            await manager.close_all()
            logger.info("Scoreboard server stopped")

    app = FastAPI(title="Live Scoreboard", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.registry = registry
    app.state.manager = manager
    app.state.heartbeat = heartbeat
    app.state.autosaver = autosaver
    app.state.server_start_time = utc_timestamp()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.get("/", response_class=HTMLResponse)
    @app.get("/index.html", response_class=HTMLResponse)
    async def index():
        """Serve the scoreboard UI, or a placeholder page if none is installed."""
        page = Path(settings.static_dir) / "index.html"
        if page.is_file():
            return FileResponse(page, media_type="text/html; charset=utf-8")
        return HTMLResponse(DEFAULT_HTML)

    @app.get("/api/status")
    async def status():
        return {
            "status": "running",
            "gameState": store.snapshot().to_dict(),
            "connectedClients": registry.size(),
            "serverStartTime": app.state.server_start_time
        }

    @app.websocket("/")
    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await manager.serve(websocket)

    return app


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        ws_ping_interval=settings.heartbeat_interval,
        ws_ping_timeout=settings.heartbeat_interval,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
