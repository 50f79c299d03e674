"""FastAPI WebSocket server for the Shithead card game."""

import json
import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from config import config
from handlers import ConnectionContext, dispatch, handle_disconnect
from logging_config import player_id_var, setup_logging
from room import MAX_PLAYERS, RoomManager
from routers.health import router as health_router, set_health_dependencies

# Configure logging based on environment
setup_logging(
    level=config.LOG_LEVEL,
    environment=config.ENVIRONMENT,
)
logger = logging.getLogger(__name__)


room_manager = RoomManager(
    code_length=config.ROOM_CODE_LENGTH,
    min_players=config.MIN_PLAYERS,
    max_players=min(config.MAX_PLAYERS_PER_ROOM, MAX_PLAYERS),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    set_health_dependencies(room_manager=room_manager)
    logger.info(f"Shithead server started (environment={config.ENVIRONMENT})")

    yield

    logger.info("Shutdown initiated...")
    await _close_all_websockets()
    room_manager.rooms.clear()
    logger.info("Shutdown complete")


async def _close_all_websockets():
    """Close all active WebSocket connections gracefully."""
    for room in list(room_manager.rooms.values()):
        for member in room.members:
            if member.websocket:
                try:
                    await member.websocket.close(code=1001, reason="Server shutting down")
                except Exception as e:
                    logger.debug(f"Closing {member.id} failed: {e}")
    logger.info("All WebSocket connections closed")


app = FastAPI(
    title="Shithead Card Game",
    debug=config.DEBUG,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.client_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(health_router)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    origin = websocket.headers.get("origin")
    if origin and config.CLIENT_ORIGINS and origin not in config.CLIENT_ORIGINS:
        logger.warning(f"WebSocket blocked origin: {origin}")
        await websocket.close(code=1008, reason="Origin not allowed")
        return

    await websocket.accept()

    connection_id = str(uuid.uuid4())
    player_id_var.set(connection_id)
    logger.debug(f"WebSocket connected as {connection_id}")

    ctx = ConnectionContext(
        websocket=websocket,
        connection_id=connection_id,
        player_id=connection_id,
    )

    # Shared dependencies passed to every handler
    handler_deps = dict(room_manager=room_manager)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except ValueError:
                await websocket.send_json({
                    "type": "ack",
                    "request_id": None,
                    "ok": False,
                    "error": "Invalid JSON",
                    "code": "VALIDATION_ERROR",
                })
                continue
            await dispatch(data, ctx, **handler_deps)
    except WebSocketDisconnect:
        logger.debug(f"WebSocket {connection_id} disconnected")
    finally:
        await handle_disconnect(ctx, **handler_deps)


def run():
    """Run the server using uvicorn."""
    import uvicorn

    logger.info(f"Starting Shithead server on {config.HOST}:{config.PORT}")
    logger.info(f"Debug mode: {config.DEBUG}")

    uvicorn.run(
        "main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
