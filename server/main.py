"""FastAPI WebSocket server for the UNO card game."""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from config import config
from game import get_state_for_player
from handlers import HANDLERS, ConnectionContext, send_error
from logging_config import connection_id_var, player_id_var, room_code_var, setup_logging
from models.game_state import GamePhase
from room import Room, RoomManager
from routers.health import router as health_router
from routers.health import set_health_dependencies
from scoring import final_rankings

setup_logging(
    level=config.LOG_LEVEL,
    environment=config.ENVIRONMENT,
)
logger = logging.getLogger(__name__)


room_manager = RoomManager()
_cleanup_task: Optional[asyncio.Task] = None


async def _periodic_room_cleanup():
    """Drop stale rooms every ROOM_CLEANUP_INTERVAL_SECONDS."""
    while True:
        try:
            await asyncio.sleep(config.ROOM_CLEANUP_INTERVAL_SECONDS)
            room_manager.cleanup(config.ROOM_MAX_AGE_MINUTES)
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.error(f"Room cleanup failed: {e}")


async def _close_all_websockets():
    """Close all active WebSocket connections gracefully."""
    for room in list(room_manager.rooms.values()):
        for player in room.players.values():
            if player.websocket:
                try:
                    await player.websocket.close(code=1001, reason="Server shutting down")
                except Exception as e:
                    logger.debug(f"Closing socket for {player.id} failed: {e}")
    logger.info("All WebSocket connections closed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start and stop the room cleanup task."""
    global _cleanup_task

    set_health_dependencies(room_manager=room_manager)
    _cleanup_task = asyncio.create_task(_periodic_room_cleanup())
    logger.info(f"UNO server started (environment={config.ENVIRONMENT})")

    yield

    logger.info("Shutdown initiated...")
    _cleanup_task.cancel()
    try:
        await _cleanup_task
    except asyncio.CancelledError:
        pass
    await _close_all_websockets()
    logger.info("Shutdown complete")


app = FastAPI(
    title="UNO Card Game",
    debug=config.DEBUG,
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(health_router)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()

    connection_id = str(uuid.uuid4())
    connection_id_var.set(connection_id)
    player_id_var.set(connection_id)
    room_code_var.set(None)
    logger.debug(f"WebSocket connected as {connection_id}")

    ctx = ConnectionContext(
        websocket=websocket,
        connection_id=connection_id,
        player_id=connection_id,
    )

    # Shared dependencies passed to every handler
    handler_deps = dict(
        room_manager=room_manager,
        broadcast_game_state=broadcast_game_state,
        handle_player_leave=handle_player_leave,
    )

    try:
        while True:
            data = await websocket.receive_json()
            if not isinstance(data, dict):
                await send_error(ctx, "Messages must be JSON objects")
                continue
            handler = HANDLERS.get(data.get("type"))
            if handler:
                await handler(data, ctx, **handler_deps)
            else:
                await send_error(ctx, f"Unknown message type: {data.get('type')}")
    except WebSocketDisconnect:
        logger.debug(f"WebSocket {connection_id} disconnected")
        if ctx.current_room:
            await handle_player_leave(ctx.current_room, ctx.player_id)


async def broadcast_game_state(room: Room, only: Optional[str] = None):
    """
    Send each connected player their own view of the game.

    Args:
        room: Room whose state to send.
        only: Send to this player only.
    """
    state = room.state
    if state is None:
        return

    rankings = final_rankings(state.players) if state.phase == GamePhase.GAME_OVER else None

    for pid, player in list(room.players.items()):
        if not player.websocket or (only and pid != only):
            continue

        message = {
            "type": "game_state",
            "game_state": get_state_for_player(state, pid),
        }
        if rankings is not None:
            message["rankings"] = rankings
        await room.send_to(pid, message)


async def handle_player_leave(room: Room, player_id: str):
    """Handle a player leaving a room or dropping their connection."""
    async with room.game_lock:
        room_player = room_manager.leave_room(room, player_id)
        if room_player is None or room.code not in room_manager.rooms:
            return

        await room.broadcast({"type": "lobby_update", "lobby": room.lobby_info()})
        if room.state is not None:
            await broadcast_game_state(room)


def run():
    """Run the server using uvicorn."""
    import uvicorn

    logger.info(f"Starting UNO server on {config.HOST}:{config.PORT}")
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
