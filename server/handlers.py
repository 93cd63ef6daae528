"""WebSocket message handlers for the UNO card game.

Each handler corresponds to a single message type from the client.
Handlers are dispatched via the HANDLERS dict in main.py.

Inbound payloads are validated with the pydantic models below. Room-level
failures arrive as RoomError exceptions and engine rejections as failed
ActionResults; both are turned into {"type": "error"} messages for the
sender only.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Type, TypeVar

from fastapi import WebSocket
from pydantic import BaseModel, Field, ValidationError

from constants import DEFAULT_TARGET_SCORE
from errors import RejectReason, RoomError
from game import (
    ActionResult,
    catch_player,
    choose_color,
    declare_last_card,
    draw,
    keep_drawn_card,
    play_card,
    start_next_round,
)
from logging_config import room_code_var
from room import Room

logger = logging.getLogger(__name__)


@dataclass
class ConnectionContext:
    """State tracked per WebSocket connection."""

    websocket: WebSocket
    connection_id: str
    player_id: str
    current_room: Optional[Room] = None


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

class CreateRoomMessage(BaseModel):
    player_name: str = "Player"
    target_score: int = Field(DEFAULT_TARGET_SCORE, ge=1)


class JoinRoomMessage(BaseModel):
    room_code: str = Field(min_length=1)
    player_name: str = "Player"


class PlayCardMessage(BaseModel):
    card_id: str
    chosen_color: Optional[str] = None


class ChooseColorMessage(BaseModel):
    color: str


class CatchMessage(BaseModel):
    target_id: str


Payload = TypeVar("Payload", bound=BaseModel)


async def send_error(ctx: ConnectionContext, message: str, reason: Optional[str] = None) -> None:
    payload = {"type": "error", "message": message}
    if reason:
        payload["reason"] = reason
    await ctx.websocket.send_json(payload)


async def _parse(model: Type[Payload], data: dict, ctx: ConnectionContext) -> Optional[Payload]:
    """Validate a payload, replying with an error if it does not fit."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.debug(f"Invalid {data.get('type')} payload from {ctx.player_id}: {e}")
        await send_error(ctx, f"Invalid {data.get('type', 'message')} message")
        return None


async def _require_room(ctx: ConnectionContext) -> Optional[Room]:
    if not ctx.current_room:
        await send_error(ctx, "Not in a room")
        return None
    return ctx.current_room


async def _send_lobby_update(room: Room) -> None:
    await room.broadcast({"type": "lobby_update", "lobby": room.lobby_info()})


# ---------------------------------------------------------------------------
# Lobby / Room handlers
# ---------------------------------------------------------------------------

async def handle_create_room(data: dict, ctx: ConnectionContext, *, room_manager, **kw) -> None:
    message = await _parse(CreateRoomMessage, data, ctx)
    if message is None:
        return

    if ctx.current_room:
        await send_error(ctx, "Already in a room")
        return

    room = room_manager.create_room(target_score=message.target_score)
    async with room.game_lock:
        room.add_player(ctx.player_id, message.player_name, ctx.websocket)
    ctx.current_room = room
    room_code_var.set(room.code)

    await ctx.websocket.send_json({
        "type": "room_created",
        "room_code": room.code,
        "player_id": ctx.player_id,
        "lobby": room.lobby_info(),
    })
    await _send_lobby_update(room)


async def handle_join_room(data: dict, ctx: ConnectionContext, *, room_manager, broadcast_game_state, **kw) -> None:
    message = await _parse(JoinRoomMessage, data, ctx)
    if message is None:
        return

    if ctx.current_room:
        await send_error(ctx, "Already in a room")
        return

    try:
        room = room_manager.require_room(message.room_code)
        async with room.game_lock:
            reconnected = room_manager.join_room(
                room, ctx.player_id, message.player_name, ctx.websocket,
            )
    except RoomError as e:
        await send_error(ctx, e.detail)
        return

    ctx.current_room = room
    room_code_var.set(room.code)

    await ctx.websocket.send_json({
        "type": "room_joined",
        "room_code": room.code,
        "player_id": ctx.player_id,
        "reconnected": reconnected,
        "lobby": room.lobby_info(),
    })
    await _send_lobby_update(room)

    if reconnected:
        await broadcast_game_state(room)


async def handle_start_game(data: dict, ctx: ConnectionContext, *, broadcast_game_state, **kw) -> None:
    room = await _require_room(ctx)
    if room is None:
        return

    async with room.game_lock:
        try:
            room.start_game(ctx.player_id)
        except RoomError as e:
            await send_error(ctx, e.detail)
            return

        await _send_lobby_update(room)
        await broadcast_game_state(room)


async def handle_return_to_lobby(data: dict, ctx: ConnectionContext, **kw) -> None:
    room = await _require_room(ctx)
    if room is None:
        return

    async with room.game_lock:
        try:
            room.return_to_lobby(ctx.player_id)
        except RoomError as e:
            await send_error(ctx, e.detail)
            return

        await _send_lobby_update(room)


async def handle_leave_room(data: dict, ctx: ConnectionContext, *, handle_player_leave, **kw) -> None:
    if ctx.current_room:
        await handle_player_leave(ctx.current_room, ctx.player_id)
        ctx.current_room = None
        room_code_var.set(None)


async def handle_get_state(data: dict, ctx: ConnectionContext, *, broadcast_game_state, **kw) -> None:
    room = await _require_room(ctx)
    if room is None:
        return

    await ctx.websocket.send_json({"type": "lobby_update", "lobby": room.lobby_info()})
    if room.state is not None:
        await broadcast_game_state(room, only=ctx.player_id)


# ---------------------------------------------------------------------------
# Turn action handlers
# ---------------------------------------------------------------------------

async def _run_action(
    ctx: ConnectionContext,
    action: Callable[..., ActionResult],
    *args,
    broadcast_game_state,
    drawn_to: Optional[str] = None,
    timed: bool = False,
) -> Optional[ActionResult]:
    """
    Apply an engine action for this connection's player under the room lock.

    Accepted actions are announced to the room, followed by fresh per-player
    state. Cards drawn are sent privately to drawn_to (default: the actor).
    Timed actions get the room clock.
    """
    room = await _require_room(ctx)
    if room is None:
        return None

    async with room.game_lock:
        if room.state is None:
            await send_error(ctx, "No game in progress", RejectReason.WRONG_PHASE.value)
            return None

        kwargs = {"clock": room.clock} if timed else {}
        result = room.apply(action, ctx.player_id, *args, **kwargs)

        if not result.ok:
            await send_error(ctx, result.message, result.reason.value)
            if result.reason == RejectReason.CATCH_WINDOW_EXPIRED:
                # The stale window was closed
                await broadcast_game_state(room)
            return result

        await room.broadcast({"type": "action", **result.to_dict()})

        if result.drawn_cards:
            await room.send_to(drawn_to or ctx.player_id, {
                "type": "drawn_cards",
                "cards": [card.to_dict() for card in result.drawn_cards],
                "can_play_drawn": result.can_play_drawn,
            })

        await broadcast_game_state(room)
        return result


async def handle_play_card(data: dict, ctx: ConnectionContext, *, broadcast_game_state, **kw) -> None:
    message = await _parse(PlayCardMessage, data, ctx)
    if message is None:
        return

    await _run_action(
        ctx, play_card, message.card_id, message.chosen_color,
        broadcast_game_state=broadcast_game_state,
        timed=True,
    )


async def handle_choose_color(data: dict, ctx: ConnectionContext, *, broadcast_game_state, **kw) -> None:
    message = await _parse(ChooseColorMessage, data, ctx)
    if message is None:
        return

    await _run_action(ctx, choose_color, message.color, broadcast_game_state=broadcast_game_state)


async def handle_draw(data: dict, ctx: ConnectionContext, *, broadcast_game_state, **kw) -> None:
    await _run_action(ctx, draw, broadcast_game_state=broadcast_game_state)


async def handle_keep_drawn_card(data: dict, ctx: ConnectionContext, *, broadcast_game_state, **kw) -> None:
    await _run_action(ctx, keep_drawn_card, broadcast_game_state=broadcast_game_state)


async def handle_call_last_card(data: dict, ctx: ConnectionContext, *, broadcast_game_state, **kw) -> None:
    await _run_action(ctx, declare_last_card, broadcast_game_state=broadcast_game_state)


async def handle_catch(data: dict, ctx: ConnectionContext, *, broadcast_game_state, **kw) -> None:
    message = await _parse(CatchMessage, data, ctx)
    if message is None:
        return

    await _run_action(
        ctx, catch_player, message.target_id,
        broadcast_game_state=broadcast_game_state,
        drawn_to=message.target_id,
        timed=True,
    )


async def handle_next_round(data: dict, ctx: ConnectionContext, *, broadcast_game_state, **kw) -> None:
    room = await _require_room(ctx)
    if room is None:
        return

    if room.host_id != ctx.player_id:
        await send_error(ctx, "Only the host can start the next round")
        return

    async with room.game_lock:
        if room.state is None:
            await send_error(ctx, "No game in progress", RejectReason.WRONG_PHASE.value)
            return

        result = room.apply(start_next_round)
        if not result.ok:
            await send_error(ctx, result.message, result.reason.value)
            return

        logger.debug(f"Next round started in room {room.code} by {ctx.player_id}")
        await room.broadcast({"type": "action", **result.to_dict()})
        await broadcast_game_state(room)


# ---------------------------------------------------------------------------
# Handler dispatch table
# ---------------------------------------------------------------------------

HANDLERS = {
    "create_room": handle_create_room,
    "join_room": handle_join_room,
    "start_game": handle_start_game,
    "play_card": handle_play_card,
    "choose_color": handle_choose_color,
    "draw": handle_draw,
    "keep_drawn_card": handle_keep_drawn_card,
    "call_last_card": handle_call_last_card,
    "catch": handle_catch,
    "next_round": handle_next_round,
    "return_to_lobby": handle_return_to_lobby,
    "leave_room": handle_leave_room,
    "get_state": handle_get_state,
}
