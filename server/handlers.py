"""WebSocket message handlers for the Shithead card game.

Each handler corresponds to a single request type from the client and
answers it with exactly one ack. Handlers are dispatched via the HANDLERS
dict by `dispatch`, which also turns GameErrors into failed acks.

Every mutation happens under the room's lock, and the ack plus the state
broadcasts are sent before the lock is released, so members see mutations
in the order they were applied.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable

from fastapi import WebSocket

from errors import GameError, NotFound, ValidationError
from logging_config import get_logger, player_id_var, room_code_var
from models import (
    CreateRoomRequest,
    JoinRoomRequest,
    PickupRequest,
    PlayCardsRequest,
    SetFaceUpRequest,
    StartGameRequest,
    parse_request,
)
from room import Room, RoomManager
from views import private_view, public_game_view, public_room_view

logger = logging.getLogger(__name__)
event_log = get_logger(__name__)

Reply = Callable[[dict], Awaitable[None]]


@dataclass
class ConnectionContext:
    """State tracked per WebSocket connection."""

    websocket: WebSocket
    connection_id: str
    player_id: str


# ---------------------------------------------------------------------------
# Broadcasting
# ---------------------------------------------------------------------------

async def broadcast_room_state(room: Room) -> None:
    """Send room:update, and game:state / game:private once dealt."""
    room_view = public_room_view(room)
    await room.broadcast({"type": "room:update", "room": room_view})

    if room.game is None:
        return

    game_view = public_game_view(room)
    await room.broadcast({"type": "game:state", "room": room_view, "game": game_view})

    for player_id in list(room.game.players):
        view = private_view(room, player_id, game_public=game_view)
        if view is not None:
            await room.send_to(player_id, {"type": "game:private", **view})


@asynccontextmanager
async def locked_room(room_manager: RoomManager, code: str) -> AsyncIterator[Room]:
    """
    Hold a room's lock for the duration of a request.

    Raises:
        NotFound: If the code is unknown, or the room closed while waiting.
    """
    room = room_manager.require_room(code)
    async with room.lock:
        if room_manager.get_room(room.code) is not room:
            raise NotFound("Room not found")
        room_code_var.set(room.code)
        yield room


# ---------------------------------------------------------------------------
# Lobby / Room handlers
# ---------------------------------------------------------------------------

async def handle_create_room(request: CreateRoomRequest, ctx: ConnectionContext, *, room_manager: RoomManager, reply: Reply, **kw) -> None:
    room = room_manager.create_room()
    async with room.lock:
        room_code_var.set(room.code)
        room.add_member(ctx.player_id, request.name, ctx.websocket)
        event_log.with_context(room_code=room.code).info(f"{request.name} created room")

        await reply({"room": public_room_view(room), "yourId": ctx.player_id})
        await broadcast_room_state(room)


async def handle_join_room(request: JoinRoomRequest, ctx: ConnectionContext, *, room_manager: RoomManager, reply: Reply, **kw) -> None:
    async with locked_room(room_manager, request.code) as room:
        if not request.name:
            raise ValidationError("Name required")
        already_member = room.get_member(ctx.player_id) is not None
        room.add_member(ctx.player_id, request.name, ctx.websocket)
        if not already_member:
            event_log.with_context(room_code=room.code).info(
                f"{request.name} joined ({len(room.members)} members, phase={room.phase.value})"
            )

        await reply({"room": public_room_view(room), "yourId": ctx.player_id})
        await broadcast_room_state(room)


# ---------------------------------------------------------------------------
# Game lifecycle handlers
# ---------------------------------------------------------------------------

async def handle_start_game(request: StartGameRequest, ctx: ConnectionContext, *, room_manager: RoomManager, reply: Reply, **kw) -> None:
    async with locked_room(room_manager, request.code) as room:
        room.start_game(ctx.player_id)

        await reply({})
        await broadcast_room_state(room)


async def handle_set_face_up(request: SetFaceUpRequest, ctx: ConnectionContext, *, room_manager: RoomManager, reply: Reply, **kw) -> None:
    async with locked_room(room_manager, request.code) as room:
        room.lock_face_up(ctx.player_id, request.chosen_card_ids or [])

        await reply({})
        await broadcast_room_state(room)


# ---------------------------------------------------------------------------
# Turn action handlers
# ---------------------------------------------------------------------------

async def handle_play_cards(request: PlayCardsRequest, ctx: ConnectionContext, *, room_manager: RoomManager, reply: Reply, **kw) -> None:
    async with locked_room(room_manager, request.code) as room:
        result = room.play_cards(
            ctx.player_id,
            request.source,
            card_ids=request.card_ids,
            face_down_index=request.face_down_index,
        )

        await reply(result.to_dict())
        await broadcast_room_state(room)


async def handle_pickup(request: PickupRequest, ctx: ConnectionContext, *, room_manager: RoomManager, reply: Reply, **kw) -> None:
    async with locked_room(room_manager, request.code) as room:
        room.pickup_pile(ctx.player_id)

        await reply({})
        await broadcast_room_state(room)


# ---------------------------------------------------------------------------
# Disconnect
# ---------------------------------------------------------------------------

async def handle_disconnect(ctx: ConnectionContext, *, room_manager: RoomManager, **kw) -> None:
    """Remove a closed connection from every room it belongs to."""
    for room in room_manager.find_member_rooms(ctx.player_id):
        async with room.lock:
            member = room.remove_member(ctx.player_id)
            if member is None:
                continue

            event_log.with_context(room_code=room.code).info(f"{member.name} left")
            if room.is_empty():
                room_manager.remove_room(room.code)
            else:
                await broadcast_room_state(room)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

HANDLERS = {
    "room:create": handle_create_room,
    "room:join": handle_join_room,
    "game:start": handle_start_game,
    "setup:setFaceUp": handle_set_face_up,
    "play:cards": handle_play_cards,
    "play:pickup": handle_pickup,
}


async def dispatch(data: Any, ctx: ConnectionContext, **deps) -> None:
    """
    Validate one client message, run its handler, and ack it.

    The ack is `{"type": "ack", "request_id": ..., "ok": true, ...}` on
    success or `{"type": "ack", "request_id": ..., "ok": false, "error",
    "code"}` on failure. Exactly one ack is sent per message.
    """
    request_id = data.get("request_id") if isinstance(data, dict) else None
    replied = False

    async def reply(payload: dict) -> None:
        nonlocal replied
        replied = True
        await ctx.websocket.send_json({"type": "ack", "request_id": request_id, "ok": True, **payload})

    async def fail(error: dict) -> None:
        if not replied:
            await ctx.websocket.send_json({"type": "ack", "request_id": request_id, **error})

    player_id_var.set(ctx.player_id)
    room_code_var.set(None)

    try:
        request = parse_request(data)
        await HANDLERS[request.type](request, ctx, reply=reply, **deps)
    except GameError as e:
        logger.debug(f"Rejected {data.get('type') if isinstance(data, dict) else data!r}: {e}")
        await fail(e.to_dict())
    except Exception:
        logger.exception("Unhandled error while processing request")
        await fail({"ok": False, "error": "Internal error", "code": "INTERNAL_ERROR"})
