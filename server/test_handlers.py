"""
Test suite for WebSocket message handlers.

Drives `dispatch` with raw client messages against mock WebSockets and
checks the ack each request gets plus the state broadcasts that follow.

Run with: pytest test_handlers.py -v
"""

import pytest

from cards import Card, Rank, Suit
from game import GamePhase
from handlers import ConnectionContext, dispatch, handle_disconnect
from room import RoomManager


# =============================================================================
# Mock helpers
# =============================================================================

class MockWebSocket:
    """Mock WebSocket that collects sent messages."""

    def __init__(self):
        self.messages: list[dict] = []

    async def send_json(self, data: dict):
        self.messages.append(data)

    def last_ack(self) -> dict:
        acks = self.messages_of_type("ack")
        return acks[-1] if acks else {}

    def messages_of_type(self, msg_type: str) -> list[dict]:
        return [m for m in self.messages if m.get("type") == msg_type]

    def clear(self):
        self.messages = []


def make_ctx(player_id: str) -> ConnectionContext:
    return ConnectionContext(
        websocket=MockWebSocket(),
        connection_id=player_id,
        player_id=player_id,
    )


async def send(ctx: ConnectionContext, rm: RoomManager, **message) -> dict:
    """Dispatch one message and return its ack."""
    await dispatch(message, ctx, room_manager=rm)
    return ctx.websocket.last_ack()


async def setup_room(rm: RoomManager, *names: str) -> tuple[str, list[ConnectionContext]]:
    """Create a room hosted by the first name and join the rest."""
    ctxs = [make_ctx(name.lower()) for name in names]
    ack = await send(ctxs[0], rm, type="room:create", name=names[0])
    code = ack["room"]["code"]
    for ctx, name in zip(ctxs[1:], names[1:]):
        await send(ctx, rm, type="room:join", code=code, name=name)
    return code, ctxs


async def start_playing(rm: RoomManager, *names: str) -> tuple[str, list[ConnectionContext]]:
    """Create, start, and lock in face-up cards for every player."""
    code, ctxs = await setup_room(rm, *names)
    await send(ctxs[0], rm, type="game:start", code=code)
    game = rm.get_room(code).game
    for ctx in ctxs:
        chosen = [card.id for card in game.players[ctx.player_id].hand[:3]]
        await send(ctx, rm, type="setup:setFaceUp", code=code, chosenCardIds=chosen)
    return code, ctxs


# =============================================================================
# Lobby handlers
# =============================================================================

class TestCreateRoom:

    @pytest.mark.asyncio
    async def test_creates_room(self):
        rm = RoomManager()
        ctx = make_ctx("alice")
        ack = await send(ctx, rm, type="room:create", name="  Alice  ", request_id=7)

        assert ack["ok"] is True
        assert ack["request_id"] == 7
        assert ack["yourId"] == "alice"
        assert ack["room"]["hostSocketId"] == "alice"
        assert ack["room"]["players"] == [{"id": "alice", "name": "Alice"}]
        assert len(rm.rooms) == 1
        assert ctx.websocket.messages_of_type("room:update")

    @pytest.mark.asyncio
    async def test_ack_precedes_broadcast(self):
        rm = RoomManager()
        ctx = make_ctx("alice")
        await send(ctx, rm, type="room:create", name="Alice")
        assert [m["type"] for m in ctx.websocket.messages] == ["ack", "room:update"]

    @pytest.mark.asyncio
    async def test_empty_name_rejected(self):
        rm = RoomManager()
        ctx = make_ctx("alice")
        ack = await send(ctx, rm, type="room:create", name="   ")

        assert ack["ok"] is False
        assert ack["code"] == "VALIDATION_ERROR"
        assert ack["error"] == "Name required"
        assert rm.rooms == {}

    @pytest.mark.asyncio
    async def test_unknown_operation(self):
        rm = RoomManager()
        ctx = make_ctx("alice")
        ack = await send(ctx, rm, type="room:explode")
        assert ack["ok"] is False
        assert ack["code"] == "VALIDATION_ERROR"


class TestJoinRoom:

    @pytest.mark.asyncio
    async def test_join_existing_room(self):
        rm = RoomManager()
        code, (host, bob) = await setup_room(rm, "Host", "Bob")

        ack = bob.websocket.last_ack()
        assert ack["ok"] is True
        assert ack["yourId"] == "bob"
        assert [p["id"] for p in ack["room"]["players"]] == ["host", "bob"]
        # host sees the new member
        assert host.websocket.messages_of_type("room:update")[-1]["room"]["players"][1]["name"] == "Bob"

    @pytest.mark.asyncio
    async def test_join_lowercase_code(self):
        rm = RoomManager()
        code, _ = await setup_room(rm, "Host")
        ack = await send(make_ctx("bob"), rm, type="room:join", code=code.lower(), name="Bob")
        assert ack["ok"] is True

    @pytest.mark.asyncio
    async def test_join_unknown_room(self):
        rm = RoomManager()
        ack = await send(make_ctx("bob"), rm, type="room:join", code="ZZZZ", name="Bob")
        assert ack == {
            "type": "ack",
            "request_id": None,
            "ok": False,
            "error": "Room not found",
            "code": "NOT_FOUND",
        }

    @pytest.mark.asyncio
    async def test_join_twice_does_not_duplicate(self):
        rm = RoomManager()
        code, (host, bob) = await setup_room(rm, "Host", "Bob")
        ack = await send(bob, rm, type="room:join", code=code, name="Bob")

        assert ack["ok"] is True
        assert len(rm.get_room(code).members) == 2

    @pytest.mark.asyncio
    async def test_join_empty_name(self):
        rm = RoomManager()
        code, _ = await setup_room(rm, "Host")
        ack = await send(make_ctx("bob"), rm, type="room:join", code=code, name="")
        assert ack["code"] == "VALIDATION_ERROR"
        assert ack["error"] == "Name required"
        assert len(rm.get_room(code).members) == 1

    @pytest.mark.asyncio
    async def test_unknown_room_reported_before_blank_name(self):
        rm = RoomManager()
        ack = await send(make_ctx("bob"), rm, type="room:join", code="ZZZZ", name="  ")
        assert ack["code"] == "NOT_FOUND"


# =============================================================================
# Game lifecycle handlers
# =============================================================================

class TestStartGame:

    @pytest.mark.asyncio
    async def test_host_starts(self):
        rm = RoomManager()
        code, (host, bob) = await setup_room(rm, "Host", "Bob")
        ack = await send(host, rm, type="game:start", code=code)

        assert ack["ok"] is True
        private = bob.websocket.messages_of_type("game:private")[-1]
        assert len(private["you"]["hand"]) == 6
        assert private["you"]["stage"] == "chooseFaceUp"
        state = host.websocket.messages_of_type("game:state")[-1]
        assert state["game"]["phase"] == "setup"
        assert state["game"]["deckCount"] == 34

    @pytest.mark.asyncio
    async def test_non_host_forbidden(self):
        rm = RoomManager()
        code, (host, bob) = await setup_room(rm, "Host", "Bob")
        ack = await send(bob, rm, type="game:start", code=code)
        assert ack["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_needs_two_players(self):
        rm = RoomManager()
        code, (host,) = await setup_room(rm, "Host")
        ack = await send(host, rm, type="game:start", code=code)
        assert ack["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_already_started(self):
        rm = RoomManager()
        code, (host, bob) = await setup_room(rm, "Host", "Bob")
        await send(host, rm, type="game:start", code=code)
        ack = await send(host, rm, type="game:start", code=code)
        assert ack["code"] == "CONFLICT"


class TestSetFaceUp:

    @pytest.mark.asyncio
    async def test_everyone_locks_in(self):
        rm = RoomManager()
        code, ctxs = await start_playing(rm, "Host", "Bob")

        assert all(ctx.websocket.last_ack()["ok"] for ctx in ctxs)
        assert rm.get_room(code).phase == GamePhase.PLAYING
        private = ctxs[1].websocket.messages_of_type("game:private")[-1]
        assert private["you"]["stage"] == "playing"
        assert len(private["you"]["faceUp"]) == 3

    @pytest.mark.asyncio
    async def test_wrong_count(self):
        rm = RoomManager()
        code, (host, bob) = await setup_room(rm, "Host", "Bob")
        await send(host, rm, type="game:start", code=code)
        ack = await send(bob, rm, type="setup:setFaceUp", code=code, chosenCardIds=["x"])
        assert ack["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_before_start(self):
        rm = RoomManager()
        code, (host, bob) = await setup_room(rm, "Host", "Bob")
        ack = await send(bob, rm, type="setup:setFaceUp", code=code, chosenCardIds=["a", "b", "c"])
        assert ack["code"] == "CONFLICT"


# =============================================================================
# Turn action handlers
# =============================================================================

class TestPlay:

    @pytest.mark.asyncio
    async def test_play_and_broadcast(self):
        rm = RoomManager()
        code, (host, bob) = await start_playing(rm, "Host", "Bob")
        game = rm.get_room(code).game
        ten = Card.new(Rank.TEN, Suit.HEARTS)
        game.players["host"].hand.append(ten)
        bob.websocket.clear()

        ack = await send(host, rm, type="play:cards", code=code, source="hand", cardIds=[ten.id])

        assert ack == {"type": "ack", "request_id": None, "ok": True, "forcedPickup": False, "burned": True}
        state = bob.websocket.messages_of_type("game:state")[-1]["game"]
        assert state["currentPlayerId"] == "host"
        assert state["pileCount"] == 0

    @pytest.mark.asyncio
    async def test_illegal_play_acks_forced_pickup(self):
        rm = RoomManager()
        code, (host, bob) = await start_playing(rm, "Host", "Bob")
        game = rm.get_room(code).game
        game.pile = [Card.new(Rank.ACE, Suit.CLUBS)]
        four = Card.new(Rank.FOUR, Suit.HEARTS)
        game.players["host"].hand.append(four)

        ack = await send(host, rm, type="play:cards", code=code, source="hand", cardIds=[four.id])

        assert ack["ok"] is True
        assert ack["forcedPickup"] is True
        assert game.current_player_id == "bob"

    @pytest.mark.asyncio
    async def test_not_your_turn(self):
        rm = RoomManager()
        code, (host, bob) = await start_playing(rm, "Host", "Bob")
        card_id = rm.get_room(code).game.players["bob"].hand[0].id
        ack = await send(bob, rm, type="play:cards", code=code, source="hand", cardIds=[card_id])
        assert ack["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_bad_source(self):
        rm = RoomManager()
        code, (host, bob) = await start_playing(rm, "Host", "Bob")
        ack = await send(host, rm, type="play:cards", code=code, source="pocket", cardIds=["x"])
        assert ack["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_pickup(self):
        rm = RoomManager()
        code, (host, bob) = await start_playing(rm, "Host", "Bob")
        game = rm.get_room(code).game
        game.pile = [Card.new(Rank.KING, Suit.CLUBS)]

        ack = await send(host, rm, type="play:pickup", code=code)

        assert ack["ok"] is True
        assert len(game.players["host"].hand) == 4
        assert game.current_player_id == "bob"


# =============================================================================
# Disconnect
# =============================================================================

class TestDisconnect:

    @pytest.mark.asyncio
    async def test_host_leaves_lobby(self):
        rm = RoomManager()
        code, (host, bob) = await setup_room(rm, "Host", "Bob")
        await handle_disconnect(host, room_manager=rm)

        room = rm.get_room(code)
        assert room.host_id == "bob"
        assert bob.websocket.messages_of_type("room:update")[-1]["room"]["hostSocketId"] == "bob"

    @pytest.mark.asyncio
    async def test_last_member_closes_room(self):
        rm = RoomManager()
        code, (host,) = await setup_room(rm, "Host")
        await handle_disconnect(host, room_manager=rm)
        assert rm.get_room(code) is None

    @pytest.mark.asyncio
    async def test_leave_mid_game_forfeits(self):
        rm = RoomManager()
        code, (host, bob) = await start_playing(rm, "Host", "Bob")
        await handle_disconnect(bob, room_manager=rm)

        state = host.websocket.messages_of_type("game:state")[-1]["game"]
        assert state["phase"] == "ended"
        assert state["winnerId"] == "host"
        assert state["loserId"] == "bob"

    @pytest.mark.asyncio
    async def test_leaves_every_room(self):
        rm = RoomManager()
        code1, (host1,) = await setup_room(rm, "Host")
        code2, (host2,) = await setup_room(rm, "Other")
        await send(host1, rm, type="room:join", code=code2, name="Host")

        await handle_disconnect(host1, room_manager=rm)

        assert rm.get_room(code1) is None
        assert [m.id for m in rm.get_room(code2).members] == ["other"]
