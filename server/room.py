"""
Room management for multiplayer Shithead games.

This module handles room creation, membership, and the lobby-level half
of the state machine. Card play itself lives in game.GameState; a Room
owns at most one GameState and serializes every mutation of it with
`lock`.

A Room contains:
    - A unique short code for joining
    - Members in join order (the first is host)
    - At most one GameState, created when the host starts the game
"""

import asyncio
import logging
import random
import string
from dataclasses import dataclass, field
from typing import Optional

from fastapi import WebSocket

from cards import Card
from constants import CARDS_PER_PLAYER
from errors import Conflict, Forbidden, NotFound, ValidationError
from game import GamePhase, GameState, PlayResult, Zone

logger = logging.getLogger(__name__)

MIN_PLAYERS = 2
MAX_PLAYERS = 52 // CARDS_PER_PLAYER


@dataclass
class RoomMember:
    """
    A member of a room (lobby-level representation).

    This is separate from game.PlayerState - RoomMember tracks the
    connection, while PlayerState tracks cards for members dealt in.

    Attributes:
        id: Connection id of the member.
        name: Display name.
        websocket: Connection to push events to (None in tests).
    """

    id: str
    name: str
    websocket: Optional[WebSocket] = None


@dataclass
class Room:
    """
    A game room that hosts a single game of Shithead.

    Attributes:
        code: Short code for joining (e.g., "ABCD").
        host_id: Member allowed to start the game.
        members: Members in join order.
        game: The GameState once started, else None.
        min_players: Seats needed to start.
        max_players: Most members the room accepts.
        lock: asyncio.Lock serializing mutations of this room.
    """

    code: str
    host_id: Optional[str] = None
    members: list[RoomMember] = field(default_factory=list)
    game: Optional[GameState] = None
    min_players: int = MIN_PLAYERS
    max_players: int = MAX_PLAYERS
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def phase(self) -> GamePhase:
        return self.game.phase if self.game else GamePhase.LOBBY

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    def add_member(
        self,
        player_id: str,
        name: str,
        websocket: Optional[WebSocket] = None,
    ) -> RoomMember:
        """
        Add a member to the room, or return the existing entry.

        The first member becomes host. Joining again with the same id does
        not add a second entry. Members who join after the game has started
        watch from the side and have no seat.

        Raises:
            Conflict: If the room is full.
        """
        existing = self.get_member(player_id)
        if existing:
            return existing

        if len(self.members) >= self.max_players:
            raise Conflict("Room is full")

        member = RoomMember(id=player_id, name=name, websocket=websocket)
        self.members.append(member)
        if self.host_id is None:
            self.host_id = player_id
        return member

    def remove_member(self, player_id: str) -> Optional[RoomMember]:
        """
        Remove a member from the room.

        Hands host to the next remaining member and forfeits the member's
        seat if a game is in progress.

        Returns:
            The removed RoomMember, or None if not found.
        """
        member = self.get_member(player_id)
        if member is None:
            return None

        self.members.remove(member)
        if self.host_id == player_id:
            self.host_id = self.members[0].id if self.members else None

        if self.game:
            self.game.forfeit(player_id)

        return member

    def get_member(self, player_id: str) -> Optional[RoomMember]:
        """Get a member by ID, or None if not found."""
        for member in self.members:
            if member.id == player_id:
                return member
        return None

    def is_empty(self) -> bool:
        return len(self.members) == 0

    # -------------------------------------------------------------------------
    # Game lifecycle
    # -------------------------------------------------------------------------

    def start_game(self, requester_id: str, deck: Optional[list[Card]] = None) -> GameState:
        """
        Deal a new game to every current member, in join order.

        Raises:
            Forbidden: Requester is not the host.
            ValidationError: Too few (or too many) members.
            Conflict: A game has already been started.
        """
        if requester_id != self.host_id:
            raise Forbidden("Only host can start")
        if len(self.members) < self.min_players:
            raise ValidationError(f"Need at least {self.min_players} players")
        if len(self.members) > self.max_players:
            raise ValidationError(f"At most {self.max_players} players can play")
        if self.phase != GamePhase.LOBBY:
            raise Conflict("Game already started")

        self.game = GameState.deal([(m.id, m.name) for m in self.members], deck=deck)
        logger.info(f"Room {self.code}: game started with {len(self.members)} players")
        return self.game

    def lock_face_up(self, player_id: str, card_ids: list[str]) -> None:
        self._require_game().lock_face_up(player_id, card_ids)

    def play_cards(
        self,
        player_id: str,
        source: Zone,
        card_ids: Optional[list[str]] = None,
        face_down_index: Optional[int] = None,
    ) -> PlayResult:
        return self._require_game().play_cards(player_id, source, card_ids, face_down_index)

    def pickup_pile(self, player_id: str) -> None:
        self._require_game().pickup_pile(player_id)

    def _require_game(self) -> GameState:
        if self.game is None:
            raise Conflict("Game not started")
        return self.game

    # -------------------------------------------------------------------------
    # Messaging
    # -------------------------------------------------------------------------

    async def broadcast(self, message: dict) -> None:
        """
        Send a message to every member of the room.

        Args:
            message: JSON-serializable message dict.
        """
        for member in list(self.members):
            await self._send(member, message)

    async def send_to(self, player_id: str, message: dict) -> None:
        """Send a message to one member."""
        member = self.get_member(player_id)
        if member:
            await self._send(member, message)

    async def _send(self, member: RoomMember, message: dict) -> None:
        if member.websocket is None:
            return
        try:
            await member.websocket.send_json(message)
        except Exception as e:
            # The receive loop for that socket will notice and clean up
            logger.debug(f"Room {self.code}: send to {member.id} failed: {e}")


class RoomManager:
    """
    Store of all active rooms.

    Provides room creation with unique codes, lookup, and removal. A
    single RoomManager instance is created by the server and handed to
    each request handler.
    """

    def __init__(
        self,
        code_length: int = 4,
        min_players: int = MIN_PLAYERS,
        max_players: int = MAX_PLAYERS,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.rooms: dict[str, Room] = {}
        self.code_length = code_length
        self.min_players = min_players
        self.max_players = max_players
        self._rng = rng or random.SystemRandom()

    def _generate_code(self, max_attempts: int = 100) -> str:
        """Generate a room code not currently in use."""
        for _ in range(max_attempts):
            code = "".join(self._rng.choices(string.ascii_uppercase, k=self.code_length))
            if code not in self.rooms:
                return code
        raise RuntimeError("Could not generate unique room code")

    def create_room(self) -> Room:
        """Create an empty room with a unique code."""
        code = self._generate_code()
        room = Room(code=code, min_players=self.min_players, max_players=self.max_players)
        self.rooms[code] = room
        logger.info(f"Room {code} created ({len(self.rooms)} active)")
        return room

    def get_room(self, code: str) -> Optional[Room]:
        """Get a room by its code (case-insensitive), or None."""
        return self.rooms.get(code.strip().upper())

    def require_room(self, code: str) -> Room:
        """
        Get a room by its code.

        Raises:
            NotFound: If no room has that code.
        """
        room = self.get_room(code)
        if room is None:
            raise NotFound("Room not found")
        return room

    def remove_room(self, code: str) -> None:
        if self.rooms.pop(code, None) is not None:
            logger.info(f"Room {code} closed ({len(self.rooms)} active)")

    def find_member_rooms(self, player_id: str) -> list[Room]:
        """All rooms the player is a member of."""
        return [room for room in self.rooms.values() if room.get_member(player_id)]
