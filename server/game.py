"""
Game logic for Shithead.

This module implements the per-table game state: dealing, the face-up
setup step, card plays against the pile, forced pickups, burns, skips,
and finish/win/loss resolution.

Shithead Rules Summary:
    - Each player is dealt 3 face-down cards and 6 hand cards
    - During setup, each player locks 3 hand cards face-up
    - On your turn, play one or more cards of a single rank onto the pile,
      or pick the pile up
    - An illegal play sends the played cards and the whole pile to your hand
    - A 10, or four of a kind on top (3s ignored), burns the pile and you
      go again
    - Each 8 played skips one more player
    - While the deck lasts you play from hand and draw back up to 3; once
      it is empty you play hand, then face-up, then face-down (blind)
    - First player out wins; the last player holding cards loses

Zone Layout:
    hand:      any number of cards, visible to owner
    face_up:   3 cards after setup, visible to everyone
    face_down: 3 fixed slots [0] [1] [2], chosen blind by slot index
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from cards import Card, Rank, build_shuffled_deck, split_by_ids
from constants import (
    FACE_DOWN_COUNT,
    FACE_UP_COUNT,
    HAND_TARGET,
    SKIP_RANK,
    BURN_RANK,
    STARTING_HAND_SIZE,
)
from errors import Conflict, Forbidden, ValidationError
from pile import can_play, triggers_burn

logger = logging.getLogger(__name__)


class GamePhase(str, Enum):
    """
    Phases of a room's game.

    Flow: LOBBY -> SETUP -> PLAYING -> ENDED
    """

    LOBBY = "lobby"      # Waiting for players; no cards dealt
    SETUP = "setup"      # Players choosing their face-up cards
    PLAYING = "playing"  # Taking turns
    ENDED = "ended"      # Only one player still holds cards


class Stage(str, Enum):
    """Per-player progress through setup."""

    CHOOSE_FACE_UP = "chooseFaceUp"
    READY = "ready"
    PLAYING = "playing"


class Zone(str, Enum):
    """Where a played card comes from."""

    HAND = "hand"
    FACE_UP = "faceUp"
    FACE_DOWN = "faceDown"


class FaceDownSlots:
    """
    A player's hidden cards in fixed positions.

    Slots never shift: taking slot 0 leaves slots 1 and 2 where they were,
    so an index chosen by the client always names the same card.
    """

    def __init__(self, cards: Optional[list[Card]] = None) -> None:
        self._slots: list[Optional[Card]] = list(cards or [])

    def take(self, index: int) -> Card:
        """
        Remove and return the card in a slot.

        Raises:
            ValidationError: If the index is out of range or the slot is empty.
        """
        if not 0 <= index < len(self._slots) or self._slots[index] is None:
            raise ValidationError("No card there")
        card = self._slots[index]
        self._slots[index] = None
        return card

    def cards(self) -> list[Card]:
        """Remaining cards in slot order."""
        return [c for c in self._slots if c is not None]

    def occupancy(self) -> list[bool]:
        return [c is not None for c in self._slots]

    def slots(self) -> list[Optional[Card]]:
        return list(self._slots)

    def clear(self) -> list[Card]:
        """Empty every slot, returning what was there."""
        remaining = self.cards()
        self._slots = [None] * len(self._slots)
        return remaining

    def __len__(self) -> int:
        return sum(1 for c in self._slots if c is not None)


@dataclass
class PlayerState:
    """
    One seat's cards and setup progress.

    Attributes:
        id: Player (connection) id.
        name: Display name at deal time.
        hand: Cards held in hand.
        face_up: Cards on the table, visible to all.
        face_down: Hidden cards in fixed slots.
        stage: Setup progress.
    """

    id: str
    name: str
    hand: list[Card] = field(default_factory=list)
    face_up: list[Card] = field(default_factory=list)
    face_down: FaceDownSlots = field(default_factory=FaceDownSlots)
    stage: Stage = Stage.CHOOSE_FACE_UP

    def is_finished(self) -> bool:
        """Whether every zone is empty."""
        return not self.hand and not self.face_up and len(self.face_down) == 0

    def all_cards(self) -> list[Card]:
        return self.hand + self.face_up + self.face_down.cards()


def required_zone(player: PlayerState, deck_has_cards: bool) -> Zone:
    """
    Zone the player must play from this turn.

    While the deck has cards the answer is always the hand, even an empty
    one. After that: hand until empty, then face-up, then face-down.
    """
    if deck_has_cards or player.hand:
        return Zone.HAND
    if player.face_up:
        return Zone.FACE_UP
    return Zone.FACE_DOWN


def draw_up_to(player: PlayerState, deck: list[Card], target: int = HAND_TARGET) -> int:
    """
    Refill the player's hand from the front of the deck.

    Stops at target cards or when the deck runs out.

    Returns:
        Number of cards drawn.
    """
    drawn = 0
    while len(player.hand) < target and deck:
        player.hand.append(deck.pop(0))
        drawn += 1
    return drawn


@dataclass
class PlayResult:
    """Outcome of a resolved card play."""

    forced_pickup: bool = False
    burned: bool = False

    def to_dict(self) -> dict:
        return {"forcedPickup": self.forced_pickup, "burned": self.burned}


@dataclass
class GameState:
    """
    State of one game of Shithead.

    Owned by exactly one Room and mutated only while that room's lock is
    held. Seat order is the insertion order of `players`.

    Attributes:
        deck: Draw pile; cards are dealt and drawn from the front.
        pile: Discard pile, last element on top.
        burned: Cards removed from play for good.
        current_player_id: Seat whose turn it is.
        players: PlayerState per seat, in turn order.
        finished: Seats that emptied all zones, in the order they did so.
        winner_id: First seat to finish, once the game has ended.
        loser_id: Last seat holding cards, once the game has ended.
        forfeited: Seats removed by disconnect, in order.
        phase: SETUP, PLAYING or ENDED.
    """

    deck: list[Card] = field(default_factory=list)
    pile: list[Card] = field(default_factory=list)
    burned: list[Card] = field(default_factory=list)
    current_player_id: Optional[str] = None
    players: dict[str, PlayerState] = field(default_factory=dict)
    finished: list[str] = field(default_factory=list)
    winner_id: Optional[str] = None
    loser_id: Optional[str] = None
    forfeited: list[str] = field(default_factory=list)
    phase: GamePhase = GamePhase.SETUP

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    @classmethod
    def deal(
        cls,
        seats: list[tuple[str, str]],
        deck: Optional[list[Card]] = None,
        rng: Optional[random.Random] = None,
    ) -> "GameState":
        """
        Deal a new game.

        Each seat gets 3 face-down cards then 6 hand cards off the front of
        the deck. The first seat moves first.

        Args:
            seats: (player_id, name) pairs in turn order.
            deck: Cards to deal from; a fresh shuffled deck if omitted.
            rng: Random source for the shuffle.
        """
        deck = list(deck) if deck is not None else build_shuffled_deck(rng)
        players: dict[str, PlayerState] = {}

        for player_id, name in seats:
            face_down = deck[:FACE_DOWN_COUNT]
            del deck[:FACE_DOWN_COUNT]
            hand = deck[:STARTING_HAND_SIZE]
            del deck[:STARTING_HAND_SIZE]
            players[player_id] = PlayerState(
                id=player_id,
                name=name,
                hand=hand,
                face_down=FaceDownSlots(face_down),
            )

        return cls(
            deck=deck,
            players=players,
            current_player_id=seats[0][0] if seats else None,
        )

    def lock_face_up(self, player_id: str, card_ids: list[str]) -> None:
        """
        Move three chosen hand cards face-up and mark the player ready.

        When the last player locks in, play begins.

        Raises:
            Forbidden: Player has no seat in this game.
            Conflict: Not in setup, or player already locked in.
            ValidationError: Not exactly 3 distinct ids held in hand.
        """
        player = self._require_seat(player_id)
        if self.phase != GamePhase.SETUP:
            raise Conflict("Not in setup phase")
        if player.stage != Stage.CHOOSE_FACE_UP:
            raise Conflict("Already locked in")

        if len(card_ids) != FACE_UP_COUNT or len(set(card_ids)) != FACE_UP_COUNT:
            raise ValidationError(f"Pick exactly {FACE_UP_COUNT} cards")

        hand_ids = {c.id for c in player.hand}
        if any(card_id not in hand_ids for card_id in card_ids):
            raise ValidationError("Invalid selection")

        player.face_up, player.hand = split_by_ids(player.hand, card_ids)
        player.stage = Stage.READY
        logger.debug(f"{player_id} locked in face-up cards")

        self._maybe_begin_play()

    def _maybe_begin_play(self) -> None:
        if self.phase != GamePhase.SETUP:
            return
        if self.players and all(p.stage == Stage.READY for p in self.players.values()):
            self.phase = GamePhase.PLAYING
            for p in self.players.values():
                p.stage = Stage.PLAYING
            logger.info("All players ready, play begins")

    # -------------------------------------------------------------------------
    # Turn actions
    # -------------------------------------------------------------------------

    def required_zone_for(self, player_id: str) -> Zone:
        return required_zone(self.players[player_id], bool(self.deck))

    def play_cards(
        self,
        player_id: str,
        source: Zone,
        card_ids: Optional[list[str]] = None,
        face_down_index: Optional[int] = None,
    ) -> PlayResult:
        """
        Play one or more same-rank cards from the required zone.

        Face-down plays pick exactly one slot by index; other zones select
        cards by id. The play then resolves as a forced pickup (illegal),
        a burn (same player goes again), or a normal play that passes the
        turn on by 1 + number of 8s played.

        Raises:
            Conflict: Not in the playing phase.
            Forbidden: Not this player's turn, or the wrong zone.
            ValidationError: Bad selection, mixed ranks, or empty slot.
        """
        player = self._require_turn(player_id)

        zone = self.required_zone_for(player_id)
        if Zone(source) != zone:
            raise Forbidden(f"You must play from {zone.value}")

        played = self._take_cards(player, zone, card_ids, face_down_index)
        play_rank = played[0].rank

        if not can_play(play_rank, self.pile):
            player.hand.extend(played)
            player.hand.extend(self.pile)
            picked_up = len(self.pile)
            self.pile = []
            self.current_player_id = self.next_active_player(player_id)
            logger.info(
                f"{player_id} played illegal {play_rank.value}, "
                f"picked up {picked_up} pile cards"
            )
            self._resolve_finish()
            return PlayResult(forced_pickup=True)

        self.pile.extend(played)

        if play_rank.value == BURN_RANK or triggers_burn(self.pile):
            self.burned.extend(self.pile)
            self.pile = []
            if zone == Zone.HAND:
                draw_up_to(player, self.deck)
            logger.info(f"{player_id} burned the pile with {play_rank.value}")
            self._resolve_finish()
            return PlayResult(burned=True)

        if zone == Zone.HAND:
            draw_up_to(player, self.deck)

        skips = sum(1 for c in played if c.rank.value == SKIP_RANK)
        self.current_player_id = self.next_active_player(player_id, 1 + skips)
        self._resolve_finish()
        return PlayResult()

    def _take_cards(
        self,
        player: PlayerState,
        zone: Zone,
        card_ids: Optional[list[str]],
        face_down_index: Optional[int],
    ) -> list[Card]:
        """Validate a selection and remove it from the zone."""
        if zone == Zone.FACE_DOWN:
            if face_down_index is None:
                raise ValidationError("Pick a face-down card")
            return [player.face_down.take(face_down_index)]

        ids = list(card_ids or [])
        if not ids:
            raise ValidationError("Select a card")
        if len(set(ids)) != len(ids):
            raise ValidationError("Invalid selection")

        cards = player.hand if zone == Zone.HAND else player.face_up
        by_id = {c.id: c for c in cards}
        if any(card_id not in by_id for card_id in ids):
            raise ValidationError("Invalid selection")

        if len({by_id[card_id].rank for card_id in ids}) != 1:
            raise ValidationError("You can only play multiple cards of the same rank")

        removed, kept = split_by_ids(cards, ids)
        if zone == Zone.HAND:
            player.hand = kept
        else:
            player.face_up = kept
        return removed

    def pickup_pile(self, player_id: str) -> None:
        """
        Take the whole pile into hand and pass the turn.

        Raises:
            Conflict: Not in the playing phase.
            Forbidden: Not this player's turn.
        """
        player = self._require_turn(player_id)
        player.hand.extend(self.pile)
        logger.debug(f"{player_id} picked up {len(self.pile)} cards")
        self.pile = []
        self.current_player_id = self.next_active_player(player_id)
        self._resolve_finish()

    # -------------------------------------------------------------------------
    # Turn order & finish resolution
    # -------------------------------------------------------------------------

    def active_player_ids(self) -> list[str]:
        """Seats still holding cards, in turn order."""
        done = set(self.finished)
        return [pid for pid in self.players if pid not in done]

    def next_active_player(self, from_id: Optional[str], steps: int = 1) -> Optional[str]:
        """
        Seat reached by moving `steps` active seats on from `from_id`.

        Wraps over active seats only. If `from_id` is no longer active,
        the first step lands on the next active seat after its position.
        """
        active = self.active_player_ids()
        if not active:
            return None

        if from_id in active:
            idx = active.index(from_id)
        else:
            seats = list(self.players)
            position = seats.index(from_id) if from_id in seats else len(seats)
            idx = sum(1 for pid in active if seats.index(pid) < position) - 1

        for _ in range(steps):
            idx = (idx + 1) % len(active)
        return active[idx]

    def _resolve_finish(self) -> None:
        """
        Record newly finished seats and end the game if one remains.

        Finishers are appended in discovery order, so finished[0] is the
        winner. If the current seat has finished, the turn moves on.
        """
        for pid, player in self.players.items():
            if pid not in self.finished and player.is_finished():
                self.finished.append(pid)
                logger.info(f"{pid} is out (place {len(self.finished)})")

        active = self.active_player_ids()
        if len(active) == 1 and len(self.players) >= 2:
            self._end(winner_id=self.finished[0], loser_id=active[0])
        elif self.current_player_id in self.finished:
            self.current_player_id = self.next_active_player(self.current_player_id)

    def _end(self, winner_id: Optional[str], loser_id: Optional[str]) -> None:
        self.phase = GamePhase.ENDED
        self.winner_id = winner_id
        self.loser_id = loser_id

        active = self.active_player_ids()
        if self.current_player_id not in active:
            self.current_player_id = active[0] if active else None
        logger.info(f"Game over: winner={winner_id} loser={loser_id}")

    # -------------------------------------------------------------------------
    # Leaving
    # -------------------------------------------------------------------------

    def forfeit(self, player_id: str) -> None:
        """
        Remove a departing seat.

        An unfinished seat in setup or play forfeits: its cards are burned
        and the turn passes on if it held it. If fewer than two unfinished
        seats remain, the game ends. A finished seat keeps its place in the
        finishing order.
        """
        player = self.players.get(player_id)
        if player is None:
            return

        if self.phase == GamePhase.ENDED or player_id in self.finished:
            del self.players[player_id]
            return

        successor = self.next_active_player(player_id)
        self.burned.extend(player.all_cards())
        player.hand, player.face_up = [], []
        player.face_down.clear()
        del self.players[player_id]
        self.forfeited.append(player_id)
        logger.info(f"{player_id} forfeited")

        active = self.active_player_ids()
        if len(active) < 2:
            if self.finished:
                winner_id = self.finished[0]
                loser_id = active[0] if active else player_id
            else:
                winner_id = active[0] if active else None
                loser_id = player_id
            self._end(winner_id=winner_id, loser_id=loser_id)
            return

        if self.current_player_id == player_id:
            self.current_player_id = successor
        self._maybe_begin_play()

    # -------------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------------

    def _require_seat(self, player_id: str) -> PlayerState:
        player = self.players.get(player_id)
        if player is None:
            raise Forbidden("You are not in this game")
        return player

    def _require_turn(self, player_id: str) -> PlayerState:
        if self.phase != GamePhase.PLAYING:
            raise Conflict("Not in playing phase")
        if self.current_player_id != player_id:
            raise Forbidden("Not your turn")
        return self._require_seat(player_id)
