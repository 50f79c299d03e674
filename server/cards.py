"""
Cards and the shuffled 52-card deck.

Cards are immutable values. Each carries an id that is unique for the
lifetime of the process, so the client can refer to "this card" in a
selection even when two cards share rank and suit.
"""

import random
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from constants import RANK_VALUES


class Suit(str, Enum):
    """Card suits. Colour only matters to the client."""

    SPADES = "spades"
    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"

    @property
    def symbol(self) -> str:
        return _SUIT_SYMBOLS[self]


_SUIT_SYMBOLS = {
    Suit.SPADES: "♠",
    Suit.HEARTS: "♥",
    Suit.DIAMONDS: "♦",
    Suit.CLUBS: "♣",
}


class Rank(str, Enum):
    """Card ranks, valued by their display string."""

    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"


def rank_value(rank: Rank) -> int:
    """
    Magnitude of a rank for ordering plays (A=14 down to 2).

    Magic ranks (2, 3, 10) have a value here but callers must handle them
    before comparing, since they are playable regardless of magnitude.
    """
    return RANK_VALUES[Rank(rank).value]


@dataclass(frozen=True)
class Card:
    """
    A single playing card.

    Attributes:
        rank: The card's rank (A, 2-10, J, Q, K).
        suit: The card's suit.
        id: Opaque identifier, unique across every deck built by this process.
    """

    rank: Rank
    suit: Suit
    id: str

    @classmethod
    def new(cls, rank: Rank, suit: Suit) -> "Card":
        """Create a card with a fresh unique id."""
        return cls(rank, suit, f"{rank.value}{suit.symbol}-{uuid.uuid4().hex[:8]}")

    def to_dict(self) -> dict:
        """Convert card to a JSON-ready dict."""
        return {
            "rank": self.rank.value,
            "suit": self.suit.value,
            "id": self.id,
        }

    def __str__(self) -> str:
        return f"{self.rank.value}{self.suit.symbol}"


def build_deck() -> list[Card]:
    """Build the 52 rank/suit combinations in canonical order."""
    return [Card.new(rank, suit) for suit in Suit for rank in Rank]


def shuffle_cards(cards: list[Card], rng: Optional[random.Random] = None) -> None:
    """
    Shuffle cards in place with Fisher-Yates.

    Walks from the last index down to 1, swapping each position with a
    uniformly chosen index in [0, i].

    Args:
        cards: The cards to permute.
        rng: Random source. Defaults to the OS entropy source so deck order
             cannot be predicted from earlier output.
    """
    rng = rng or random.SystemRandom()
    for i in range(len(cards) - 1, 0, -1):
        j = rng.randint(0, i)
        cards[i], cards[j] = cards[j], cards[i]


def build_shuffled_deck(rng: Optional[random.Random] = None) -> list[Card]:
    """Build a fresh 52-card deck in uniformly random order."""
    deck = build_deck()
    shuffle_cards(deck, rng)
    return deck


def split_by_ids(cards: Iterable[Card], ids: Iterable[str]) -> tuple[list[Card], list[Card]]:
    """
    Partition cards by id membership, preserving order in both halves.

    Returns:
        (removed, kept) - cards whose id is in ids, and all the others.
    """
    wanted = set(ids)
    removed: list[Card] = []
    kept: list[Card] = []
    for card in cards:
        (removed if card.id in wanted else kept).append(card)
    return removed, kept
