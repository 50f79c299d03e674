"""
Rule constants for Shithead.

This module is the single source of truth for deal sizes and the ranks
that carry special behaviour on the discard pile. Pile legality lives in
pile.py and turn flow in game.py; both read their numbers from here.

Special ranks:
    - 2, 3, 10: "magic" - playable on anything
    - 3: invisible - the card beneath it decides what may follow
    - 7: reverses the ordering - next play must be lower than 7
    - 8: skips the next player (one skip per 8 played)
    - 10: burns the pile
"""

# =============================================================================
# Deal sizes
# =============================================================================

FACE_DOWN_COUNT: int = 3     # Hidden cards dealt to each seat, in fixed slots
STARTING_HAND_SIZE: int = 6  # Hand size at deal, before choosing face-up cards
FACE_UP_COUNT: int = 3       # Cards each player locks in face-up during setup
HAND_TARGET: int = 3         # Hand is topped back up to this while the deck lasts

CARDS_PER_PLAYER: int = FACE_DOWN_COUNT + STARTING_HAND_SIZE


# =============================================================================
# Rank magnitudes
# =============================================================================

# A is high. 2, 3 and 10 are listed for completeness but are magic and
# never compared by magnitude.
RANK_VALUES: dict[str, int] = {
    'A': 14,
    'K': 13,
    'Q': 12,
    'J': 11,
    '10': 10,
    '9': 9,
    '8': 8,
    '7': 7,
    '6': 6,
    '5': 5,
    '4': 4,
    '3': 3,
    '2': 2,
}


# =============================================================================
# Special ranks
# =============================================================================

MAGIC_RANKS: frozenset[str] = frozenset({'2', '3', '10'})
INVISIBLE_RANK: str = '3'
LOWER_THAN_RANK: str = '7'
SKIP_RANK: str = '8'
BURN_RANK: str = '10'

BURN_RUN_LENGTH: int = 4  # Four of a kind (ignoring 3s) burns the pile
