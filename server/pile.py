"""
Discard pile rules.

Pure functions over a pile (an ordered list of cards, last element on top).
None of them mutate the pile.

Rules:
    - 2, 3 and 10 may be played on anything.
    - 3 is invisible: legality is judged against the topmost non-3 card.
    - On an effective 7 the next play must be lower than 7.
    - Otherwise a play must match or beat the effective top.
    - The pile burns on a 10, or when the four topmost non-3 cards share a rank.
"""

from typing import Optional, Sequence

from cards import Card, Rank, rank_value
from constants import BURN_RUN_LENGTH, INVISIBLE_RANK, LOWER_THAN_RANK, MAGIC_RANKS


def is_magic(rank: Rank) -> bool:
    """Whether rank is always playable (2, 3 or 10)."""
    return Rank(rank).value in MAGIC_RANKS


def _visible_ranks(pile: Sequence[Card]):
    """Yield ranks from the top of the pile down, skipping 3s."""
    for card in reversed(pile):
        if card.rank.value != INVISIBLE_RANK:
            yield card.rank


def effective_top_rank(pile: Sequence[Card]) -> Optional[Rank]:
    """
    Rank that the next play is judged against.

    Returns:
        Rank of the topmost card that is not a 3, or None if the pile is
        empty or holds only 3s.
    """
    return next(_visible_ranks(pile), None)


def can_play(rank: Rank, pile: Sequence[Card]) -> bool:
    """Whether a card of this rank may legally go on the pile."""
    rank = Rank(rank)
    if is_magic(rank):
        return True

    top = effective_top_rank(pile)
    if top is None:
        return True

    if rank == top:
        return True

    if top.value == LOWER_THAN_RANK:
        return rank_value(rank) < rank_value(top)

    return rank_value(rank) >= rank_value(top)


def triggers_burn(pile: Sequence[Card]) -> bool:
    """
    Whether the pile now holds four of a kind on top, ignoring 3s.

    Interleaved 3s do not break the run: A,3,A,3,A,3,A burns. A 10 also
    burns, but that is decided from the played rank by the caller.
    """
    top_ranks = []
    for rank in _visible_ranks(pile):
        top_ranks.append(rank)
        if len(top_ranks) == BURN_RUN_LENGTH:
            break

    if len(top_ranks) < BURN_RUN_LENGTH:
        return False
    return all(r == top_ranks[0] for r in top_ranks)
