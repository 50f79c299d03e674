"""
Test suite for cards, deck building and pile rules.

Covers:
- 52-card deck construction and shuffling
- Rank ordering
- Effective top (3s are invisible)
- Play legality (magic ranks, the 7 rule, matching/beating)
- Burn detection (four of a kind ignoring 3s)

Run with: pytest test_cards.py -v
"""

import random

import pytest

from cards import Card, Rank, Suit, build_deck, build_shuffled_deck, rank_value, shuffle_cards, split_by_ids
from pile import can_play, effective_top_rank, is_magic, triggers_burn


def pile_of(*ranks: str) -> list[Card]:
    """Build a pile from rank strings, bottom first."""
    return [Card.new(Rank(r), Suit.CLUBS) for r in ranks]


# =============================================================================
# Deck
# =============================================================================

class TestDeck:

    def test_shuffled_deck_is_permutation_of_all_52(self):
        deck = build_shuffled_deck()
        assert len(deck) == 52
        assert {(c.rank, c.suit) for c in deck} == {(r, s) for r in Rank for s in Suit}

    def test_card_ids_unique(self):
        deck = build_shuffled_deck()
        assert len({c.id for c in deck}) == 52

    def test_ids_unique_across_decks(self):
        ids = {c.id for c in build_deck()} | {c.id for c in build_deck()}
        assert len(ids) == 104

    def test_seeded_shuffle_is_reproducible(self):
        deck = build_deck()
        a, b = list(deck), list(deck)
        shuffle_cards(a, random.Random(7))
        shuffle_cards(b, random.Random(7))
        assert a == b
        assert sorted(c.id for c in a) == sorted(c.id for c in deck)

    def test_fisher_yates_swaps_within_prefix(self):
        """An rng that always picks the top index leaves the order alone."""

        class TopIndex:
            def randint(self, a, b):
                return b

        deck = build_deck()
        shuffled = list(deck)
        shuffle_cards(shuffled, TopIndex())
        assert shuffled == deck

    def test_split_by_ids_preserves_order(self):
        cards = pile_of("4", "5", "6", "7")
        removed, kept = split_by_ids(cards, [cards[2].id, cards[0].id])
        assert removed == [cards[0], cards[2]]
        assert kept == [cards[1], cards[3]]

    def test_card_to_dict(self):
        card = Card(Rank.QUEEN, Suit.HEARTS, "Q-1")
        assert card.to_dict() == {"rank": "Q", "suit": "hearts", "id": "Q-1"}
        assert str(card) == "Q♥"


class TestRankValue:

    def test_face_cards(self):
        assert rank_value(Rank.ACE) == 14
        assert rank_value(Rank.KING) == 13
        assert rank_value(Rank.QUEEN) == 12
        assert rank_value(Rank.JACK) == 11

    def test_numerals_face_value(self):
        assert rank_value(Rank.FOUR) == 4
        assert rank_value(Rank.NINE) == 9


# =============================================================================
# Pile rules
# =============================================================================

class TestEffectiveTop:

    def test_empty_pile(self):
        assert effective_top_rank([]) is None

    def test_trailing_threes_ignored(self):
        assert effective_top_rank(pile_of("5", "3", "3")) == Rank.FIVE

    def test_all_threes(self):
        assert effective_top_rank(pile_of("3", "3")) is None

    def test_plain_top(self):
        assert effective_top_rank(pile_of("3", "9")) == Rank.NINE


class TestCanPlay:

    @pytest.mark.parametrize("rank", ["2", "3", "10"])
    def test_magic_always_playable(self, rank):
        assert is_magic(Rank(rank))
        assert can_play(Rank(rank), pile_of("A"))
        assert can_play(Rank(rank), pile_of("7"))
        assert can_play(Rank(rank), [])

    def test_anything_on_empty_pile(self):
        assert can_play(Rank.FOUR, [])

    def test_anything_on_only_threes(self):
        assert can_play(Rank.FOUR, pile_of("3", "3"))

    def test_seven_requires_lower(self):
        pile = pile_of("7")
        assert can_play(Rank.SIX, pile)
        assert not can_play(Rank.EIGHT, pile)
        assert not can_play(Rank.ACE, pile)

    def test_seven_on_seven(self):
        assert can_play(Rank.SEVEN, pile_of("7"))

    def test_seven_under_a_three_still_applies(self):
        assert not can_play(Rank.NINE, pile_of("7", "3"))
        assert can_play(Rank.FOUR, pile_of("7", "3"))

    def test_must_match_or_beat(self):
        pile = pile_of("Q")
        assert not can_play(Rank.JACK, pile)
        assert can_play(Rank.QUEEN, pile)
        assert can_play(Rank.KING, pile)
        assert can_play(Rank.ACE, pile)

    def test_three_is_transparent_for_ordering(self):
        assert not can_play(Rank.FIVE, pile_of("9", "3"))


class TestBurn:

    def test_four_of_a_kind_burns(self):
        assert triggers_burn(pile_of("5", "9", "9", "9", "9"))

    def test_interleaved_threes_do_not_break_run(self):
        assert triggers_burn(pile_of("7", "3", "7", "3", "7", "3", "7"))

    def test_ace_run_with_threes(self):
        assert triggers_burn(pile_of("A", "3", "A", "3", "A", "3", "A"))

    def test_broken_run(self):
        assert not triggers_burn(pile_of("7", "7", "7", "8"))

    def test_fewer_than_four_visible(self):
        assert not triggers_burn(pile_of("3", "9", "9", "9"))

    def test_four_threes_do_not_burn(self):
        assert not triggers_burn(pile_of("3", "3", "3", "3"))
