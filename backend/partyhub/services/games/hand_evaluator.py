"""Best-hand evaluation for seven visible cards.

Hands are compared by ``(category, tiebreak)``: the category from high card
up to royal flush, then a category-specific vector of ranks. Two hands with
the same key are a genuine tie.
"""
from collections import Counter, namedtuple
from itertools import combinations
from typing import Sequence

HIGH_CARD = 1
PAIR = 2
TWO_PAIR = 3
THREE_OF_A_KIND = 4
STRAIGHT = 5
FLUSH = 6
FULL_HOUSE = 7
FOUR_OF_A_KIND = 8
STRAIGHT_FLUSH = 9
ROYAL_FLUSH = 10

HAND_NAMES = {
    HIGH_CARD: 'High Card',
    PAIR: 'Pair',
    TWO_PAIR: 'Two Pair',
    THREE_OF_A_KIND: 'Three of a Kind',
    STRAIGHT: 'Straight',
    FLUSH: 'Flush',
    FULL_HOUSE: 'Full House',
    FOUR_OF_A_KIND: 'Four of a Kind',
    STRAIGHT_FLUSH: 'Straight Flush',
    ROYAL_FLUSH: 'Royal Flush',
}

_WHEEL = [14, 5, 4, 3, 2]


class HandValue(namedtuple('HandValue', ['category', 'tiebreak', 'cards'])):
    __slots__ = ()

    @property
    def key(self):
        return (self.category, self.tiebreak)

    @property
    def name(self) -> str:
        return HAND_NAMES[self.category]

    def to_dict(self) -> dict:
        return {
            'rank': self.category,
            'name': self.name,
            'values': list(self.tiebreak),
            'cards': [c.to_dict() for c in self.cards],
        }


def _straight_high(values: Sequence[int]):
    """High card of a straight given five values sorted descending, else None."""
    if len(set(values)) != 5:
        return None
    if values[0] - values[4] == 4:
        return values[0]
    if list(values) == _WHEEL:
        return 5
    return None


def evaluate_hand(cards) -> HandValue:
    """Rank exactly five cards."""
    if len(cards) != 5:
        raise ValueError('evaluate_hand expects exactly 5 cards')
    values = sorted((c.value for c in cards), reverse=True)
    flush = len({c.suit for c in cards}) == 1
    high = _straight_high(values)

    # ranks grouped by multiplicity, larger groups first, then higher ranks
    groups = sorted(Counter(values).items(), key=lambda item: (item[1], item[0]), reverse=True)
    shape = [count for _, count in groups]
    ordered = tuple(value for value, _ in groups)

    if flush and high is not None:
        category = ROYAL_FLUSH if high == 14 else STRAIGHT_FLUSH
        return HandValue(category, (high,), tuple(cards))
    if shape[0] == 4:
        return HandValue(FOUR_OF_A_KIND, ordered, tuple(cards))
    if shape == [3, 2]:
        return HandValue(FULL_HOUSE, ordered, tuple(cards))
    if flush:
        return HandValue(FLUSH, tuple(values), tuple(cards))
    if high is not None:
        return HandValue(STRAIGHT, (high,), tuple(cards))
    if shape[0] == 3:
        return HandValue(THREE_OF_A_KIND, ordered, tuple(cards))
    if shape[:2] == [2, 2]:
        return HandValue(TWO_PAIR, ordered, tuple(cards))
    if shape[0] == 2:
        return HandValue(PAIR, ordered, tuple(cards))
    return HandValue(HIGH_CARD, tuple(values), tuple(cards))


def compare_hands(a: HandValue, b: HandValue) -> int:
    """Positive if ``a`` wins, negative if ``b`` wins, 0 on a tie."""
    if a.key == b.key:
        return 0
    return 1 if a.key > b.key else -1


def best_hand(hole_cards, community_cards) -> HandValue:
    cards = list(hole_cards) + list(community_cards)
    if len(cards) < 5:
        raise ValueError('Need at least 5 cards to make a hand')
    best = None
    for combo in combinations(cards, 5):
        hand = evaluate_hand(combo)
        if best is None or hand.key > best.key:
            best = hand
    return best
