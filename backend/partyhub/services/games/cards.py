import random
from collections import namedtuple
from typing import List

RANKS = ['2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K', 'A']
SUITS = ['spades', 'hearts', 'diamonds', 'clubs']
RANK_VALUES = {rank: value for value, rank in enumerate(RANKS, start=2)}

_SUIT_LETTERS = {'S': 'spades', 'H': 'hearts', 'D': 'diamonds', 'C': 'clubs'}
_SUIT_SYMBOLS = {'spades': '♠', 'hearts': '♥', 'diamonds': '♦', 'clubs': '♣'}


class Card(namedtuple('Card', ['rank', 'suit'])):
    __slots__ = ()

    @property
    def value(self) -> int:
        return RANK_VALUES[self.rank]

    def to_dict(self) -> dict:
        return {'rank': self.rank, 'suit': self.suit}

    def __str__(self):
        return f'{self.rank}{_SUIT_SYMBOLS[self.suit]}'


def build_deck() -> List[Card]:
    return [Card(rank, suit) for suit in SUITS for rank in RANKS]


def shuffled_deck(rng=random) -> List[Card]:
    deck = build_deck()
    rng.shuffle(deck)
    return deck


def parse_card(text: str) -> Card:
    """Parse short notation such as ``AS``, ``10h`` or ``Td``."""
    text = text.strip().upper()
    if len(text) < 2:
        raise ValueError(f'Invalid card: {text!r}')
    rank, suit = text[:-1], text[-1]
    if rank == 'T':
        rank = '10'
    if rank not in RANK_VALUES or suit not in _SUIT_LETTERS:
        raise ValueError(f'Invalid card: {text!r}')
    return Card(rank, _SUIT_LETTERS[suit])


def parse_cards(texts) -> List[Card]:
    if isinstance(texts, str):
        texts = texts.split()
    return [parse_card(t) for t in texts]
