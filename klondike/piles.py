from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Sequence
import random

from .types import (
    Card,
    Pile,
    SUITS,
    RANKS,
    DECK_SIZE,
    TABLEAU_COUNT,
    FOUNDATION_COUNT,
    STOCK_ID,
    WASTE_ID,
    tableau_id,
    foundation_id,
)
from .errors import NotFoundError


class Board:
    def __init__(self) -> None:
        self.piles: Dict[str, Pile] = {}
        for i in range(TABLEAU_COUNT):
            self.piles[tableau_id(i)] = Pile(tableau_id(i), "tableau")
        for i in range(FOUNDATION_COUNT):
            self.piles[foundation_id(i)] = Pile(foundation_id(i), "foundation")
        self.piles[STOCK_ID] = Pile(STOCK_ID, "stock")
        self.piles[WASTE_ID] = Pile(WASTE_ID, "waste")

    def pile(self, pile_id: str) -> Pile:
        p = self.piles.get(pile_id)
        if p is None:
            raise NotFoundError("UNKNOWN_PILE", f"Unknown pile: {pile_id}")
        return p

    @property
    def stock(self) -> Pile:
        return self.piles[STOCK_ID]

    @property
    def waste(self) -> Pile:
        return self.piles[WASTE_ID]

    def tableau(self) -> List[Pile]:
        return [self.piles[tableau_id(i)] for i in range(TABLEAU_COUNT)]

    def foundations(self) -> List[Pile]:
        return [self.piles[foundation_id(i)] for i in range(FOUNDATION_COUNT)]

    def all_cards(self) -> Iterator[Card]:
        for p in self.piles.values():
            yield from p.cards

    def foundation_count(self) -> int:
        return sum(len(p) for p in self.foundations())


def new_deck() -> List[Card]:
    return [Card(s, r) for s in SUITS for r in RANKS]


def remove_from(pile: Pile, index: int) -> List[Card]:
    """Detach the run ``pile.cards[index:]`` and return it (bottom first)."""
    assert 0 <= index <= len(pile.cards), f"Index {index} out of range for {pile.id}"
    run = pile.cards[index:]
    del pile.cards[index:]
    return run


def append_to(pile: Pile, cards: Sequence[Card]) -> None:
    pile.cards.extend(cards)


def deal(rng: Optional[random.Random] = None) -> Board:
    """Shuffle a fresh deck into the Klondike starting layout.

    Tableau pile ``i`` gets ``i + 1`` cards with only the last face-up; the
    remaining 24 cards go face-down to the stock.
    """
    rng = rng or random.Random()
    deck = new_deck()
    rng.shuffle(deck)
    board = Board()
    pos = 0
    for i, pile in enumerate(board.tableau()):
        run = deck[pos:pos + i + 1]
        pos += i + 1
        run[-1].face_up = True
        append_to(pile, run)
    append_to(board.stock, deck[pos:])
    return board


def check_deck_integrity(board: Board) -> None:
    """Raise AssertionError unless the board holds each of the 52 cards exactly once."""
    ids = [c.id for c in board.all_cards()]
    assert len(ids) == DECK_SIZE, f"Board holds {len(ids)} cards"
    assert len(set(ids)) == DECK_SIZE, "Duplicate card on board"
    objs = {id(c) for c in board.all_cards()}
    assert len(objs) == DECK_SIZE, "Same card object in two places"
