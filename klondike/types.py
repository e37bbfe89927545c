from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple, TypeAlias

SUITS: Tuple[str, ...] = ("hearts", "diamonds", "clubs", "spades")
RANKS: Tuple[str, ...] = ("A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K")

# Suit legend (short symbols used in logs and the CLI)
SUIT_SYMBOLS: Dict[str, str] = {
    "hearts": "♥",
    "diamonds": "♦",
    "clubs": "♣",
    "spades": "♠",
}

RED_SUITS = frozenset({"hearts", "diamonds"})

RANK_VALUES: Dict[str, int] = {r: i + 1 for i, r in enumerate(RANKS)}

TABLEAU_COUNT = 7
FOUNDATION_COUNT = 4
DECK_SIZE = 52

PileType = Literal["tableau", "foundation", "stock", "waste"]
SessionStatus = Literal["pending", "active", "completed", "abandoned"]
GameResult = Literal["win", "lose", "incomplete"]
MoveKind: TypeAlias = Literal["move", "draw", "recycle"]

STOCK_ID = "stock"
WASTE_ID = "waste"


def tableau_id(i: int) -> str:
    return f"tableau-{i}"


def foundation_id(i: int) -> str:
    return f"foundation-{i}"


class Card:
    """One physical card. Identity is the object; only ``face_up`` ever changes."""

    __slots__ = ("_suit", "_rank", "face_up")

    def __init__(self, suit: str, rank: str, face_up: bool = False) -> None:
        assert suit in SUITS, f"Unknown suit: {suit}"
        assert rank in RANKS, f"Unknown rank: {rank}"
        self._suit = suit
        self._rank = rank
        self.face_up = face_up

    @property
    def suit(self) -> str:
        return self._suit

    @property
    def rank(self) -> str:
        return self._rank

    @property
    def id(self) -> str:
        return f"{self.suit}-{self.rank}"

    @property
    def value(self) -> int:
        return RANK_VALUES[self.rank]

    @property
    def is_red(self) -> bool:
        return self.suit in RED_SUITS

    def __str__(self) -> str:
        return f"{self.rank}{SUIT_SYMBOLS[self.suit]}"

    def __repr__(self) -> str:
        return f"Card({self.id}, {'up' if self.face_up else 'down'})"


@dataclass
class Pile:
    id: str
    type: PileType
    cards: List[Card] = field(default_factory=list)

    @property
    def top(self) -> Optional[Card]:
        return self.cards[-1] if self.cards else None

    def __len__(self) -> int:
        return len(self.cards)


# Reversible delta of one accepted operation
@dataclass(frozen=True)
class Move:
    kind: MoveKind
    from_pile: str
    from_index: int
    to_pile: str
    moved_cards: Tuple[Card, ...]
    seq: int
    flipped_card: Optional[Card] = None
