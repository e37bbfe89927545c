from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .types import Card, Pile
from .piles import Board


@dataclass(frozen=True)
class MoveCheck:
    ok: bool
    code: str = ""
    reason: str = ""

    def __bool__(self) -> bool:
        return self.ok


ACCEPTED = MoveCheck(True)


def _reject(code: str, reason: str) -> MoveCheck:
    return MoveCheck(False, code, reason)


def can_place_on_tableau(card: Card, target: Optional[Card]) -> MoveCheck:
    if target is None:
        if card.rank != "K":
            return _reject("KING_ONLY", "only a King can go on an empty tableau pile")
        return ACCEPTED
    if card.value != target.value - 1:
        return _reject("RANK_MISMATCH", f"{card} is not one below {target}")
    if card.is_red == target.is_red:
        return _reject("SAME_COLOR", "same color")
    return ACCEPTED


def can_place_on_foundation(card: Card, foundation: Pile) -> MoveCheck:
    top = foundation.top
    if top is None:
        if card.rank != "A":
            return _reject("ACE_ONLY", "only an Ace can start a foundation")
        return ACCEPTED
    if card.suit != top.suit:
        return _reject("SUIT_MISMATCH", "suit mismatch")
    if card.value != top.value + 1:
        return _reject("RANK_MISMATCH", f"{card} does not follow {top}")
    return ACCEPTED


def is_valid_run(cards: Sequence[Card]) -> bool:
    """Face-up, strictly descending by one, alternating colour."""
    if not cards or not cards[0].face_up:
        return False
    for upper, lower in zip(cards, cards[1:]):
        if not lower.face_up:
            return False
        # Same predicate as stacking a single card onto a tableau top
        if not can_place_on_tableau(lower, upper):
            return False
    return True


def validate(board: Board, from_pile: str, from_index: int, to_pile: str) -> MoveCheck:
    """Decide whether moving ``from_pile[from_index:]`` onto ``to_pile`` is legal.

    Pure: the board is never touched. Unknown pile ids raise NotFoundError.
    """
    src = board.pile(from_pile)
    dst = board.pile(to_pile)
    if src.id == dst.id:
        return _reject("SAME_PILE", "source and target are the same pile")
    if from_index < 0 or from_index >= len(src.cards):
        return _reject("INVALID_INDEX", f"no card at {src.id}[{from_index}]")
    card = src.cards[from_index]
    if not card.face_up:
        return _reject("FACE_DOWN", "cannot move a face-down card")
    if dst.type in ("stock", "waste"):
        return _reject("INVALID_TARGET", f"cards cannot be moved onto {dst.type}")
    if src.type == "stock":
        return _reject("INVALID_SOURCE", "stock cards are only taken by drawing")

    is_top = from_index == len(src.cards) - 1
    if not is_top:
        if src.type != "tableau":
            return _reject("NOT_TOP_CARD", f"only the top card of {src.type} can move")
        if not is_valid_run(src.cards[from_index:]):
            return _reject("NOT_A_RUN", "cards above are not a descending alternating run")

    if dst.type == "tableau":
        return can_place_on_tableau(card, dst.top)
    # foundation
    if not is_top:
        return _reject("NOT_TOP_CARD", "only a single card can go to a foundation")
    return can_place_on_foundation(card, dst)


def draw_run_size(stock: Pile, draw_count: int = 3) -> int:
    return min(draw_count, len(stock.cards))


def legal_moves(board: Board) -> List[Tuple[str, int, str]]:
    """All accepted (from_pile, from_index, to_pile) triples on this board."""
    out: List[Tuple[str, int, str]] = []
    for src in board.piles.values():
        if src.type == "stock":
            continue
        for idx, card in enumerate(src.cards):
            if not card.face_up:
                continue
            for dst in board.piles.values():
                if dst.type in ("stock", "waste") or dst.id == src.id:
                    continue
                if validate(board, src.id, idx, dst.id):
                    out.append((src.id, idx, dst.id))
    return out
