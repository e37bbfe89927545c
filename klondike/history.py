from __future__ import annotations

from typing import List, Optional

from .types import Move
from .piles import Board, remove_from, append_to
from .errors import StateError


class MoveHistory:
    """Append-only stack of reversible move deltas.

    Each entry stores only the cards that travelled plus the tableau card the
    move turned over, so undo costs O(moved cards) instead of a board copy.
    """

    def __init__(self) -> None:
        self._moves: List[Move] = []
        self._next_seq: int = 1

    def __len__(self) -> int:
        return len(self._moves)

    @property
    def moves(self) -> List[Move]:
        return list(self._moves)

    @property
    def last(self) -> Optional[Move]:
        return self._moves[-1] if self._moves else None

    def next_seq(self) -> int:
        return self._next_seq

    def record(self, move: Move) -> None:
        assert move.seq == self._next_seq, f"Out of order move seq {move.seq}"
        self._moves.append(move)
        self._next_seq += 1

    def undo(self, board: Board) -> Move:
        if not self._moves:
            raise StateError("NOTHING_TO_UNDO", "No moves to undo")
        move = self._moves.pop()
        self._next_seq -= 1
        src = board.pile(move.from_pile)
        dst = board.pile(move.to_pile)
        n = len(move.moved_cards)
        run = remove_from(dst, len(dst.cards) - n)
        if move.kind == "move":
            assert all(a is b for a, b in zip(run, move.moved_cards)), "History out of sync with board"
            if move.flipped_card is not None:
                move.flipped_card.face_up = False
            append_to(src, run)
        elif move.kind == "draw":
            for c in run:
                c.face_up = False
            append_to(src, run)
        elif move.kind == "recycle":
            run.reverse()
            for c in run:
                c.face_up = True
            append_to(src, run)
        else:
            raise ValueError(f"Unknown move kind: {move.kind}")
        return move

    @classmethod
    def from_moves(cls, moves: List[Move]) -> "MoveHistory":
        h = cls()
        for m in moves:
            h.record(m)
        return h
