from __future__ import annotations

from .types import DECK_SIZE
from .piles import Board

FOUNDATION_CARD_POINTS = 10
TIME_BONUS_CAP = 1000
MOVE_PENALTY = 1


def compute_score(foundation_cards: int, elapsed_ms: int, move_count: int) -> int:
    time_bonus = max(0, TIME_BONUS_CAP - elapsed_ms // 1000)
    raw = FOUNDATION_CARD_POINTS * foundation_cards + time_bonus - MOVE_PENALTY * move_count
    return max(0, raw)


def board_score(board: Board, elapsed_ms: int, move_count: int) -> int:
    return compute_score(board.foundation_count(), elapsed_ms, move_count)


def is_won(board: Board) -> bool:
    return board.foundation_count() == DECK_SIZE
