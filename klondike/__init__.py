from .types import Card, Pile, Move, SUITS, RANKS, SUIT_SYMBOLS, STOCK_ID, WASTE_ID, tableau_id, foundation_id
from .errors import (
    SolitaireError,
    ValidationError,
    StateError,
    NotFoundError,
    ConflictError,
    ExternalVerificationError,
)
from .piles import Board, new_deck, deal, remove_from, append_to, check_deck_integrity
from .rules import MoveCheck, validate, can_place_on_tableau, can_place_on_foundation, is_valid_run, legal_moves
from .scoring import compute_score, board_score, is_won
from .history import MoveHistory
from .core import (
    GameSession,
    new_session,
    apply_move,
    draw,
    undo_last_move,
    complete,
    abandon,
    mark_reward_issued,
    current_score,
    elapsed_ms,
    to_json,
    from_json,
)

__all__ = [
    "Card",
    "Pile",
    "Move",
    "SUITS",
    "RANKS",
    "SUIT_SYMBOLS",
    "STOCK_ID",
    "WASTE_ID",
    "tableau_id",
    "foundation_id",
    "SolitaireError",
    "ValidationError",
    "StateError",
    "NotFoundError",
    "ConflictError",
    "ExternalVerificationError",
    "Board",
    "new_deck",
    "deal",
    "remove_from",
    "append_to",
    "check_deck_integrity",
    "MoveCheck",
    "validate",
    "can_place_on_tableau",
    "can_place_on_foundation",
    "is_valid_run",
    "legal_moves",
    "compute_score",
    "board_score",
    "is_won",
    "MoveHistory",
    "GameSession",
    "new_session",
    "apply_move",
    "draw",
    "undo_last_move",
    "complete",
    "abandon",
    "mark_reward_issued",
    "current_score",
    "elapsed_ms",
    "to_json",
    "from_json",
]
