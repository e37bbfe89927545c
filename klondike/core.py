from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple, cast
import random
import time
import uuid

from .types import (
    Card,
    Move,
    GameResult,
    SessionStatus,
    STOCK_ID,
    WASTE_ID,
    SUITS,
    RANKS,
)
from .piles import Board, deal, remove_from, append_to
from .rules import validate, draw_run_size
from .scoring import board_score, is_won
from .history import MoveHistory
from .errors import ValidationError, StateError, ConflictError

RESULTS: Tuple[str, ...] = ("win", "lose", "incomplete")
SCHEMA_VERSION = 1


def _append_log(session: "GameSession", msg: str) -> None:
    session.logs.append(msg)


def _now(now: Optional[float]) -> float:
    return time.time() if now is None else now


@dataclass
class GameSession:
    id: str
    player: str
    stake_amount: Decimal
    stake_proof: str
    board: Board
    history: MoveHistory = field(default_factory=MoveHistory)
    status: SessionStatus = "pending"
    result: Optional[GameResult] = None
    move_count: int = 0
    started_at: float = 0.0
    completed_at: Optional[float] = None
    final_score: Optional[int] = None
    reward_issued: bool = False
    draw_count: int = 3
    logs: List[str] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "abandoned")


def _require_active(session: GameSession) -> None:
    if session.status != "active":
        raise StateError("SESSION_NOT_ACTIVE", f"Session {session.id} is {session.status}")


def new_session(
    player: str,
    stake_amount: Decimal,
    stake_proof: str,
    *,
    session_id: Optional[str] = None,
    rng: Optional[random.Random] = None,
    now: Optional[float] = None,
    draw_count: int = 3,
) -> GameSession:
    """Deal a fresh board for an already verified stake and activate it."""
    if not player:
        raise ValidationError("INVALID_PLAYER", "Player identity is required")
    if stake_amount <= 0:
        raise ValidationError("INVALID_STAKE", "Stake must be positive")
    if draw_count < 1:
        raise ValidationError("INVALID_DRAW_COUNT", "Draw count must be at least 1")
    session = GameSession(
        id=session_id or uuid.uuid4().hex,
        player=player,
        stake_amount=stake_amount,
        stake_proof=stake_proof,
        board=deal(rng),
        draw_count=draw_count,
    )
    session.started_at = _now(now)
    session.status = "active"
    _append_log(session, f"START: player={player} stake={stake_amount}")
    return session


def elapsed_ms(session: GameSession, now: Optional[float] = None) -> int:
    end = session.completed_at if session.completed_at is not None else _now(now)
    return max(0, int((end - session.started_at) * 1000))


def current_score(session: GameSession, now: Optional[float] = None) -> int:
    if session.final_score is not None:
        return session.final_score
    return board_score(session.board, elapsed_ms(session, now), session.move_count)


def _finish(session: GameSession, status: SessionStatus, result: Optional[GameResult], score: Optional[int], now: float) -> None:
    session.completed_at = now
    session.final_score = score
    session.result = result
    session.status = status


def apply_move(
    session: GameSession,
    from_pile: str,
    from_index: int,
    to_pile: str,
    now: Optional[float] = None,
) -> Move:
    """Validate and perform one card-run move.

    A move that fills the foundations completes the session with a win in
    the same call.
    """
    _require_active(session)
    board = session.board
    check = validate(board, from_pile, from_index, to_pile)
    if not check:
        raise ValidationError(check.code, check.reason)
    src = board.pile(from_pile)
    dst = board.pile(to_pile)
    run = remove_from(src, from_index)
    append_to(dst, run)
    flipped: Optional[Card] = None
    if src.type == "tableau" and src.top is not None and not src.top.face_up:
        flipped = src.top
        flipped.face_up = True
    move = Move(
        kind="move",
        from_pile=src.id,
        from_index=from_index,
        to_pile=dst.id,
        moved_cards=tuple(run),
        seq=session.history.next_seq(),
        flipped_card=flipped,
    )
    session.history.record(move)
    session.move_count += 1
    _append_log(session, f"MOVE: {src.id}[{from_index}] -> {dst.id} ({' '.join(str(c) for c in run)})")
    if flipped is not None:
        _append_log(session, f"FLIP: {src.id} -> {flipped}")
    if is_won(board):
        ts = _now(now)
        score = board_score(board, max(0, int((ts - session.started_at) * 1000)), session.move_count)
        _finish(session, "completed", "win", score, ts)
        _append_log(session, f"COMPLETE: win score={score}")
    return move


def draw(session: GameSession) -> Move:
    """Turn up to ``draw_count`` stock cards onto the waste, or recycle the waste."""
    _require_active(session)
    board = session.board
    stock, waste = board.stock, board.waste
    if stock.cards:
        n = draw_run_size(stock, session.draw_count)
        idx = len(stock.cards) - n
        run = remove_from(stock, idx)
        for c in run:
            c.face_up = True
        append_to(waste, run)
        move = Move(kind="draw", from_pile=STOCK_ID, from_index=idx, to_pile=WASTE_ID, moved_cards=tuple(run), seq=session.history.next_seq())
        _append_log(session, f"DRAW: {' '.join(str(c) for c in run)}")
    elif waste.cards:
        run = remove_from(waste, 0)
        moved = tuple(run)
        run.reverse()
        for c in run:
            c.face_up = False
        append_to(stock, run)
        move = Move(kind="recycle", from_pile=WASTE_ID, from_index=0, to_pile=STOCK_ID, moved_cards=moved, seq=session.history.next_seq())
        _append_log(session, f"RECYCLE: {len(run)}")
    else:
        raise StateError("NOTHING_TO_DRAW", "Stock and waste are both empty")
    session.history.record(move)
    session.move_count += 1
    return move


def undo_last_move(session: GameSession) -> Move:
    _require_active(session)
    move = session.history.undo(session.board)
    session.move_count = max(0, session.move_count - 1)
    _append_log(session, f"UNDO: #{move.seq} {move.kind}")
    return move


def complete(session: GameSession, result: str, final_score: int, now: Optional[float] = None) -> None:
    _require_active(session)
    if result not in RESULTS:
        raise ValidationError("INVALID_RESULT", f"Result must be one of {', '.join(RESULTS)}")
    if final_score < 0:
        raise ValidationError("INVALID_SCORE", "Score must be non-negative")
    _finish(session, "completed", cast(GameResult, result), int(final_score), _now(now))
    _append_log(session, f"COMPLETE: {result} score={final_score}")


def abandon(session: GameSession, now: Optional[float] = None) -> None:
    _require_active(session)
    _finish(session, "abandoned", None, None, _now(now))
    _append_log(session, "ABANDON")


def mark_reward_issued(session: GameSession) -> None:
    if session.status != "completed" or session.result != "win":
        raise StateError("NO_REWARD", f"Session {session.id} has no reward to issue")
    if session.reward_issued:
        raise ConflictError("REWARD_EXISTS", f"Reward already issued for {session.id}")
    session.reward_issued = True


# --- JSON serialization (pure, no I/O) ---

def _card_to_obj(card: Card) -> Dict[str, object]:
    return {"id": card.id, "suit": card.suit, "rank": card.rank, "faceUp": bool(card.face_up)}


def _obj_to_card(obj: object) -> Card:
    assert isinstance(obj, dict), "Card must be an object"
    suit = obj.get("suit")
    rank = obj.get("rank")
    face_up = obj.get("faceUp")
    assert suit in SUITS, f"Unknown suit: {suit}"
    assert rank in RANKS, f"Unknown rank: {rank}"
    assert isinstance(face_up, bool), "faceUp must be bool"
    return Card(cast(str, suit), cast(str, rank), face_up)


def _move_to_obj(move: Move) -> Dict[str, object]:
    return {
        "seq": move.seq,
        "kind": move.kind,
        "fromPile": move.from_pile,
        "fromIndex": move.from_index,
        "toPile": move.to_pile,
        "movedCards": [c.id for c in move.moved_cards],
        "flippedCard": None if move.flipped_card is None else move.flipped_card.id,
    }


def to_json(session: GameSession, now: Optional[float] = None) -> Dict[str, object]:
    piles_obj: Dict[str, object] = {}
    for pid, pile in session.board.piles.items():
        piles_obj[pid] = {"type": pile.type, "cards": [_card_to_obj(c) for c in pile.cards]}
    return {
        "schemaVersion": SCHEMA_VERSION,
        "id": session.id,
        "player": session.player,
        "stakeAmount": str(session.stake_amount),
        "stakeProof": session.stake_proof,
        "status": session.status,
        "result": session.result,
        "score": current_score(session, now),
        "finalScore": session.final_score,
        "moveCount": session.move_count,
        "elapsedMs": elapsed_ms(session, now),
        "startedAt": session.started_at,
        "completedAt": session.completed_at,
        "isWon": is_won(session.board),
        "rewardIssued": session.reward_issued,
        "drawCount": session.draw_count,
        "piles": piles_obj,
        "moveHistory": [_move_to_obj(m) for m in session.history.moves],
        "logs": list(session.logs),
    }


def from_json(data: Dict[str, Any]) -> GameSession:
    assert isinstance(data, dict), "Data must be a dict"
    assert data.get("schemaVersion") == SCHEMA_VERSION, "Unsupported schemaVersion"
    status = data.get("status")
    assert status in ("pending", "active", "completed", "abandoned"), f"Invalid status: {status}"
    result = data.get("result")
    assert result is None or result in RESULTS, f"Invalid result: {result}"
    try:
        stake = Decimal(str(data.get("stakeAmount")))
    except InvalidOperation:
        raise AssertionError("Invalid stakeAmount")

    board = Board()
    by_id: Dict[str, Card] = {}
    piles_obj = data.get("piles")
    assert isinstance(piles_obj, dict), "piles must be a mapping"
    for pid, pobj in piles_obj.items():
        pile = board.pile(pid)
        assert isinstance(pobj, dict) and pobj.get("type") == pile.type, f"Pile type mismatch for {pid}"
        for cobj in pobj.get("cards", []):
            card = _obj_to_card(cobj)
            assert card.id not in by_id, f"Duplicate card {card.id}"
            by_id[card.id] = card
            pile.cards.append(card)

    moves: List[Move] = []
    for mobj in data.get("moveHistory", []):
        flipped_id = mobj.get("flippedCard")
        moves.append(Move(
            kind=mobj["kind"],
            from_pile=mobj["fromPile"],
            from_index=int(mobj["fromIndex"]),
            to_pile=mobj["toPile"],
            moved_cards=tuple(by_id[cid] for cid in mobj["movedCards"]),
            seq=int(mobj["seq"]),
            flipped_card=None if flipped_id is None else by_id[flipped_id],
        ))

    final_score = data.get("finalScore")
    completed_at = data.get("completedAt")
    return GameSession(
        id=str(data["id"]),
        player=str(data["player"]),
        stake_amount=stake,
        stake_proof=str(data.get("stakeProof", "")),
        board=board,
        history=MoveHistory.from_moves(moves),
        status=status,
        result=result,
        move_count=int(data.get("moveCount", 0)),
        started_at=float(data.get("startedAt", 0.0)),
        completed_at=None if completed_at is None else float(completed_at),
        final_score=None if final_score is None else int(final_score),
        reward_issued=bool(data.get("rewardIssued", False)),
        draw_count=int(data.get("drawCount", 3)),
        logs=[str(x) for x in data.get("logs", [])],
    )
