from decimal import Decimal
from typing import Dict, List, Tuple
import random

import pytest

from klondike import (
    Board,
    Card,
    GameSession,
    StateError,
    new_session,
    apply_move,
    draw,
    undo_last_move,
    check_deck_integrity,
    legal_moves,
)


def _snapshot(board: Board) -> Dict[str, List[Tuple[str, bool]]]:
    return {pid: [(c.id, c.face_up) for c in p.cards] for pid, p in board.piles.items()}


def _session(layout: Dict[str, List[Card]]) -> GameSession:
    board = Board()
    for pid, cards in layout.items():
        board.piles[pid].cards = list(cards)
    return GameSession(
        id="s1",
        player="alice",
        stake_amount=Decimal("10"),
        stake_proof="tx-1",
        board=board,
        status="active",
    )


def test_undo_restores_flipped_card():
    s = _session({
        "tableau-0": [Card("clubs", "9", False), Card("hearts", "5", True)],
        "tableau-1": [Card("spades", "6", True)],
    })
    before = _snapshot(s.board)
    move = apply_move(s, "tableau-0", 1, "tableau-1", now=1.0)
    assert move.flipped_card is not None and move.flipped_card.id == "clubs-9"
    assert s.board.piles["tableau-0"].cards[-1].face_up
    assert s.move_count == 1
    undo_last_move(s)
    assert _snapshot(s.board) == before
    assert s.move_count == 0
    assert len(s.history) == 0


def test_undo_multi_card_run():
    s = _session({
        "tableau-0": [Card("spades", "9", True), Card("hearts", "8", True), Card("clubs", "7", True)],
        "tableau-1": [Card("hearts", "10", True)],
    })
    before = _snapshot(s.board)
    apply_move(s, "tableau-0", 0, "tableau-1", now=1.0)
    assert [c.id for c in s.board.piles["tableau-1"].cards] == ["hearts-10", "spades-9", "hearts-8", "clubs-7"]
    assert s.board.piles["tableau-0"].cards == []
    undo_last_move(s)
    assert _snapshot(s.board) == before


def test_undo_draw_and_recycle():
    s = new_session("alice", Decimal("5"), "tx-9", rng=random.Random(11), now=0.0)
    start = _snapshot(s.board)
    top3 = [c.id for c in s.board.stock.cards[-3:]]
    draw(s)
    assert [c.id for c in s.board.waste.cards] == top3
    assert all(c.face_up for c in s.board.waste.cards)
    assert len(s.board.stock.cards) == 21
    for _ in range(7):
        draw(s)
    assert s.board.stock.cards == []
    waste_ids = [c.id for c in s.board.waste.cards]
    before_recycle = _snapshot(s.board)
    draw(s)
    assert s.board.waste.cards == []
    assert [c.id for c in s.board.stock.cards] == list(reversed(waste_ids))
    assert all(not c.face_up for c in s.board.stock.cards)
    check_deck_integrity(s.board)
    undo_last_move(s)
    assert _snapshot(s.board) == before_recycle
    while len(s.history):
        undo_last_move(s)
    assert _snapshot(s.board) == start


def test_undo_with_empty_history():
    s = _session({"tableau-0": [Card("hearts", "K", True)]})
    with pytest.raises(StateError) as ei:
        undo_last_move(s)
    assert ei.value.code == "NOTHING_TO_UNDO"


def test_random_playout_keeps_deck_and_undo_is_inverse():
    rng = random.Random(2024)
    s = new_session("alice", Decimal("5"), "tx-7", rng=random.Random(5), now=0.0)
    for _ in range(400):
        if s.status != "active":
            break
        before = _snapshot(s.board)
        options = legal_moves(s.board)
        if options and rng.random() < 0.7:
            src, idx, dst = rng.choice(options)
            apply_move(s, src, idx, dst, now=1.0)
        elif s.board.stock.cards or s.board.waste.cards:
            draw(s)
        else:
            break
        check_deck_integrity(s.board)
        if s.status == "active" and rng.random() < 0.2:
            undo_last_move(s)
            assert _snapshot(s.board) == before
            check_deck_integrity(s.board)
