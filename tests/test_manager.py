from decimal import Decimal
from typing import List
import itertools
import threading

import pytest

from klondike import (
    Board,
    Card,
    SUITS,
    RANKS,
    StateError,
    ValidationError,
    ConflictError,
    ExternalVerificationError,
    NotFoundError,
    check_deck_integrity,
    foundation_id,
)
from wager import InMemoryLedger, ServiceConfig, SessionManager, SettlementCoordinator


def _manager(*transfers: tuple) -> SessionManager:
    ledger = InMemoryLedger()
    for ref, player, amount in transfers:
        ledger.add_transfer(ref, player, Decimal(amount))
    ticks = itertools.count(1)
    return SessionManager(
        SettlementCoordinator(ledger),
        config=ServiceConfig(deal_seed=7),
        clock=lambda: float(next(ticks)),
    )


def _near_won_board() -> Board:
    board = Board()
    for i, suit in enumerate(SUITS):
        ranks = RANKS if suit != "spades" else RANKS[:-1]
        board.piles[foundation_id(i)].cards = [Card(suit, r, True) for r in ranks]
    board.piles["tableau-0"].cards = [Card("spades", "K", True)]
    return board


def test_create_session_after_verified_stake():
    mgr = _manager(("tx-1", "alice", "10"))
    s = mgr.create_session("alice", "10", "tx-1")
    assert s.status == "active"
    assert s.stake_amount == Decimal("10")
    assert mgr.get_session(s.id) is s
    check_deck_integrity(s.board)


def test_unverified_stake_creates_nothing():
    mgr = _manager(("tx-1", "alice", "10"))
    with pytest.raises(ExternalVerificationError) as ei:
        mgr.create_session("alice", "25", "tx-1")
    assert ei.value.code == "STAKE_UNVERIFIED"
    with pytest.raises(ExternalVerificationError):
        mgr.create_session("mallory", "10", "tx-1")
    assert mgr.list_sessions() == []
    # Proof was never claimed, so the honest request still works
    assert mgr.create_session("alice", "10", "tx-1").status == "active"


def test_stake_bounds():
    mgr = _manager(("tx-1", "alice", "20000"))
    with pytest.raises(ValidationError):
        mgr.create_session("alice", "0", "tx-1")
    with pytest.raises(ValidationError):
        mgr.create_session("alice", "abc", "tx-1")
    with pytest.raises(ValidationError):
        mgr.create_session("alice", "20000", "tx-1")


def test_stake_proof_cannot_be_replayed():
    mgr = _manager(("tx-1", "alice", "10"))
    mgr.create_session("alice", "10", "tx-1")
    with pytest.raises(ConflictError):
        mgr.create_session("alice", "10", "tx-1")
    assert len(mgr.list_sessions(player="alice")) == 1


def test_unknown_session():
    mgr = _manager()
    with pytest.raises(NotFoundError):
        mgr.get_session("missing")
    with pytest.raises(NotFoundError):
        mgr.draw("missing")


def test_concurrent_complete_single_winner_single_reward():
    mgr = _manager(("tx-1", "alice", "10"))
    s = mgr.create_session("alice", "10", "tx-1")
    n = 8
    barrier = threading.Barrier(n)
    successes: List[str] = []
    failures: List[str] = []
    lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        try:
            mgr.complete(s.id, "win", 1200)
            with lock:
                successes.append("ok")
        except StateError as e:
            with lock:
                failures.append(e.code)

    threads = [threading.Thread(target=worker) for _ in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(successes) == 1
    assert failures == ["SESSION_NOT_ACTIVE"] * (n - 1)
    session = mgr.get_session(s.id)
    assert session.status == "completed"
    assert session.final_score == 1200
    assert session.reward_issued
    rewards = mgr.settlement.list_rewards()
    assert len(rewards) == 1
    assert rewards[0].session_id == s.id
    assert rewards[0].amount == Decimal("20")


def test_lose_and_abandon_issue_no_reward():
    mgr = _manager(("tx-1", "alice", "10"), ("tx-2", "alice", "10"))
    a = mgr.create_session("alice", "10", "tx-1")
    b = mgr.create_session("alice", "10", "tx-2")
    mgr.complete(a.id, "lose", 30)
    mgr.abandon(b.id)
    assert mgr.settlement.list_rewards() == []
    with pytest.raises(NotFoundError):
        mgr.get_reward(a.id)
    assert not mgr.get_session(a.id).reward_issued


def test_auto_win_issues_reward():
    mgr = _manager(("tx-1", "alice", "10"))
    s = mgr.create_session("alice", "10", "tx-1")
    s.board = _near_won_board()
    mgr.apply_move(s.id, "tableau-0", 0, "foundation-3")
    assert s.status == "completed"
    assert s.result == "win"
    rec = mgr.get_reward(s.id)
    assert rec.amount == Decimal("20")
    assert rec.status == "pending"
    with pytest.raises(StateError):
        mgr.complete(s.id, "win", 1200)
    assert len(mgr.settlement.list_rewards()) == 1


def test_move_draw_undo_through_manager():
    mgr = _manager(("tx-1", "alice", "10"))
    s = mgr.create_session("alice", "10", "tx-1")
    mgr.draw(s.id)
    assert len(s.board.waste.cards) == 3
    assert s.move_count == 1
    mgr.undo(s.id)
    assert s.board.waste.cards == []
    assert s.move_count == 0
    with pytest.raises(StateError):
        mgr.undo(s.id)


def test_player_stats_and_listing():
    mgr = _manager(("tx-1", "alice", "10"), ("tx-2", "alice", "5"), ("tx-3", "alice", "10"), ("tx-4", "bob", "1"))
    a = mgr.create_session("alice", "10", "tx-1")
    b = mgr.create_session("alice", "5", "tx-2")
    c = mgr.create_session("alice", "10", "tx-3")
    mgr.create_session("bob", "1", "tx-4")
    mgr.complete(a.id, "lose", 10)
    mgr.complete(b.id, "win", 900)
    mgr.complete(c.id, "win", 950)
    st = mgr.player_stats("alice")
    assert st.games_played == 3
    assert st.games_won == 2
    assert st.current_streak == 2
    # pending rewards are not earnings yet
    assert st.total_earnings == Decimal("0")
    assert st.best_time_ms is not None
    mgr.confirm_reward(b.id, "payout-b")
    mgr.fail_reward(c.id, "rpc timeout")
    assert mgr.player_stats("alice").total_earnings == Decimal("10")
    wins = mgr.list_sessions(player="alice", result="win")
    assert {x.id for x in wins} == {b.id, c.id}
    assert len(mgr.list_sessions(status="active")) == 1
    assert len(mgr.list_sessions(player="alice", limit=1)) == 1


def test_reward_confirm_and_fail_through_manager():
    mgr = _manager(("tx-1", "alice", "10"), ("tx-2", "alice", "10"), ("tx-3", "alice", "10"))
    a = mgr.create_session("alice", "10", "tx-1")
    b = mgr.create_session("alice", "10", "tx-2")
    c = mgr.create_session("alice", "10", "tx-3")
    mgr.complete(a.id, "win", 1000)
    mgr.complete(b.id, "win", 1000)
    mgr.complete(c.id, "lose", 10)

    rec = mgr.confirm_reward(a.id, "payout-a")
    assert rec.status == "confirmed"
    assert mgr.get_reward(a.id).ledger_reference == "payout-a"
    with pytest.raises(ConflictError) as ei:
        mgr.fail_reward(a.id, "too late")
    assert ei.value.code == "REWARD_SETTLED"

    assert mgr.fail_reward(b.id, "rpc timeout").status == "failed"
    with pytest.raises(ConflictError):
        mgr.confirm_reward(b.id, "payout-b")

    with pytest.raises(NotFoundError) as ei2:
        mgr.confirm_reward(c.id, "payout-c")
    assert ei2.value.code == "REWARD_NOT_FOUND"
    with pytest.raises(NotFoundError) as ei3:
        mgr.confirm_reward("missing", "payout-x")
    assert ei3.value.code == "SESSION_NOT_FOUND"
    with pytest.raises(ValidationError):
        mgr.confirm_reward(a.id, "")


def test_leaderboard_sorting_and_paging():
    mgr = _manager(
        ("tx-1", "alice", "10"), ("tx-2", "alice", "10"), ("tx-3", "alice", "10"),
        ("tx-4", "bob", "50"), ("tx-5", "bob", "50"),
        ("tx-6", "carol", "1"),
    )
    a1 = mgr.create_session("alice", "10", "tx-1")
    a2 = mgr.create_session("alice", "10", "tx-2")
    a3 = mgr.create_session("alice", "10", "tx-3")
    b1 = mgr.create_session("bob", "50", "tx-4")
    b2 = mgr.create_session("bob", "50", "tx-5")
    mgr.create_session("carol", "1", "tx-6")  # never completed
    mgr.complete(a1.id, "win", 900)
    mgr.complete(a2.id, "win", 900)
    mgr.complete(a3.id, "lose", 10)
    mgr.complete(b1.id, "win", 900)
    mgr.complete(b2.id, "incomplete", 10)
    mgr.confirm_reward(b1.id, "payout-b1")

    by_wins = mgr.leaderboard(sort_by="wins")
    assert [e.player for e in by_wins] == ["alice", "bob"]
    assert [e.rank for e in by_wins] == [1, 2]
    assert by_wins[0].games_played == 3
    assert by_wins[0].games_won == 2
    assert by_wins[1].win_rate == pytest.approx(50.0)

    by_earnings = mgr.leaderboard(sort_by="earnings")
    assert [e.player for e in by_earnings] == ["bob", "alice"]
    assert by_earnings[0].total_earnings == Decimal("100")
    assert by_earnings[1].total_earnings == Decimal("0")

    assert [e.player for e in mgr.leaderboard(sort_by="win_rate")] == ["alice", "bob"]
    assert [e.player for e in mgr.leaderboard(sort_by="games")] == ["alice", "bob"]

    page = mgr.leaderboard(sort_by="wins", limit=1, offset=1)
    assert len(page) == 1
    assert page[0].player == "bob"
    assert page[0].rank == 2

    with pytest.raises(ValidationError):
        mgr.leaderboard(sort_by="luck")
    with pytest.raises(ValidationError):
        mgr.leaderboard(period="yearly")


def test_leaderboard_period_excludes_old_sessions():
    ledger = InMemoryLedger()
    ledger.add_transfer("tx-1", "alice", Decimal("10"))
    ledger.add_transfer("tx-2", "bob", Decimal("10"))
    now = [1_700_000_000.0]
    mgr = SessionManager(SettlementCoordinator(ledger), config=ServiceConfig(deal_seed=7), clock=lambda: now[0])
    old = mgr.create_session("alice", "10", "tx-1")
    mgr.complete(old.id, "win", 900)
    now[0] += 30 * 24 * 60 * 60
    recent = mgr.create_session("bob", "10", "tx-2")
    mgr.complete(recent.id, "lose", 10)

    assert [e.player for e in mgr.leaderboard(period="weekly")] == ["bob"]
    assert {e.player for e in mgr.leaderboard(period="all_time")} == {"alice", "bob"}


def test_listing_snapshots_never_see_a_half_applied_draw():
    mgr = _manager(("tx-1", "alice", "10"))
    s = mgr.create_session("alice", "10", "tx-1")
    stop = threading.Event()
    errors: List[Exception] = []

    def churn() -> None:
        try:
            while not stop.is_set():
                mgr.draw(s.id)
                mgr.undo(s.id)
        except Exception as e:
            errors.append(e)

    worker = threading.Thread(target=churn)
    worker.start()
    counts = []
    try:
        for _ in range(300):
            for state in mgr.list_snapshots(player="alice"):
                counts.append(sum(len(p["cards"]) for p in state["piles"].values()))
    finally:
        stop.set()
        worker.join()
    assert not errors
    assert counts
    assert all(n == 52 for n in counts)
