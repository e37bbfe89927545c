from __future__ import annotations

from decimal import Decimal
from typing import List, Optional
import logging

from klondike import (
    Card,
    GameSession,
    SolitaireError,
    SUIT_SYMBOLS,
    current_score,
    legal_moves,
)
from wager import InMemoryLedger, ServiceConfig, SessionManager, SettlementCoordinator


# Local play defaults
PLAYER: str = "local-player"
STAKE: Decimal = Decimal("10")
STAKE_PROOF: str = "local-stake-0001"


def print_legend() -> None:
    items = ", ".join(f"{v}={k}" for k, v in SUIT_SYMBOLS.items())
    print(f"Legend: {items}; ## = face-down")
    print("Commands: d (draw), m FROM INDEX TO (move), u (undo), h (hint), c (give up), q (abandon)")


def fmt_card(card: Card) -> str:
    return str(card) if card.face_up else "##"


def print_board(session: GameSession) -> None:
    board = session.board
    stock = board.stock
    waste = board.waste
    top_waste = fmt_card(waste.cards[-1]) if waste.cards else "--"
    print(f"--- stock: {len(stock.cards)} | waste: {top_waste} ({len(waste.cards)}) ---")
    found: List[str] = []
    for p in board.foundations():
        found.append(f"{p.id}: {fmt_card(p.cards[-1]) if p.cards else '--'}")
    print("   ".join(found))
    for p in board.tableau():
        cards = " ".join(fmt_card(c) for c in p.cards) or "(empty)"
        print(f"{p.id}: {cards}")
    print(f"moves: {session.move_count}  score: {current_score(session)}")
    print()


def drain_logs(session: GameSession, seen: int) -> int:
    for line in session.logs[seen:]:
        print(line)
    return len(session.logs)


def ask_command() -> List[str]:
    while True:
        s = input("> ").strip().split()
        if s:
            return s
        print("Please enter a command.")


def parse_move(parts: List[str]) -> Optional[tuple]:
    if len(parts) != 4:
        print("Usage: m FROM INDEX TO (e.g. m tableau-3 4 foundation-0)")
        return None
    try:
        idx = int(parts[2])
    except ValueError:
        print("INDEX must be an integer.")
        return None
    return (parts[1], idx, parts[3])


def play(mgr: SessionManager, session_id: str) -> None:
    seen = 0
    while True:
        session = mgr.get_session(session_id)
        seen = drain_logs(session, seen)
        if session.status != "active":
            break
        print_board(session)
        parts = ask_command()
        cmd = parts[0].lower()
        try:
            if cmd == "d":
                mgr.draw(session_id)
            elif cmd == "m":
                mv = parse_move(parts)
                if mv is not None:
                    mgr.apply_move(session_id, mv[0], mv[1], mv[2])
            elif cmd == "u":
                mgr.undo(session_id)
            elif cmd == "h":
                hints = legal_moves(session.board)
                if not hints:
                    print("No card moves; try drawing.")
                for src, idx, dst in hints[:5]:
                    print(f"  m {src} {idx} {dst}")
            elif cmd == "c":
                mgr.complete(session_id, "lose", current_score(session))
            elif cmd == "q":
                mgr.abandon(session_id)
            else:
                print("Unknown command.")
        except SolitaireError as e:
            print(f"Rejected [{e.code}]: {e.message}")


def main() -> None:
    logging.basicConfig(level=logging.WARNING)
    print("KLONDIKE — Console Table (local ledger)")
    print_legend()
    ledger = InMemoryLedger()
    ledger.add_transfer(STAKE_PROOF, PLAYER, STAKE)
    settlement = SettlementCoordinator(ledger)
    mgr = SessionManager(settlement, config=ServiceConfig())
    session = mgr.create_session(PLAYER, STAKE, STAKE_PROOF)
    print(f"Session {session.id}: staked {STAKE}")
    play(mgr, session.id)

    session = mgr.get_session(session.id)
    print("\n=== Game Over ===")
    print_board(session)
    print(f"Status: {session.status}  result: {session.result or '-'}")
    if session.reward_issued:
        rec = mgr.get_reward(session.id)
        print(f"Reward: {rec.amount} ({rec.status})")
    else:
        print("No reward.")


if __name__ == "__main__":
    main()
