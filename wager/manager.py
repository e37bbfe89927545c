from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, List, Literal, Optional
import logging
import random
import threading
import time
import uuid

import klondike
from klondike import (
    GameSession,
    ValidationError,
    ConflictError,
    ExternalVerificationError,
)

from .config import ServiceConfig
from .settlement import SettlementCoordinator
from .store import SessionStore, RewardRecord

logger = logging.getLogger(__name__)


@dataclass
class PlayerStats:
    player: str
    games_played: int
    games_won: int
    current_streak: int
    best_time_ms: Optional[int]
    total_earnings: Decimal


@dataclass
class LeaderboardEntry:
    rank: int
    player: str
    games_played: int
    games_won: int
    win_rate: float  # percent, 0..100
    total_earnings: Decimal


LeaderboardSort = Literal["wins", "win_rate", "earnings", "games"]
LeaderboardPeriod = Literal["daily", "weekly", "monthly", "all_time"]

_DAY_SECONDS = 24 * 60 * 60


def _period_start(period: str, now: float) -> float:
    """Earliest ``started_at`` (epoch seconds, local calendar) counted in ``period``."""
    today = datetime.fromtimestamp(now).replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "daily":
        return today.timestamp()
    if period == "weekly":
        return now - 7 * _DAY_SECONDS
    if period == "monthly":
        return today.replace(day=1).timestamp()
    if period == "all_time":
        return 0.0
    raise ValidationError("INVALID_PERIOD", f"Unknown leaderboard period: {period}")


def _parse_stake(raw: object) -> Decimal:
    try:
        return Decimal(str(raw))
    except InvalidOperation:
        raise ValidationError("INVALID_STAKE", f"Stake is not a number: {raw!r}")


class SessionManager:
    """Entry point for every session operation, addressed by session id.

    Mutations of one session run under that session's lock; different
    sessions never share mutable state.
    """

    def __init__(
        self,
        settlement: SettlementCoordinator,
        store: Optional[SessionStore] = None,
        config: Optional[ServiceConfig] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settlement = settlement
        self.store = store or SessionStore()
        self.config = config or ServiceConfig()
        self._clock = clock
        self._rng = random.Random(self.config.deal_seed)
        self._rng_lock = threading.Lock()

    # --- creation ---

    def create_session(self, player: str, stake_amount: object, stake_proof: str) -> GameSession:
        stake = _parse_stake(stake_amount)
        if not stake.is_finite() or stake <= 0:
            raise ValidationError("INVALID_STAKE", "Stake must be positive")
        if stake > self.config.max_stake:
            raise ValidationError("INVALID_STAKE", f"Stake exceeds maximum of {self.config.max_stake}")
        if not player:
            raise ValidationError("INVALID_PLAYER", "Player identity is required")

        if not self.settlement.verify_stake(player, stake, stake_proof):
            logger.info("Stake verification failed for player %s", player)
            raise ExternalVerificationError("STAKE_UNVERIFIED", "Stake proof does not match a payment from this player")

        session_id = uuid.uuid4().hex
        self.settlement.claim_proof(stake_proof, session_id)
        try:
            with self._rng_lock:
                rng = random.Random(self._rng.getrandbits(64))
            session = klondike.new_session(
                player,
                stake,
                stake_proof,
                session_id=session_id,
                rng=rng,
                now=self._clock(),
                draw_count=self.config.draw_count,
            )
            self.store.add(session)
        except Exception:
            self.settlement.release_proof(stake_proof, session_id)
            raise
        logger.info("Session %s created for %s (stake %s)", session_id, player, stake)
        return session

    # --- reads ---

    def get_session(self, session_id: str) -> GameSession:
        return self.store.get(session_id)

    def list_sessions(
        self,
        player: Optional[str] = None,
        status: Optional[str] = None,
        result: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[GameSession]:
        out = [
            s for s in self.store.all()
            if (player is None or s.player == player)
            and (status is None or s.status == status)
            and (result is None or s.result == result)
        ]
        out.sort(key=lambda s: s.started_at, reverse=True)
        return out[offset:offset + limit]

    def list_snapshots(
        self,
        player: Optional[str] = None,
        status: Optional[str] = None,
        result: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Dict[str, object]]:
        sessions = self.list_sessions(player=player, status=status, result=result, limit=limit, offset=offset)
        return [self.snapshot(s.id) for s in sessions]

    def get_reward(self, session_id: str) -> RewardRecord:
        self.store.get(session_id)
        return self.settlement.get_reward(session_id)

    def _confirmed_earnings(self, player: str, since: float = 0.0) -> Decimal:
        return sum(
            (
                r.amount
                for r in self.settlement.list_rewards(player)
                if r.status == "confirmed" and r.created_at >= since
            ),
            Decimal("0"),
        )

    def leaderboard(
        self,
        sort_by: str = "wins",
        period: str = "all_time",
        limit: int = 50,
        offset: int = 0,
    ) -> List[LeaderboardEntry]:
        """Players ranked over completed sessions started within ``period``.

        Players without a completed session in the period are left out.
        Ties keep player-name order.
        """
        since = _period_start(period, self._clock())
        played: Dict[str, List[GameSession]] = {}
        for s in self.store.all():
            if s.status == "completed" and s.started_at >= since:
                played.setdefault(s.player, []).append(s)

        rows = []
        for player in sorted(played):
            games = played[player]
            won = sum(1 for s in games if s.result == "win")
            rows.append(LeaderboardEntry(
                rank=0,
                player=player,
                games_played=len(games),
                games_won=won,
                win_rate=won * 100.0 / len(games),
                total_earnings=self._confirmed_earnings(player, since),
            ))

        keys = {
            "wins": lambda e: e.games_won,
            "win_rate": lambda e: e.win_rate,
            "earnings": lambda e: e.total_earnings,
            "games": lambda e: e.games_played,
        }
        if sort_by not in keys:
            raise ValidationError("INVALID_SORT", f"Unknown leaderboard sort: {sort_by}")
        rows.sort(key=keys[sort_by], reverse=True)
        for i, entry in enumerate(rows):
            entry.rank = i + 1
        return rows[offset:offset + limit]

    def player_stats(self, player: str) -> PlayerStats:
        finished = sorted(
            (s for s in self.store.all() if s.player == player and s.status == "completed"),
            key=lambda s: s.completed_at or 0.0,
        )
        wins = [s for s in finished if s.result == "win"]
        streak = 0
        for s in reversed(finished):
            if s.result != "win":
                break
            streak += 1
        times = [klondike.elapsed_ms(s) for s in wins]
        earnings = self._confirmed_earnings(player)
        return PlayerStats(
            player=player,
            games_played=len(finished),
            games_won=len(wins),
            current_streak=streak,
            best_time_ms=min(times) if times else None,
            total_earnings=earnings,
        )

    # --- mutations ---

    def _mutate(self, session_id: str, op: Callable[[GameSession], object]) -> GameSession:
        lock = self.store.lock_for(session_id)
        with lock:
            session = self.store.get(session_id)
            op(session)
            self._settle(session)
            return session

    def _settle(self, session: GameSession) -> None:
        if session.status != "completed" or session.result != "win" or session.reward_issued:
            return
        amount = self.settlement.reward_amount(session.stake_amount, session.result)
        try:
            self.settlement.issue_reward(session.id, session.player, amount)
        except ConflictError:
            logger.warning("Reward for session %s was already recorded", session.id)
        klondike.mark_reward_issued(session)

    def apply_move(self, session_id: str, from_pile: str, from_index: int, to_pile: str) -> GameSession:
        return self._mutate(
            session_id,
            lambda s: klondike.apply_move(s, from_pile, from_index, to_pile, now=self._clock()),
        )

    def draw(self, session_id: str) -> GameSession:
        return self._mutate(session_id, klondike.draw)

    def undo(self, session_id: str) -> GameSession:
        return self._mutate(session_id, klondike.undo_last_move)

    def complete(self, session_id: str, result: str, score: int) -> GameSession:
        session = self._mutate(
            session_id,
            lambda s: klondike.complete(s, result, score, now=self._clock()),
        )
        logger.info("Session %s completed: %s (%s)", session_id, result, score)
        return session

    def abandon(self, session_id: str) -> GameSession:
        session = self._mutate(session_id, lambda s: klondike.abandon(s, now=self._clock()))
        logger.info("Session %s abandoned", session_id)
        return session

    # --- reward settlement ---

    def confirm_reward(self, session_id: str, ledger_reference: str) -> RewardRecord:
        if not ledger_reference:
            raise ValidationError("INVALID_REFERENCE", "Ledger reference is required")
        self.store.get(session_id)
        return self.settlement.confirm_reward(session_id, ledger_reference)

    def fail_reward(self, session_id: str, error: str) -> RewardRecord:
        if not error:
            raise ValidationError("INVALID_ERROR", "Failure reason is required")
        self.store.get(session_id)
        return self.settlement.fail_reward(session_id, error)

    def snapshot(self, session_id: str) -> Dict[str, object]:
        lock = self.store.lock_for(session_id)
        with lock:
            return klondike.to_json(self.store.get(session_id), now=self._clock())
