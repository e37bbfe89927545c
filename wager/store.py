from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, List, Literal, Optional
import threading

from klondike import GameSession, NotFoundError, ConflictError

RewardStatus = Literal["pending", "confirmed", "failed"]


@dataclass(frozen=True)
class RewardRecord:
    session_id: str
    player: str
    amount: Decimal
    status: RewardStatus = "pending"
    created_at: float = 0.0
    ledger_reference: Optional[str] = None
    error: Optional[str] = None


class SessionStore:
    """In-memory session records plus one mutation lock per session id."""

    def __init__(self) -> None:
        self._sessions: Dict[str, GameSession] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def add(self, session: GameSession) -> None:
        with self._guard:
            if session.id in self._sessions:
                raise ConflictError("SESSION_EXISTS", f"Session {session.id} already exists")
            self._sessions[session.id] = session
            self._locks[session.id] = threading.Lock()

    def get(self, session_id: str) -> GameSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError("SESSION_NOT_FOUND", "Session not found")
        return session

    def lock_for(self, session_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(session_id)
        if lock is None:
            raise NotFoundError("SESSION_NOT_FOUND", "Session not found")
        return lock

    def all(self) -> List[GameSession]:
        with self._guard:
            return list(self._sessions.values())


class RewardBook:
    """Reward records keyed by session id.

    ``create`` is the only way in and is a single check-and-insert under one
    process-wide lock, so a session can never hold two records.
    """

    def __init__(self) -> None:
        self._records: Dict[str, RewardRecord] = {}
        self._lock = threading.Lock()

    def create(self, record: RewardRecord) -> RewardRecord:
        with self._lock:
            if record.session_id in self._records:
                raise ConflictError("REWARD_EXISTS", f"Reward already recorded for {record.session_id}")
            self._records[record.session_id] = record
            return record

    def get(self, session_id: str) -> Optional[RewardRecord]:
        with self._lock:
            return self._records.get(session_id)

    def transition(self, session_id: str, expected: RewardStatus, **changes: object) -> RewardRecord:
        with self._lock:
            rec = self._records.get(session_id)
            if rec is None:
                raise NotFoundError("REWARD_NOT_FOUND", f"No reward for {session_id}")
            if rec.status != expected:
                raise ConflictError("REWARD_SETTLED", f"Reward for {session_id} is already {rec.status}")
            updated = replace(rec, **changes)
            self._records[session_id] = updated
            return updated

    def all(self) -> List[RewardRecord]:
        with self._lock:
            return list(self._records.values())


class ProofRegistry:
    """Remembers which stake proof funded which session."""

    def __init__(self) -> None:
        self._claims: Dict[str, str] = {}
        self._lock = threading.Lock()

    def claim(self, proof: str, session_id: str) -> None:
        with self._lock:
            owner = self._claims.get(proof)
            if owner is not None:
                raise ConflictError("STAKE_PROOF_USED", f"Stake proof already funds session {owner}")
            self._claims[proof] = session_id

    def release(self, proof: str, session_id: str) -> None:
        with self._lock:
            if self._claims.get(proof) == session_id:
                del self._claims[proof]
