from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


GameResult = Literal["win", "lose", "incomplete"]
SessionStatus = Literal["pending", "active", "completed", "abandoned"]


class CreateSessionReq(BaseModel):
    player: str = Field(..., min_length=1)
    stakeAmount: Decimal = Field(..., gt=0)
    stakeProof: str = Field(..., min_length=1)


class MoveReq(BaseModel):
    fromPile: str
    fromIndex: int = Field(..., ge=0)
    toPile: str


class CompleteReq(BaseModel):
    result: GameResult
    score: int = Field(..., ge=0)


class SessionResp(BaseModel):
    state: Dict[str, Any]


class SessionListResp(BaseModel):
    sessions: List[Dict[str, Any]]
    offset: int
    limit: int


class RewardResp(BaseModel):
    sessionId: str
    player: str
    amount: Decimal
    status: Literal["pending", "confirmed", "failed"]
    ledgerReference: Optional[str] = None
    error: Optional[str] = None


class PlayerStatsResp(BaseModel):
    player: str
    gamesPlayed: int
    gamesWon: int
    currentStreak: int
    bestTimeMs: Optional[int] = None
    totalEarnings: Decimal


class ConfirmRewardReq(BaseModel):
    ledgerReference: str = Field(..., min_length=1)


class FailRewardReq(BaseModel):
    error: str = Field(..., min_length=1)


class LeaderboardEntryResp(BaseModel):
    rank: int
    player: str
    gamesPlayed: int
    gamesWon: int
    winRate: float
    totalEarnings: Decimal


class LeaderboardResp(BaseModel):
    entries: List[LeaderboardEntryResp]
    sortBy: Literal["wins", "win_rate", "earnings", "games"]
    period: Literal["daily", "weekly", "monthly", "all_time"]
    offset: int
    limit: int
