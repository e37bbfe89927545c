from __future__ import annotations

from typing import Dict, Optional
import logging

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from klondike import (
    SolitaireError,
    ValidationError,
    StateError,
    NotFoundError,
    ConflictError,
    ExternalVerificationError,
)

from .config import load_config
from .ledger import InMemoryLedger
from .manager import SessionManager, LeaderboardSort, LeaderboardPeriod
from .settlement import SettlementCoordinator
from .store import RewardRecord
from .models import (
    CreateSessionReq,
    MoveReq,
    CompleteReq,
    SessionResp,
    SessionListResp,
    RewardResp,
    PlayerStatsResp,
    ConfirmRewardReq,
    FailRewardReq,
    LeaderboardEntryResp,
    LeaderboardResp,
    GameResult,
    SessionStatus,
)

logger = logging.getLogger(__name__)


def _http_error(e: SolitaireError) -> HTTPException:
    if isinstance(e, ValidationError):
        status = 400
    elif isinstance(e, NotFoundError):
        status = 404
    elif isinstance(e, (StateError, ConflictError)):
        status = 409
    elif isinstance(e, ExternalVerificationError):
        status = 503 if e.retryable else 402
    else:
        status = 400
    return HTTPException(status_code=status, detail={"code": e.code, "message": e.message})


def _reward_resp(rec: RewardRecord) -> RewardResp:
    return RewardResp(
        sessionId=rec.session_id,
        player=rec.player,
        amount=rec.amount,
        status=rec.status,
        ledgerReference=rec.ledger_reference,
        error=rec.error,
    )


def _default_manager() -> SessionManager:
    cfg = load_config()
    logger.warning("No ledger configured; using an empty in-memory ledger")
    settlement = SettlementCoordinator(InMemoryLedger(), reward_multiplier=cfg.reward_multiplier)
    return SessionManager(settlement, config=cfg)


def get_manager(request: Request) -> SessionManager:
    return request.app.state.manager


def create_app(manager: Optional[SessionManager] = None) -> FastAPI:
    manager = manager or _default_manager()
    app = FastAPI(title="Klondike Wager")
    app.state.manager = manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=manager.config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> Dict[str, bool]:
        return {"ok": True}

    @app.post("/sessions", response_model=SessionResp, status_code=201)
    def create_session(req: CreateSessionReq, mgr: SessionManager = Depends(get_manager)) -> SessionResp:
        try:
            session = mgr.create_session(req.player, req.stakeAmount, req.stakeProof)
            return SessionResp(state=mgr.snapshot(session.id))
        except SolitaireError as e:
            raise _http_error(e)

    @app.get("/sessions", response_model=SessionListResp)
    def list_sessions(
        player: Optional[str] = None,
        status: Optional[SessionStatus] = None,
        result: Optional[GameResult] = None,
        limit: int = Query(20, ge=1, le=100),
        offset: int = Query(0, ge=0),
        mgr: SessionManager = Depends(get_manager),
    ) -> SessionListResp:
        states = mgr.list_snapshots(player=player, status=status, result=result, limit=limit, offset=offset)
        return SessionListResp(sessions=states, offset=offset, limit=limit)

    @app.get("/sessions/{sessionId}", response_model=SessionResp)
    def get_session(sessionId: str, mgr: SessionManager = Depends(get_manager)) -> SessionResp:
        try:
            return SessionResp(state=mgr.snapshot(sessionId))
        except SolitaireError as e:
            raise _http_error(e)

    @app.post("/sessions/{sessionId}/moves", response_model=SessionResp)
    def move(sessionId: str, req: MoveReq, mgr: SessionManager = Depends(get_manager)) -> SessionResp:
        try:
            session = mgr.apply_move(sessionId, req.fromPile, req.fromIndex, req.toPile)
            return SessionResp(state=mgr.snapshot(session.id))
        except SolitaireError as e:
            raise _http_error(e)

    @app.post("/sessions/{sessionId}/draw", response_model=SessionResp)
    def draw(sessionId: str, mgr: SessionManager = Depends(get_manager)) -> SessionResp:
        try:
            return SessionResp(state=mgr.snapshot(mgr.draw(sessionId).id))
        except SolitaireError as e:
            raise _http_error(e)

    @app.post("/sessions/{sessionId}/undo", response_model=SessionResp)
    def undo(sessionId: str, mgr: SessionManager = Depends(get_manager)) -> SessionResp:
        try:
            return SessionResp(state=mgr.snapshot(mgr.undo(sessionId).id))
        except SolitaireError as e:
            raise _http_error(e)

    @app.post("/sessions/{sessionId}/complete", response_model=SessionResp)
    def complete(sessionId: str, req: CompleteReq, mgr: SessionManager = Depends(get_manager)) -> SessionResp:
        try:
            return SessionResp(state=mgr.snapshot(mgr.complete(sessionId, req.result, req.score).id))
        except SolitaireError as e:
            raise _http_error(e)

    @app.post("/sessions/{sessionId}/abandon", response_model=SessionResp)
    def abandon(sessionId: str, mgr: SessionManager = Depends(get_manager)) -> SessionResp:
        try:
            return SessionResp(state=mgr.snapshot(mgr.abandon(sessionId).id))
        except SolitaireError as e:
            raise _http_error(e)

    @app.get("/sessions/{sessionId}/reward", response_model=RewardResp)
    def reward(sessionId: str, mgr: SessionManager = Depends(get_manager)) -> RewardResp:
        try:
            return _reward_resp(mgr.get_reward(sessionId))
        except SolitaireError as e:
            raise _http_error(e)

    @app.post("/sessions/{sessionId}/reward/confirm", response_model=RewardResp)
    def confirm_reward(sessionId: str, req: ConfirmRewardReq, mgr: SessionManager = Depends(get_manager)) -> RewardResp:
        try:
            return _reward_resp(mgr.confirm_reward(sessionId, req.ledgerReference))
        except SolitaireError as e:
            raise _http_error(e)

    @app.post("/sessions/{sessionId}/reward/fail", response_model=RewardResp)
    def fail_reward(sessionId: str, req: FailRewardReq, mgr: SessionManager = Depends(get_manager)) -> RewardResp:
        try:
            return _reward_resp(mgr.fail_reward(sessionId, req.error))
        except SolitaireError as e:
            raise _http_error(e)

    @app.get("/leaderboard", response_model=LeaderboardResp)
    def leaderboard(
        sort_by: LeaderboardSort = "wins",
        period: LeaderboardPeriod = "all_time",
        limit: int = Query(50, ge=1, le=100),
        offset: int = Query(0, ge=0),
        mgr: SessionManager = Depends(get_manager),
    ) -> LeaderboardResp:
        try:
            entries = mgr.leaderboard(sort_by=sort_by, period=period, limit=limit, offset=offset)
        except SolitaireError as e:
            raise _http_error(e)
        return LeaderboardResp(
            entries=[
                LeaderboardEntryResp(
                    rank=row.rank,
                    player=row.player,
                    gamesPlayed=row.games_played,
                    gamesWon=row.games_won,
                    winRate=row.win_rate,
                    totalEarnings=row.total_earnings,
                )
                for row in entries
            ],
            sortBy=sort_by,
            period=period,
            offset=offset,
            limit=limit,
        )

    @app.get("/players/{player}/stats", response_model=PlayerStatsResp)
    def player_stats(player: str, mgr: SessionManager = Depends(get_manager)) -> PlayerStatsResp:
        st = mgr.player_stats(player)
        return PlayerStatsResp(
            player=st.player,
            gamesPlayed=st.games_played,
            gamesWon=st.games_won,
            currentStreak=st.current_streak,
            bestTimeMs=st.best_time_ms,
            totalEarnings=st.total_earnings,
        )

    return app


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run("wager.app:create_app", host="0.0.0.0", port=8000, reload=True, factory=True)
