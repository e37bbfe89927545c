from .config import ServiceConfig, load_config
from .ledger import Ledger, InMemoryLedger, LedgerUnavailable, StakeTransfer
from .store import SessionStore, RewardBook, RewardRecord, ProofRegistry
from .settlement import SettlementCoordinator
from .manager import SessionManager, PlayerStats, LeaderboardEntry

__all__ = [
    "ServiceConfig",
    "load_config",
    "Ledger",
    "InMemoryLedger",
    "LedgerUnavailable",
    "StakeTransfer",
    "SessionStore",
    "RewardBook",
    "RewardRecord",
    "ProofRegistry",
    "SettlementCoordinator",
    "SessionManager",
    "PlayerStats",
    "LeaderboardEntry",
]
