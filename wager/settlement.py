from __future__ import annotations

from decimal import Decimal
from typing import Callable, List, Optional
import logging
import time

from klondike import ExternalVerificationError, NotFoundError, ValidationError

from .ledger import Ledger, LedgerUnavailable
from .store import RewardBook, RewardRecord, ProofRegistry

logger = logging.getLogger(__name__)


class SettlementCoordinator:
    """Checks stake proofs on the way in and records rewards on the way out.

    Sessions are referenced only by id; nothing here reads board state.
    """

    def __init__(
        self,
        ledger: Ledger,
        rewards: Optional[RewardBook] = None,
        proofs: Optional[ProofRegistry] = None,
        reward_multiplier: Decimal = Decimal("2"),
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ledger = ledger
        self.rewards = rewards or RewardBook()
        self.proofs = proofs or ProofRegistry()
        self.reward_multiplier = reward_multiplier
        self._clock = clock

    def verify_stake(self, player: str, amount: Decimal, proof: str) -> bool:
        """True only if ``proof`` is a confirmed transfer of ``amount`` from ``player``.

        An unreachable ledger or a transfer that exists but is not yet
        confirmed raises a retryable ExternalVerificationError.
        """
        if not proof:
            return False
        try:
            transfer = self.ledger.lookup_transfer(proof)
        except LedgerUnavailable as e:
            logger.warning("Ledger lookup failed for %s: %s", proof, e)
            raise ExternalVerificationError("LEDGER_UNAVAILABLE", "Ledger is unavailable, retry later", retryable=True) from e
        if transfer is None:
            logger.info("Stake proof %s not found on ledger", proof)
            return False
        if transfer.sender != player:
            logger.info("Stake proof %s sender mismatch (%s != %s)", proof, transfer.sender, player)
            return False
        if Decimal(transfer.amount) != Decimal(amount):
            logger.info("Stake proof %s amount mismatch (%s != %s)", proof, transfer.amount, amount)
            return False
        if not transfer.confirmed:
            raise ExternalVerificationError("STAKE_UNCONFIRMED", "Stake transfer is not confirmed yet", retryable=True)
        return True

    def claim_proof(self, proof: str, session_id: str) -> None:
        self.proofs.claim(proof, session_id)

    def release_proof(self, proof: str, session_id: str) -> None:
        self.proofs.release(proof, session_id)

    def reward_amount(self, stake: Decimal, result: Optional[str]) -> Decimal:
        if result != "win":
            return Decimal("0")
        return stake * self.reward_multiplier

    def issue_reward(self, session_id: str, player: str, amount: Decimal) -> RewardRecord:
        if amount <= 0:
            raise ValidationError("INVALID_REWARD", "Reward amount must be positive")
        record = self.rewards.create(RewardRecord(
            session_id=session_id,
            player=player,
            amount=amount,
            status="pending",
            created_at=self._clock(),
        ))
        logger.info("Reward %s recorded for session %s", amount, session_id)
        return record

    def confirm_reward(self, session_id: str, ledger_reference: str) -> RewardRecord:
        rec = self.rewards.transition(session_id, "pending", status="confirmed", ledger_reference=ledger_reference)
        logger.info("Reward for session %s confirmed (%s)", session_id, ledger_reference)
        return rec

    def fail_reward(self, session_id: str, error: str) -> RewardRecord:
        rec = self.rewards.transition(session_id, "pending", status="failed", error=error)
        logger.error("Reward for session %s failed: %s", session_id, error)
        return rec

    def get_reward(self, session_id: str) -> RewardRecord:
        rec = self.rewards.get(session_id)
        if rec is None:
            raise NotFoundError("REWARD_NOT_FOUND", f"No reward for {session_id}")
        return rec

    def list_rewards(self, player: Optional[str] = None) -> List[RewardRecord]:
        recs = self.rewards.all()
        if player is not None:
            recs = [r for r in recs if r.player == player]
        return sorted(recs, key=lambda r: r.created_at)
