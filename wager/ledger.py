from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Protocol
import threading


@dataclass(frozen=True)
class StakeTransfer:
    reference: str
    sender: str
    amount: Decimal
    confirmed: bool = True


class LedgerUnavailable(Exception):
    """The ledger could not be reached or did not answer in time."""


class Ledger(Protocol):
    """Read side of the external ledger that holds stake transfers."""

    def lookup_transfer(self, reference: str) -> Optional[StakeTransfer]:
        ...


class InMemoryLedger:
    """Ledger double backed by a dict; used by the CLI and the tests."""

    def __init__(self) -> None:
        self._transfers: Dict[str, StakeTransfer] = {}
        self._lock = threading.Lock()
        self.available = True

    def add_transfer(self, reference: str, sender: str, amount: Decimal, confirmed: bool = True) -> StakeTransfer:
        tr = StakeTransfer(reference=reference, sender=sender, amount=Decimal(amount), confirmed=confirmed)
        with self._lock:
            self._transfers[reference] = tr
        return tr

    def confirm(self, reference: str) -> None:
        with self._lock:
            tr = self._transfers[reference]
            self._transfers[reference] = StakeTransfer(tr.reference, tr.sender, tr.amount, True)

    def lookup_transfer(self, reference: str) -> Optional[StakeTransfer]:
        if not self.available:
            raise LedgerUnavailable("ledger offline")
        with self._lock:
            return self._transfers.get(reference)
