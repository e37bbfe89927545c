from __future__ import annotations


class SolitaireError(Exception):
    """Base for every failure the engine and service return to a caller.

    ``code`` is a stable machine-readable tag (``FACE_DOWN``,
    ``SESSION_NOT_ACTIVE``...), ``message`` is for humans.
    """

    def __init__(self, code: str, message: str = "") -> None:
        super().__init__(message or code)
        self.code = code
        self.message = message or code


class ValidationError(SolitaireError):
    """Illegal move or malformed argument; nothing was mutated."""


class StateError(SolitaireError):
    """Operation not allowed in the session's current state."""


class NotFoundError(SolitaireError):
    """Unknown session, pile or reward id."""


class ConflictError(SolitaireError):
    """Second attempt at a one-time transition (reward, proof, terminal state)."""


class ExternalVerificationError(SolitaireError):
    """Stake proof could not be verified against the ledger."""

    def __init__(self, code: str, message: str = "", retryable: bool = False) -> None:
        super().__init__(code, message)
        self.retryable = retryable
