"""
Error types raised by the balance core
"""
from __future__ import annotations


class LedgerError(ValueError):
    """Base class; `code` is what the calling layer maps to a response"""
    code = "LEDGER_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidAmount(LedgerError):
    """Malformed, non-finite, non-positive or over-precise amount"""
    code = "INVALID_AMOUNT"


class InvalidCurrency(LedgerError):
    """Currency code is not a three letter ISO code"""
    code = "INVALID_CURRENCY"


class InvalidParticipants(LedgerError):
    """Empty or duplicate participant set"""
    code = "INVALID_PARTICIPANTS"


class SplitMismatch(LedgerError):
    """Caller supplied amounts or percentages do not reconcile to the total"""
    code = "SPLIT_MISMATCH"


class DataIntegrityError(LedgerError):
    """Stored records violate an invariant the split engine guarantees"""
    code = "DATA_INTEGRITY"


class ConservationViolation(LedgerError):
    """Net balances in one currency do not sum to zero"""
    code = "CONSERVATION_VIOLATION"
