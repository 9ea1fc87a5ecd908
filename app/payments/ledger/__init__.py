"""
Ledger store for marketplace payments.

Records one PaymentTransaction per observed charge (split between platform
and organizer) and the append-only SubscriptionEvent audit trail.

Public API:
    Service:
        ledger - Singleton instance of LedgerService
        LedgerService - Class with all ledger operations

    Types:
        Money, RecordTransactionParams, CompetitionTotals

    Exceptions:
        LedgerError, MissingIdempotencyKey, TransactionMismatch
"""

from .exceptions import LedgerError, MissingIdempotencyKey, TransactionMismatch
from .services import LedgerService, ledger
from .types import CompetitionTotals, Money, RecordTransactionParams

__all__ = [
    # Service
    "ledger",
    "LedgerService",
    # Types
    "CompetitionTotals",
    "Money",
    "RecordTransactionParams",
    # Exceptions
    "LedgerError",
    "MissingIdempotencyKey",
    "TransactionMismatch",
]
