"""
Ledger-specific exceptions.

Exception Hierarchy:
    LedgerError (base)
    ├── MissingIdempotencyKey - Charge without a provider identifier
    └── TransactionMismatch - Replayed charge disagrees with the stored row

Usage:
    from payments.ledger.exceptions import TransactionMismatch

    try:
        LedgerService.record_transaction(params)
    except TransactionMismatch as e:
        logger.error("Ledger mismatch", extra=e.details)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    from typing import Any


class LedgerError(BaseApplicationError):
    """Base exception for all ledger operations."""

    default_error_code: str = "LEDGER_ERROR"


class MissingIdempotencyKey(LedgerError):
    """
    Raised when a charge carries neither a checkout session id nor an
    invoice id, so a replay could not be detected.
    """

    default_error_code: str = "MISSING_IDEMPOTENCY_KEY"


class TransactionMismatch(LedgerError):
    """
    Raised when a replayed charge maps to an existing row whose amounts differ.

    Attributes:
        transaction_id: The stored row
        expected: Amount stored, in cents
        received: Amount of the replayed charge, in cents
    """

    default_error_code: str = "TRANSACTION_MISMATCH"

    def __init__(
        self,
        transaction_id,
        expected: int,
        received: int,
        details: dict[str, Any] | None = None,
    ):
        self.transaction_id = transaction_id
        self.expected = expected
        self.received = received

        full_details = {
            "transaction_id": str(transaction_id),
            "expected_cents": expected,
            "received_cents": received,
        }
        if details:
            full_details.update(details)

        super().__init__(
            message=(
                f"Transaction {transaction_id} already recorded with "
                f"{expected} cents, replay carried {received} cents"
            ),
            details=full_details,
        )
