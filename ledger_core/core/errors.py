from __future__ import annotations

from typing import Optional


class LedgerError(Exception):
    """Base class for every failure the ledger reports to its callers."""

    status_code = 500
    default_message = "internal error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidInputError(LedgerError):
    """Raised for malformed or missing fields."""

    status_code = 400
    default_message = "invalid input"


class InvalidAccountIDError(InvalidInputError):
    default_message = "account id must be a positive integer"


class SameAccountError(InvalidInputError):
    default_message = "cannot transfer to same account"


class InvalidAmountError(InvalidInputError):
    default_message = "amount must be greater than 0"


class AccountNotFoundError(LedgerError):
    """Raised when an account id has no row in the store."""

    status_code = 404
    default_message = "account not found"


class SourceNotFoundError(AccountNotFoundError):
    default_message = "from account not found"


class DestinationNotFoundError(AccountNotFoundError):
    default_message = "destination account not found"


class InsufficientFundsError(LedgerError):
    """Raised when a withdrawal/transfer would drop balance below zero."""

    status_code = 400
    default_message = "insufficient funds"


class StoreError(LedgerError):
    """Raised when the store fails; the driver's detail is never exposed."""

    default_message = "database error"


class StoreUnavailableError(StoreError):
    """Transient store failure. Callers may retry with backoff."""

    status_code = 503
    default_message = "database unavailable"


class LockTimeoutError(StoreUnavailableError):
    default_message = "timed out waiting for account lock"


class CommitFailedError(StoreError):
    """Raised when commit fails. The unit of work has been rolled back."""

    default_message = "database error cant commit"
