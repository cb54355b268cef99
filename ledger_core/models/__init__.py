from .db import Account as AccountModel
from .db import LedgerEntry as LedgerEntryModel
from .schemas import (
    AccountCreate,
    AccountListResponse,
    AccountResponse,
    LedgerEntryResponse,
    MoneyMovementRequest,
    StatementResponse,
    TransferRequest,
    TransferResponse,
)

__all__ = [
    "AccountCreate",
    "AccountListResponse",
    "AccountResponse",
    "LedgerEntryResponse",
    "MoneyMovementRequest",
    "StatementResponse",
    "TransferRequest",
    "TransferResponse",
    "AccountModel",
    "LedgerEntryModel",
]
