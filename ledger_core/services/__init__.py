from .ledger import LedgerService, validate_transfer
from .store import AccountStore

__all__ = ["AccountStore", "LedgerService", "validate_transfer"]
