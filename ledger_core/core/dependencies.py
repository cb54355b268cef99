from fastapi import Depends
from sqlmodel import Session

from ..services import AccountStore, LedgerService
from .config import get_settings
from .db import get_session

def get_ledger_service(session: Session = Depends(get_session)) -> LedgerService:
    store = AccountStore(session, lock_timeout=get_settings().lock_timeout_seconds)
    return LedgerService(session, store)
