from typing import Optional

from fastapi import APIRouter, Depends, status

from ..core.dependencies import get_ledger_service
from ..models import (
    AccountCreate,
    AccountListResponse,
    AccountResponse,
    MoneyMovementRequest,
    StatementResponse,
    TransferRequest,
    TransferResponse,
)
from ..services import LedgerService


router = APIRouter(prefix="/accounts", tags=["accounts"])

@router.get("", response_model=AccountListResponse)
def list_accounts(
    service: LedgerService = Depends(get_ledger_service),
) -> AccountListResponse:
    return AccountListResponse(accounts=service.list_accounts())

@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    payload: AccountCreate,
    service: LedgerService = Depends(get_ledger_service),
) -> AccountResponse:
    return service.create_account(payload.name)

@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: int,
    service: LedgerService = Depends(get_ledger_service),
) -> AccountResponse:
    return service.get_account(account_id)

@router.post("/{account_id}/deposit", response_model=AccountResponse)
def deposit(
    account_id: int,
    payload: MoneyMovementRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> AccountResponse:
    return service.deposit(account_id, payload.amount)

@router.post("/{account_id}/withdraw", response_model=AccountResponse)
def withdraw(
    account_id: int,
    payload: MoneyMovementRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> AccountResponse:
    return service.withdraw(account_id, payload.amount)

@router.get("/{account_id}/statement", response_model=StatementResponse)
def get_statement(
    account_id: int,
    limit: int = 50,
    cursor: Optional[int] = None,
    service: LedgerService = Depends(get_ledger_service),
) -> StatementResponse:
    return service.get_statement(account_id, limit=limit, cursor=cursor)

transfer_router = APIRouter(prefix="/transfer", tags=["transfers"])

@transfer_router.post("", response_model=TransferResponse)
def create_transfer(
    payload: TransferRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> TransferResponse:
    source, dest = service.transfer(payload.source_id, payload.dest_id, payload.amount)
    return TransferResponse(source=source, dest=dest)

__all__ = ["router", "transfer_router"]
