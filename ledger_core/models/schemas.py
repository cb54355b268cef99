from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt

# Amounts and ids are strict ints (no bools, no numeric strings); range
# checks belong to the ledger service so every caller gets the same errors
# in the same order.

class AccountCreate(BaseModel):
    name: str = Field(..., description="Display name of the account holder")

class AccountResponse(BaseModel):
    id: int
    name: str
    balance: int = Field(..., ge=0, description="Balance in minor units (e.g. cents)")

class AccountListResponse(BaseModel):
    accounts: list[AccountResponse]

class MoneyMovementRequest(BaseModel):
    amount: StrictInt = Field(..., description="Amount in minor units (must be >= 1)")

class TransferRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_id: StrictInt = Field(..., alias="from")
    dest_id: StrictInt = Field(..., alias="to")
    amount: StrictInt

class TransferResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: AccountResponse = Field(..., alias="from")
    dest: AccountResponse = Field(..., alias="to")

class LedgerEntryResponse(BaseModel):
    id: int
    ts: datetime
    account_id: int
    amount: int
    type: Literal["DEBIT", "CREDIT"]
    ref: Optional[str] = Field(default=None, description="What caused the movement")

class StatementResponse(BaseModel):
    items: list[LedgerEntryResponse]
    next_cursor: Optional[int] = None
