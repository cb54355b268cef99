from __future__ import annotations
from datetime import datetime, UTC
from typing import Optional
from sqlalchemy import BigInteger, CheckConstraint, Integer
from sqlmodel import Field, SQLModel

# 64-bit everywhere. SQLite only autoincrements "INTEGER PRIMARY KEY", which
# is already 64-bit there.
BigInt = BigInteger().with_variant(Integer(), "sqlite")

class Account(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_account_balance_non_negative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True, sa_type=BigInt)
    name: str
    balance: int = Field(default=0, ge=0, sa_type=BigInt)

class LedgerEntry(SQLModel, table=True):
    # Append-only; the integer key doubles as the journal sequence.
    id: Optional[int] = Field(default=None, primary_key=True, sa_type=BigInt)
    ts: datetime = Field(default_factory=lambda: datetime.now(UTC))
    account_id: int = Field(foreign_key="account.id", index=True, sa_type=BigInt)
    amount: int = Field(sa_type=BigInt)
    type: str
    ref: Optional[str] = None
