from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

from sqlmodel import Session

from ..core.errors import (
    AccountNotFoundError,
    DestinationNotFoundError,
    InsufficientFundsError,
    InvalidAccountIDError,
    InvalidAmountError,
    InvalidInputError,
    SameAccountError,
    SourceNotFoundError,
)
from ..models import (
    AccountModel,
    AccountResponse,
    LedgerEntryResponse,
    StatementResponse,
)
from .store import AccountStore


logger = logging.getLogger(__name__)

MAX_STATEMENT_LIMIT = 200
OVERFLOW_MESSAGE = "amount would overflow the account balance"


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_transfer(source_id: Any, dest_id: Any, amount: Any) -> None:
    """Reject a transfer before any transaction is opened.

    Checks run in a fixed order and the first failure wins: account ids,
    then distinct accounts, then amount.
    """
    if not _is_positive_int(source_id) or not _is_positive_int(dest_id):
        raise InvalidAccountIDError()
    if source_id == dest_id:
        raise SameAccountError()
    if not _is_positive_int(amount):
        raise InvalidAmountError()


class LedgerService:
    def __init__(
        self,
        session: Session,
        store: Optional[AccountStore] = None,
    ) -> None:
        self.session = session
        self.store = store or AccountStore(session)

    # ------------------------------------------------------------------
    # Helper utilities
    # ------------------------------------------------------------------
    def _check_account_id(self, account_id: Any) -> None:
        if not _is_positive_int(account_id):
            raise InvalidAccountIDError()

    def _check_amount(self, amount: Any) -> None:
        if not _is_positive_int(amount):
            raise InvalidAmountError()

    def _account_to_response(self, account: AccountModel) -> AccountResponse:
        return AccountResponse(
            id=account.id,
            name=account.name,
            balance=account.balance,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def create_account(self, name: str) -> AccountResponse:
        with self.store.unit_of_work():
            account = self.store.create(name)
            response = self._account_to_response(account)
        logger.info(
            "account.created",
            extra={"account_id": response.id, "account_name": response.name},
        )
        return response

    def get_account(self, account_id: int) -> AccountResponse:
        self._check_account_id(account_id)
        with self.store.unit_of_work():
            account = self.store.get(account_id)
            if account is None:
                raise AccountNotFoundError()
            return self._account_to_response(account)

    def list_accounts(self) -> list[AccountResponse]:
        with self.store.unit_of_work():
            return [self._account_to_response(a) for a in self.store.list_accounts()]

    def deposit(self, account_id: int, amount: int) -> AccountResponse:
        self._check_account_id(account_id)
        self._check_amount(amount)

        with self.store.unit_of_work():
            # Only one row is touched, so no lock needs to be taken first.
            account = self.store.adjust_balance(account_id, amount, guard=False)
            if account is None:
                if self.store.get(account_id) is None:
                    raise AccountNotFoundError()
                raise InvalidAmountError(OVERFLOW_MESSAGE)
            self.store.add_entry(
                account_id=account_id,
                amount=amount,
                entry_type="CREDIT",
                ref="deposit",
            )
            response = self._account_to_response(account)

        logger.info(
            "account.deposit",
            extra={
                "account_id": account_id,
                "amount": amount,
                "balance": response.balance,
            },
        )
        return response

    def withdraw(self, account_id: int, amount: int) -> AccountResponse:
        self._check_account_id(account_id)
        self._check_amount(amount)

        with self.store.unit_of_work():
            account = self.store.get(account_id)
            if account is None:
                raise AccountNotFoundError()
            # Friendly early rejection; the guarded update below is what
            # actually stops a concurrent overdraw.
            if amount > account.balance:
                raise InsufficientFundsError()

            account = self.store.adjust_balance(account_id, -amount, guard=True)
            if account is None:
                raise InsufficientFundsError()
            self.store.add_entry(
                account_id=account_id,
                amount=-amount,
                entry_type="DEBIT",
                ref="withdrawal",
            )
            response = self._account_to_response(account)

        logger.info(
            "account.withdraw",
            extra={
                "account_id": account_id,
                "amount": amount,
                "balance": response.balance,
            },
        )
        return response

    def transfer(
        self,
        source_id: int,
        dest_id: int,
        amount: int,
    ) -> Tuple[AccountResponse, AccountResponse]:
        validate_transfer(source_id, dest_id, amount)

        with self.store.unit_of_work():
            # Lock order follows the ids, not the direction of the transfer,
            # so A->B and B->A running together cannot wait on each other.
            locked = {
                account_id: self.store.get_for_update(account_id)
                for account_id in sorted((source_id, dest_id))
            }
            if locked[source_id] is None:
                raise SourceNotFoundError()
            if locked[dest_id] is None:
                raise DestinationNotFoundError()

            source = self.store.adjust_balance(source_id, -amount, guard=True)
            if source is None:
                raise InsufficientFundsError()
            dest = self.store.adjust_balance(dest_id, amount, guard=False)
            if dest is None:
                # dest is locked, so only an overflowing credit lands here
                raise InvalidAmountError(OVERFLOW_MESSAGE)

            self.store.add_entry(
                account_id=source_id,
                amount=-amount,
                entry_type="DEBIT",
                ref=f"transfer to {dest_id}",
            )
            self.store.add_entry(
                account_id=dest_id,
                amount=amount,
                entry_type="CREDIT",
                ref=f"transfer from {source_id}",
            )
            source_response = self._account_to_response(source)
            dest_response = self._account_to_response(dest)

        logger.info(
            "account.transfer",
            extra={
                "source_account_id": source_id,
                "dest_account_id": dest_id,
                "amount": amount,
            },
        )
        return source_response, dest_response

    def get_statement(
        self,
        account_id: int,
        limit: int = 50,
        cursor: Optional[int] = None,
    ) -> StatementResponse:
        self._check_account_id(account_id)
        if not 1 <= limit <= MAX_STATEMENT_LIMIT:
            raise InvalidInputError(f"limit must be between 1 and {MAX_STATEMENT_LIMIT}")
        if cursor is not None and cursor <= 0:
            raise InvalidInputError("Invalid cursor")

        with self.store.unit_of_work():
            if self.store.get(account_id) is None:
                raise AccountNotFoundError()
            # One extra row tells us whether another page exists.
            entries = self.store.list_entries(account_id, limit=limit + 1, before=cursor)

            page = entries[:limit]
            next_cursor = page[-1].id if len(entries) > limit else None
            items = [
                LedgerEntryResponse(
                    id=entry.id,
                    ts=entry.ts,
                    account_id=entry.account_id,
                    amount=entry.amount,
                    type=entry.type,
                    ref=entry.ref,
                )
                for entry in page
            ]

        return StatementResponse(items=items, next_cursor=next_cursor)
