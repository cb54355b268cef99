from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import text, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlmodel import Session, select

from ..core.errors import (
    CommitFailedError,
    InvalidInputError,
    LockTimeoutError,
    StoreError,
    StoreUnavailableError,
)
from ..models import AccountModel, LedgerEntryModel


logger = logging.getLogger(__name__)

# Largest value a BIGINT (PostgreSQL) or INTEGER (SQLite) column holds.
MAX_STORE_INT = 2**63 - 1

# PostgreSQL lock_not_available / deadlock_detected
_LOCK_SQLSTATES = {"55P03", "40P01"}


def _is_lock_timeout(exc: OperationalError) -> bool:
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _LOCK_SQLSTATES:
        return True
    return "database is locked" in str(orig)


def _in_range(value: int) -> bool:
    return -MAX_STORE_INT <= value <= MAX_STORE_INT


class AccountStore:
    """Data access for account rows and their journal.

    Every method runs on the bound session. Mutations and locking reads are
    only meaningful inside :meth:`unit_of_work`, whose transaction scopes the
    row locks.
    """

    def __init__(self, session: Session, lock_timeout: float = 5.0) -> None:
        self.session = session
        self.lock_timeout = lock_timeout

    # Unit of work -------------------------------------------------------
    @contextmanager
    def unit_of_work(self) -> Iterator[Session]:
        """Commit on normal exit, roll back on any exception.

        Store failures raised inside the block come out as ``StoreError``
        subclasses; nothing the driver said leaks past this point.
        """
        self.session.begin()
        try:
            self._apply_lock_timeout()
            yield self.session
        except OperationalError as exc:
            self.session.rollback()
            if _is_lock_timeout(exc):
                logger.warning("store.lock_timeout", extra={"error": str(exc.orig)})
                raise LockTimeoutError() from exc
            logger.error("store.unavailable", extra={"error": str(exc.orig)})
            raise StoreUnavailableError() from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("store.error")
            raise StoreError() from exc
        except BaseException:
            self.session.rollback()
            raise

        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("store.commit_failed")
            raise CommitFailedError() from exc

    def _apply_lock_timeout(self) -> None:
        # SQLite gets the same bound from the connection's busy timeout.
        if self.session.get_bind().dialect.name != "postgresql":
            return
        millis = max(int(self.lock_timeout * 1000), 1)
        self.session.execute(text(f"SET LOCAL lock_timeout = {millis}"))

    # Account operations -------------------------------------------------
    def create(self, name: str) -> AccountModel:
        if not name or not name.strip():
            raise InvalidInputError("name required")
        account = AccountModel(name=name, balance=0)
        self.session.add(account)
        self.session.flush()
        self.session.refresh(account)
        return account

    def get(self, account_id: int) -> Optional[AccountModel]:
        if not _in_range(account_id):
            return None
        return self.session.get(AccountModel, account_id)

    def get_for_update(self, account_id: int) -> Optional[AccountModel]:
        if not _in_range(account_id):
            return None
        stmt = (
            select(AccountModel)
            .where(AccountModel.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.exec(stmt).first()

    def list_accounts(self) -> list[AccountModel]:
        stmt = select(AccountModel).order_by(AccountModel.id)
        return list(self.session.exec(stmt))

    def adjust_balance(
        self,
        account_id: int,
        delta: int,
        *,
        guard: bool = True,
    ) -> Optional[AccountModel]:
        """Add ``delta`` to the balance in one conditional UPDATE.

        With ``guard`` the row only changes if the result stays non-negative.
        A credit never pushes the balance past ``MAX_STORE_INT``. Returns
        ``None`` when no row was updated, which covers a missing id, a failed
        guard and a credit that would overflow.
        """
        if not (_in_range(account_id) and _in_range(delta)):
            return None

        accounts = AccountModel.__table__
        stmt = (
            update(accounts)
            .where(accounts.c.id == account_id)
            .values(balance=accounts.c.balance + delta)
        )
        if guard:
            stmt = stmt.where(accounts.c.balance + delta >= 0)
        if delta > 0:
            stmt = stmt.where(accounts.c.balance <= MAX_STORE_INT - delta)

        result = self.session.execute(stmt)
        if result.rowcount == 0:
            return None
        return self.session.get(AccountModel, account_id, populate_existing=True)

    # Ledger entries -----------------------------------------------------
    def add_entry(
        self,
        *,
        account_id: int,
        amount: int,
        entry_type: str,
        ref: Optional[str],
    ) -> LedgerEntryModel:
        entry = LedgerEntryModel(
            account_id=account_id,
            amount=amount,
            type=entry_type,
            ref=ref,
        )
        self.session.add(entry)
        self.session.flush()
        self.session.refresh(entry)
        return entry

    def list_entries(
        self,
        account_id: int,
        *,
        limit: int,
        before: Optional[int] = None,
    ) -> list[LedgerEntryModel]:
        stmt = select(LedgerEntryModel).where(LedgerEntryModel.account_id == account_id)
        if before is not None and _in_range(before):
            stmt = stmt.where(LedgerEntryModel.id < before)
        stmt = stmt.order_by(LedgerEntryModel.id.desc()).limit(limit)
        return list(self.session.exec(stmt))
