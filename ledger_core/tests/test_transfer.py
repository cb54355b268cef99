import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..core.errors import (
    CommitFailedError,
    DestinationNotFoundError,
    InsufficientFundsError,
    InvalidAccountIDError,
    InvalidAmountError,
    SameAccountError,
    SourceNotFoundError,
)
from ..models import LedgerEntryModel
from ..services import AccountStore, LedgerService, validate_transfer
from ..services.store import MAX_STORE_INT


class RecordingStore(AccountStore):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.locked: list[int] = []

    def get_for_update(self, account_id):
        self.locked.append(account_id)
        return super().get_for_update(account_id)


def _funded(service: LedgerService, name: str, amount: int = 0) -> int:
    account_id = service.create_account(name).id
    if amount:
        service.deposit(account_id, amount)
    return account_id


def test_validate_transfer_accepts_valid_request() -> None:
    validate_transfer(1, 2, 10)


@pytest.mark.parametrize(
    ("source_id", "dest_id", "amount", "error"),
    [
        (0, 2, 10, InvalidAccountIDError),
        (1, -2, 5, InvalidAccountIDError),
        (2, 2, 10, SameAccountError),
        (1, 4, 0, InvalidAmountError),
        (3, 2, -10, InvalidAmountError),
        # first failing check wins
        (0, 0, 0, InvalidAccountIDError),
        (5, 5, -1, SameAccountError),
        (True, 2, 10, InvalidAccountIDError),
    ],
)
def test_validate_transfer_rejects(source_id, dest_id, amount, error) -> None:
    with pytest.raises(error):
        validate_transfer(source_id, dest_id, amount)


def test_transfer_conserves_money(service: LedgerService) -> None:
    a = _funded(service, "A", 500)
    b = _funded(service, "B", 20)

    source, dest = service.transfer(a, b, 120)

    assert (source.id, source.balance) == (a, 380)
    assert (dest.id, dest.balance) == (b, 140)
    assert service.get_account(a).balance + service.get_account(b).balance == 520


def test_transfer_full_balance_leaves_zero(service: LedgerService) -> None:
    a = _funded(service, "A", 75)
    b = _funded(service, "B")

    source, dest = service.transfer(a, b, 75)

    assert source.balance == 0
    assert dest.balance == 75


def test_same_account_rejected_even_when_missing(service: LedgerService) -> None:
    a = _funded(service, "A", 50)

    with pytest.raises(SameAccountError):
        service.transfer(a, a, 10)
    with pytest.raises(SameAccountError):
        service.transfer(12345, 12345, 10)

    assert service.get_account(a).balance == 50


@pytest.mark.parametrize("amount", [0, -5])
def test_non_positive_amount_changes_nothing(service: LedgerService, amount: int) -> None:
    a = _funded(service, "A", 50)
    b = _funded(service, "B", 5)

    with pytest.raises(InvalidAmountError):
        service.transfer(a, b, amount)

    assert service.get_account(a).balance == 50
    assert service.get_account(b).balance == 5


def test_missing_source_changes_nothing(service: LedgerService) -> None:
    b = _funded(service, "B", 40)

    with pytest.raises(SourceNotFoundError):
        service.transfer(999, b, 10)

    assert service.get_account(b).balance == 40
    assert service.get_statement(b).items[0].ref == "deposit"


def test_missing_destination(service: LedgerService) -> None:
    a = _funded(service, "A", 40)

    with pytest.raises(DestinationNotFoundError):
        service.transfer(a, 999, 10)

    assert service.get_account(a).balance == 40


def test_source_checked_before_destination(service: LedgerService) -> None:
    with pytest.raises(SourceNotFoundError):
        service.transfer(998, 999, 10)


def test_insufficient_funds_changes_nothing(service: LedgerService) -> None:
    a = _funded(service, "A", 30)
    b = _funded(service, "B", 1)

    with pytest.raises(InsufficientFundsError):
        service.transfer(a, b, 31)

    assert service.get_account(a).balance == 30
    assert service.get_account(b).balance == 1


def test_locks_taken_in_id_order(make_service) -> None:
    setup = make_service()
    low = _funded(setup, "low", 100)
    high = _funded(setup, "high", 100)
    assert low < high

    forward = make_service(RecordingStore)
    forward.transfer(low, high, 10)
    backward = make_service(RecordingStore)
    backward.transfer(high, low, 10)

    assert forward.store.locked == [low, high]
    assert backward.store.locked == [low, high]


def test_transfer_writes_journal_entries(service: LedgerService) -> None:
    a = _funded(service, "A", 100)
    b = _funded(service, "B")

    service.transfer(a, b, 60)

    debit = service.get_statement(a).items[0]
    credit = service.get_statement(b).items[0]
    assert (debit.type, debit.amount, debit.ref) == ("DEBIT", -60, f"transfer to {b}")
    assert (credit.type, credit.amount, credit.ref) == ("CREDIT", 60, f"transfer from {a}")


def test_failure_mid_transfer_rolls_back(service: LedgerService, engine, monkeypatch) -> None:
    a = _funded(service, "A", 100)
    b = _funded(service, "B")

    original_add_entry = service.store.add_entry

    def failing_add_entry(**kwargs):
        if kwargs["entry_type"] == "CREDIT":
            raise RuntimeError("crash after debit")
        return original_add_entry(**kwargs)

    monkeypatch.setattr(service.store, "add_entry", failing_add_entry)

    with pytest.raises(RuntimeError):
        service.transfer(a, b, 40)

    monkeypatch.undo()
    assert service.get_account(a).balance == 100
    assert service.get_account(b).balance == 0
    with Session(engine) as session:
        entries = [(e.account_id, e.amount) for e in session.exec(select(LedgerEntryModel))]
    # only the initial deposit survives
    assert entries == [(a, 100)]


def test_commit_failure_is_reported_and_rolled_back(service: LedgerService, monkeypatch) -> None:
    a = _funded(service, "A", 100)
    b = _funded(service, "B")

    def failing_commit():
        raise SQLAlchemyError("connection dropped during commit")

    monkeypatch.setattr(service.session, "commit", failing_commit)

    with pytest.raises(CommitFailedError) as excinfo:
        service.transfer(a, b, 40)

    assert excinfo.value.message == "database error cant commit"
    monkeypatch.undo()
    assert service.get_account(a).balance == 100
    assert service.get_account(b).balance == 0


def test_amount_beyond_store_range_is_insufficient_funds(service: LedgerService) -> None:
    a = _funded(service, "A", 100)
    b = _funded(service, "B")

    with pytest.raises(InsufficientFundsError):
        service.transfer(a, b, 2**64)

    assert service.get_account(a).balance == 100
    assert service.get_account(b).balance == 0


def test_ids_beyond_store_range_are_not_found(service: LedgerService) -> None:
    a = _funded(service, "A", 100)

    with pytest.raises(SourceNotFoundError):
        service.transfer(2**64, a, 10)
    with pytest.raises(DestinationNotFoundError):
        service.transfer(a, 2**64, 10)

    assert service.get_account(a).balance == 100


def test_credit_that_would_overflow_destination(service: LedgerService) -> None:
    a = _funded(service, "A", 10)
    b = _funded(service, "B", MAX_STORE_INT)

    with pytest.raises(InvalidAmountError):
        service.transfer(a, b, 1)

    assert service.get_account(a).balance == 10
    assert service.get_account(b).balance == MAX_STORE_INT
