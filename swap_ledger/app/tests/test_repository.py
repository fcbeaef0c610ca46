from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime

import pytest
from sqlmodel import Session

from ..core.errors import (
    AccountNotFoundError,
    ConstraintViolationError,
    CurrencyNotFoundError,
    DuplicateTransactionIdError,
    InsufficientFundsError,
    TransactionNotFoundError,
)
from ..models import TransactionModel
from ..services import AccountResolver, LedgerRepository, TransactionLog
from ..services.unit_of_work import atomic


@pytest.fixture
def repository(session) -> LedgerRepository:
    return LedgerRepository(session)


@pytest.fixture
def currency_id(repository, session) -> int:
    with atomic(session):
        return repository.add_currency(scope_key="guild-1", name="Shells", ticker="SHL").id


def test_get_or_create_returns_existing_account(repository, session, currency_id) -> None:
    with atomic(session):
        first, created = repository.get_or_create_account("alice", currency_id)
        first_id = first.id
        assert created is True
        assert first.balance == 0

    with atomic(session):
        again, created = repository.get_or_create_account("alice", currency_id)
        assert created is False
        assert again.id == first_id


def test_adjust_balance_rejects_overdraft(repository, session, currency_id) -> None:
    with atomic(session):
        account, _ = repository.get_or_create_account("alice", currency_id)
        account_id = account.id
        repository.adjust_balance(account_id, 500)

    with pytest.raises(InsufficientFundsError):
        with atomic(session):
            repository.adjust_balance(account_id, -501)

    with atomic(session):
        assert repository.get_account(account_id).balance == 500
        assert repository.adjust_balance(account_id, -500).balance == 0


def test_adjust_balance_unknown_account(repository, session) -> None:
    with pytest.raises(AccountNotFoundError):
        with atomic(session):
            repository.adjust_balance(42, 10)


def test_duplicate_currency_surfaces_as_constraint_violation(repository, session, currency_id) -> None:
    with pytest.raises(ConstraintViolationError):
        with atomic(session):
            repository.add_currency(scope_key="guild-2", name="Shells", ticker="SHX")


def test_resolver_requires_known_currency(repository, session) -> None:
    resolver = AccountResolver(repository)
    with pytest.raises(CurrencyNotFoundError):
        with atomic(session):
            resolver.resolve("alice", 404)


def test_concurrent_get_or_create_yields_one_account(engine, currency_id) -> None:
    def resolve(_):
        with Session(engine) as thread_session:
            with atomic(thread_session):
                account = AccountResolver(LedgerRepository(thread_session)).resolve(
                    "bob", currency_id
                )
                return account.id

    with ThreadPoolExecutor(max_workers=6) as pool:
        ids = set(pool.map(resolve, range(6)))

    assert len(ids) == 1


def test_transaction_log_rejects_duplicate_ids(repository, session, currency_id) -> None:
    log = TransactionLog(repository)
    with atomic(session):
        sender, _ = repository.get_or_create_account("alice", currency_id)
        receiver, _ = repository.get_or_create_account("bob", currency_id)
        sender_id, receiver_id = sender.id, receiver.id
        log.append("txn-1", sender_id, receiver_id, 100)

    with pytest.raises(DuplicateTransactionIdError):
        with atomic(session):
            log.append("txn-1", sender_id, receiver_id, 100)
    with pytest.raises(DuplicateTransactionIdError):
        with atomic(session):
            log.ensure_unused("txn-2", "txn-1")

    with atomic(session):
        assert log.get("txn-1").amount == 100
        assert [t.uuid for t in log.for_accounts([receiver_id], limit=10)] == ["txn-1"]
        with pytest.raises(TransactionNotFoundError):
            log.get("txn-2")


def test_transaction_log_rejects_non_positive_amount(repository, session, currency_id) -> None:
    log = TransactionLog(repository)
    with pytest.raises(ValueError):
        with atomic(session):
            sender, _ = repository.get_or_create_account("alice", currency_id)
            log.append("txn-0", sender.id, sender.id, 0)


def test_transaction_log_reports_foreign_key_failure_as_constraint_violation(
    repository, session, currency_id
) -> None:
    log = TransactionLog(repository)
    with atomic(session):
        sender, _ = repository.get_or_create_account("alice", currency_id)
        sender_id = sender.id

    with pytest.raises(ConstraintViolationError):
        with atomic(session):
            log.append("fresh-id", sender_id, 9999, 5)

    with atomic(session):
        assert repository.get_transaction("fresh-id") is None


def test_history_with_equal_timestamps_has_stable_order(repository, session, currency_id) -> None:
    stamp = datetime(2024, 1, 1, tzinfo=UTC)
    with atomic(session):
        sender, _ = repository.get_or_create_account("alice", currency_id)
        receiver, _ = repository.get_or_create_account("bob", currency_id)
        for uuid in ("leg-b", "leg-a", "leg-c"):
            session.add(
                TransactionModel(
                    uuid=uuid,
                    sender_account_id=sender.id,
                    receiver_account_id=receiver.id,
                    amount=1,
                    created_at=stamp,
                )
            )
        receiver_id = receiver.id

    with atomic(session):
        history = repository.list_transactions_for_accounts([receiver_id], limit=10)
        assert [t.uuid for t in history] == ["leg-c", "leg-b", "leg-a"]
