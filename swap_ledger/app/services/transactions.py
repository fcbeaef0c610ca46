from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..core.errors import (
    ConstraintViolationError,
    DuplicateTransactionIdError,
    TransactionNotFoundError,
)
from ..models import TransactionModel
from .repository import LedgerRepository


logger = logging.getLogger(__name__)


class TransactionLog:
    """Append-only record of completed fund movements keyed by caller-supplied ids."""

    def __init__(self, repository: LedgerRepository) -> None:
        self.repository = repository

    def ensure_unused(self, *uuids: str) -> None:
        """Reject ids that repeat within the call or already exist in the log."""
        if len(set(uuids)) != len(uuids):
            raise DuplicateTransactionIdError("Transaction ids must be distinct")
        existing = self.repository.existing_transaction_ids(uuids)
        if existing:
            raise DuplicateTransactionIdError(
                f"Transaction id {sorted(existing)[0]} already recorded"
            )

    def append(
        self,
        uuid: str,
        sender_account_id: int,
        receiver_account_id: int,
        amount: int,
    ) -> TransactionModel:
        if amount <= 0:
            raise ValueError("Transaction amount must be positive")
        if self.repository.get_transaction(uuid) is not None:
            raise DuplicateTransactionIdError(f"Transaction id {uuid} already recorded")
        try:
            with self.repository.session.begin_nested():
                txn = self.repository.add_transaction(
                    uuid=uuid,
                    sender_account_id=sender_account_id,
                    receiver_account_id=receiver_account_id,
                    amount=amount,
                )
        except IntegrityError as exc:
            if self.repository.get_transaction(uuid) is not None:
                # primary key collision from a concurrent writer
                raise DuplicateTransactionIdError(
                    f"Transaction id {uuid} already recorded"
                ) from exc
            raise ConstraintViolationError(
                f"Transaction {uuid} rejected by storage: {exc.orig}"
            ) from exc
        logger.debug(
            "transaction.appended",
            extra={
                "uuid": uuid,
                "sender_account_id": sender_account_id,
                "receiver_account_id": receiver_account_id,
                "amount": amount,
            },
        )
        return txn

    def get(self, uuid: str) -> TransactionModel:
        txn = self.repository.get_transaction(uuid)
        if txn is None:
            raise TransactionNotFoundError(f"Transaction {uuid} not found")
        return txn

    def for_accounts(self, account_ids: list[int], limit: int) -> list[TransactionModel]:
        return self.repository.list_transactions_for_accounts(account_ids, limit)
