from __future__ import annotations

from collections.abc import Iterable
from typing import Optional, Tuple

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..core.errors import (
    AccountNotFoundError,
    ConstraintViolationError,
    InsufficientFundsError,
)
from ..core.money import MAX_BALANCE, MAX_BALANCE_UNITS
from ..models import (
    AccountModel,
    CurrencyModel,
    SwapModel,
    SwapStatus,
    TransactionModel,
)
from ..models.db import utcnow


class LedgerRepository:
    """Thin data access layer around the SQLModel session.

    Nothing here commits; callers own the unit of work.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    # Currency operations ------------------------------------------------
    def add_currency(self, *, scope_key: str, name: str, ticker: str) -> CurrencyModel:
        currency = CurrencyModel(scope_key=scope_key, name=name, ticker=ticker)
        self.session.add(currency)
        self.session.flush()
        self.session.refresh(currency)
        return currency

    def get_currency(self, currency_id: int) -> Optional[CurrencyModel]:
        return self.session.get(CurrencyModel, currency_id)

    def get_currency_by_scope(self, scope_key: str) -> Optional[CurrencyModel]:
        stmt = select(CurrencyModel).where(CurrencyModel.scope_key == scope_key)
        return self.session.exec(stmt).first()

    def get_currency_by_ticker(self, ticker: str) -> Optional[CurrencyModel]:
        stmt = select(CurrencyModel).where(
            func.upper(CurrencyModel.ticker) == ticker.upper()
        )
        return self.session.exec(stmt).first()

    def list_currencies(self) -> list[CurrencyModel]:
        stmt = select(CurrencyModel).order_by(CurrencyModel.id)
        return list(self.session.exec(stmt))

    # Account operations -------------------------------------------------
    def get_account(self, account_id: int) -> Optional[AccountModel]:
        return self.session.get(AccountModel, account_id)

    def find_account(self, user_key: str, currency_id: int) -> Optional[AccountModel]:
        stmt = (
            select(AccountModel)
            .where(AccountModel.user_key == user_key)
            .where(AccountModel.currency_id == currency_id)
        )
        return self.session.exec(stmt).first()

    def list_accounts_for_user(self, user_key: str) -> list[AccountModel]:
        stmt = (
            select(AccountModel)
            .where(AccountModel.user_key == user_key)
            .order_by(AccountModel.currency_id)
        )
        return list(self.session.exec(stmt))

    def get_or_create_account(
        self,
        user_key: str,
        currency_id: int,
        retries: int = 3,
    ) -> Tuple[AccountModel, bool]:
        """Return ``(account, created)`` for the pair, inserting a zero balance if absent.

        The insert runs in a SAVEPOINT. Losing a race on the
        (user_key, currency_id) unique key rolls back only the savepoint and
        the winner's row is read back instead.
        """
        for _ in range(retries + 1):
            account = self.find_account(user_key, currency_id)
            if account is not None:
                return account, False
            try:
                with self.session.begin_nested():
                    account = AccountModel(user_key=user_key, currency_id=currency_id)
                    self.session.add(account)
                    self.session.flush()
            except IntegrityError:
                continue
            self.session.refresh(account)
            return account, True

        raise ConstraintViolationError(
            f"Could not create account for user {user_key} in currency {currency_id}"
        )

    def adjust_balance(self, account_id: int, delta: int) -> AccountModel:
        """Apply ``delta`` minor units in one conditional UPDATE.

        A debit only matches the row while the balance covers it and a
        credit only while the result stays within ``MAX_BALANCE_UNITS``, so
        concurrent adjustments can never push a balance out of range.
        """
        stmt = update(AccountModel).where(AccountModel.id == account_id)
        if delta < 0:
            stmt = stmt.where(AccountModel.balance >= -delta)
        elif delta > 0:
            stmt = stmt.where(AccountModel.balance <= MAX_BALANCE_UNITS - delta)
        stmt = stmt.values(
            balance=AccountModel.balance + delta,
            updated_at=utcnow(),
        ).execution_options(synchronize_session=False)

        result = self.session.exec(stmt)
        account = self.session.get(AccountModel, account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        self.session.refresh(account)
        if result.rowcount == 0 and delta > 0:
            raise ValueError(f"Balance would exceed the maximum of {MAX_BALANCE}")
        if result.rowcount == 0:
            raise InsufficientFundsError(
                f"Account {account_id} has insufficient balance"
            )
        return account

    # Swap operations ----------------------------------------------------
    def add_swap(
        self,
        *,
        maker_account_id: int,
        taker_account_id: Optional[int],
        maker_currency_id: int,
        taker_currency_id: int,
        maker_amount: int,
        taker_amount: int,
    ) -> SwapModel:
        swap = SwapModel(
            maker_account_id=maker_account_id,
            taker_account_id=taker_account_id,
            maker_currency_id=maker_currency_id,
            taker_currency_id=taker_currency_id,
            maker_amount=maker_amount,
            taker_amount=taker_amount,
            status=SwapStatus.PENDING,
        )
        self.session.add(swap)
        self.session.flush()
        self.session.refresh(swap)
        return swap

    def get_swap(self, swap_id: int, *, for_update: bool = False) -> Optional[SwapModel]:
        stmt = (
            select(SwapModel)
            .where(SwapModel.id == swap_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.exec(stmt).first()

    def transition_swap(
        self,
        swap_id: int,
        *,
        from_status: SwapStatus,
        to_status: SwapStatus,
        taker_account_id: Optional[int] = None,
    ) -> bool:
        """Compare-and-set the swap status. Returns False if another unit got there first."""
        values: dict = {"status": to_status, "updated_at": utcnow()}
        if taker_account_id is not None:
            values["taker_account_id"] = taker_account_id
        stmt = (
            update(SwapModel)
            .where(SwapModel.id == swap_id)
            .where(SwapModel.status == from_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.exec(stmt)
        return result.rowcount == 1

    def list_swaps(
        self,
        *,
        maker_account_id: Optional[int] = None,
        taker_account_id: Optional[int] = None,
        status: Optional[SwapStatus] = None,
        open_only: bool = False,
    ) -> list[SwapModel]:
        stmt = select(SwapModel)
        if maker_account_id is not None:
            stmt = stmt.where(SwapModel.maker_account_id == maker_account_id)
        if taker_account_id is not None:
            stmt = stmt.where(SwapModel.taker_account_id == taker_account_id)
        if status is not None:
            stmt = stmt.where(SwapModel.status == status)
        if open_only:
            stmt = stmt.where(SwapModel.taker_account_id.is_(None))
        stmt = stmt.order_by(SwapModel.created_at.desc(), SwapModel.id.desc())
        return list(self.session.exec(stmt))

    # Supply -------------------------------------------------------------
    def circulating_units(self, currency_id: int) -> int:
        stmt = select(func.coalesce(func.sum(AccountModel.balance), 0)).where(
            AccountModel.currency_id == currency_id
        )
        return int(self.session.exec(stmt).one())

    def escrowed_units(self, currency_id: int) -> int:
        stmt = (
            select(func.coalesce(func.sum(SwapModel.maker_amount), 0))
            .where(SwapModel.maker_currency_id == currency_id)
            .where(SwapModel.status == SwapStatus.PENDING)
        )
        return int(self.session.exec(stmt).one())

    # Transaction log ----------------------------------------------------
    def add_transaction(
        self,
        *,
        uuid: str,
        sender_account_id: int,
        receiver_account_id: int,
        amount: int,
    ) -> TransactionModel:
        txn = TransactionModel(
            uuid=uuid,
            sender_account_id=sender_account_id,
            receiver_account_id=receiver_account_id,
            amount=amount,
        )
        self.session.add(txn)
        self.session.flush()
        return txn

    def get_transaction(self, uuid: str) -> Optional[TransactionModel]:
        return self.session.get(TransactionModel, uuid)

    def existing_transaction_ids(self, uuids: Iterable[str]) -> set[str]:
        wanted = list(uuids)
        if not wanted:
            return set()
        stmt = select(TransactionModel.uuid).where(TransactionModel.uuid.in_(wanted))
        return set(self.session.exec(stmt))

    def list_transactions_for_accounts(
        self, account_ids: list[int], limit: int
    ) -> list[TransactionModel]:
        if not account_ids:
            return []
        stmt = (
            select(TransactionModel)
            .where(
                or_(
                    TransactionModel.sender_account_id.in_(account_ids),
                    TransactionModel.receiver_account_id.in_(account_ids),
                )
            )
            .order_by(TransactionModel.created_at.desc(), TransactionModel.uuid.desc())
            .limit(limit)
        )
        return list(self.session.exec(stmt))
