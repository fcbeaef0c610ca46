from __future__ import annotations

import logging
from typing import Optional

from sqlmodel import Session

from ..core.config import get_settings
from ..core.errors import (
    AccountNotFoundError,
    ConstraintViolationError,
    CurrencyNotFoundError,
    InsufficientFundsError,
)
from ..core.money import AmountLike, from_units, to_positive_units, to_units
from ..core.tickers import normalize_ticker
from ..models import (
    AccountResponse,
    CurrencyCreate,
    CurrencyModel,
    CurrencyResponse,
    SupplyResponse,
    TransactionResponse,
)
from .accounts import AccountResolver
from .repository import LedgerRepository
from .responses import account_to_response, currency_to_response, transaction_to_response
from .transactions import TransactionLog
from .unit_of_work import atomic


logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10
MAX_HISTORY_LIMIT = 100


class LedgerService:
    """Currencies, balances, administrative mint and plain transfers.

    Swaps live in :class:`SwapEngine`; this service covers everything
    around them that moves or reports funds.
    """

    def __init__(
        self,
        session: Session,
        repository: Optional[LedgerRepository] = None,
    ) -> None:
        self.session = session
        self.repository = repository or LedgerRepository(session)
        self.resolver = AccountResolver(self.repository)
        self.transaction_log = TransactionLog(self.repository)

    # ------------------------------------------------------------------
    # Helper utilities
    # ------------------------------------------------------------------
    def _get_currency(self, currency_id: int) -> CurrencyModel:
        currency = self.repository.get_currency(currency_id)
        if currency is None:
            raise CurrencyNotFoundError(f"Currency {currency_id} not found")
        return currency

    # ------------------------------------------------------------------
    # Currencies
    # ------------------------------------------------------------------
    def create_currency(self, payload: CurrencyCreate) -> CurrencyResponse:
        ticker = normalize_ticker(
            payload.ticker,
            check_reserved=get_settings().ticker_blacklist_enabled,
        )
        with atomic(self.session):
            if self.repository.get_currency_by_scope(payload.scope_key) is not None:
                raise ConstraintViolationError(
                    f"Scope {payload.scope_key} already has a currency"
                )
            if self.repository.get_currency_by_ticker(ticker) is not None:
                raise ConstraintViolationError(f"Ticker {ticker} is already taken")
            currency = self.repository.add_currency(
                scope_key=payload.scope_key, name=payload.name, ticker=ticker
            )
            response = currency_to_response(currency)

        logger.info(
            "currency.created",
            extra={"currency_id": response.id, "scope_key": response.scope_key, "ticker": ticker},
        )
        return response

    def get_currency(self, currency_id: int) -> CurrencyResponse:
        with atomic(self.session):
            return currency_to_response(self._get_currency(currency_id))

    def get_currency_by_ticker(self, ticker: str) -> CurrencyResponse:
        with atomic(self.session):
            currency = self.repository.get_currency_by_ticker(ticker)
            if currency is None:
                raise CurrencyNotFoundError(f"Currency {ticker} not found")
            return currency_to_response(currency)

    def list_currencies(self) -> list[CurrencyResponse]:
        with atomic(self.session):
            return [currency_to_response(c) for c in self.repository.list_currencies()]

    def currency_supply(self, currency_id: int) -> SupplyResponse:
        """Free balances plus maker funds escrowed in pending swaps."""
        with atomic(self.session):
            self._get_currency(currency_id)
            circulating = self.repository.circulating_units(currency_id)
            escrowed = self.repository.escrowed_units(currency_id)
        return SupplyResponse(
            currency_id=currency_id,
            circulating=from_units(circulating),
            escrowed=from_units(escrowed),
            total=from_units(circulating + escrowed),
        )

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------
    def get_balance(self, user_key: str, currency_id: int) -> AccountResponse:
        with atomic(self.session):
            account = self.repository.find_account(user_key, currency_id)
            if account is None:
                raise AccountNotFoundError(
                    f"User {user_key} has no account in currency {currency_id}"
                )
            return account_to_response(account)

    def get_balances(self, user_key: str) -> list[AccountResponse]:
        with atomic(self.session):
            return [
                account_to_response(account)
                for account in self.repository.list_accounts_for_user(user_key)
            ]

    def mint(self, user_key: str, currency_id: int, amount: AmountLike) -> AccountResponse:
        """Administrative credit (or debit, when negative) outside the swap core."""
        units = to_units(amount)
        if units == 0:
            raise ValueError("Mint amount must be non-zero")

        with atomic(self.session):
            account = self.resolver.resolve(user_key, currency_id)
            try:
                account = self.repository.adjust_balance(account.id, units)
            except InsufficientFundsError as exc:
                raise InsufficientFundsError("Cannot reduce balance below 0") from exc
            response = account_to_response(account)

        logger.info(
            "account.minted",
            extra={
                "account_id": response.id,
                "user_key": user_key,
                "amount": units,
                "balance": str(response.balance),
            },
        )
        return response

    # ------------------------------------------------------------------
    # Transfers and history
    # ------------------------------------------------------------------
    def transfer(
        self,
        txn_id: str,
        sender_key: str,
        receiver_key: str,
        currency_id: int,
        amount: AmountLike,
    ) -> tuple[AccountResponse, AccountResponse]:
        units = to_positive_units(amount)
        if sender_key == receiver_key:
            raise ValueError("Cannot transfer to the same account")

        with atomic(self.session):
            self.transaction_log.ensure_unused(txn_id)
            self._get_currency(currency_id)
            source = self.repository.find_account(sender_key, currency_id)
            if source is None:
                raise AccountNotFoundError(
                    f"User {sender_key} has no account in currency {currency_id}"
                )
            dest = self.resolver.resolve(receiver_key, currency_id)

            try:
                source = self.repository.adjust_balance(source.id, -units)
            except InsufficientFundsError as exc:
                raise InsufficientFundsError("Insufficient funds for transfer") from exc
            dest = self.repository.adjust_balance(dest.id, units)
            self.transaction_log.append(txn_id, source.id, dest.id, units)

            source_response = account_to_response(source)
            dest_response = account_to_response(dest)

        logger.info(
            "transfer.completed",
            extra={
                "uuid": txn_id,
                "source_account_id": source_response.id,
                "dest_account_id": dest_response.id,
                "amount": units,
            },
        )
        return source_response, dest_response

    def get_transaction(self, uuid: str) -> TransactionResponse:
        with atomic(self.session):
            return transaction_to_response(self.transaction_log.get(uuid))

    def list_user_transactions(
        self,
        user_key: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[TransactionResponse]:
        if not 1 <= limit <= MAX_HISTORY_LIMIT:
            raise ValueError(f"limit must be between 1 and {MAX_HISTORY_LIMIT}")
        with atomic(self.session):
            account_ids = [
                account.id for account in self.repository.list_accounts_for_user(user_key)
            ]
            return [
                transaction_to_response(txn)
                for txn in self.transaction_log.for_accounts(account_ids, limit)
            ]
