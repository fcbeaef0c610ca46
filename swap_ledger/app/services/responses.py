from __future__ import annotations

from datetime import UTC, datetime

from ..core.money import from_units
from ..models import (
    AccountModel,
    AccountResponse,
    CurrencyModel,
    CurrencyResponse,
    SwapModel,
    SwapResponse,
    TransactionModel,
    TransactionResponse,
)


def as_utc(value: datetime) -> datetime:
    """SQLite hands stored timestamps back naive; they are always UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def account_to_response(account: AccountModel) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        user_key=account.user_key,
        currency_id=account.currency_id,
        balance=from_units(account.balance),
        created_at=as_utc(account.created_at),
        updated_at=as_utc(account.updated_at),
    )


def currency_to_response(currency: CurrencyModel) -> CurrencyResponse:
    return CurrencyResponse(
        id=currency.id,
        scope_key=currency.scope_key,
        name=currency.name,
        ticker=currency.ticker,
        created_at=as_utc(currency.created_at),
    )


def swap_to_response(swap: SwapModel) -> SwapResponse:
    return SwapResponse(
        id=swap.id,
        maker_account_id=swap.maker_account_id,
        taker_account_id=swap.taker_account_id,
        maker_currency_id=swap.maker_currency_id,
        taker_currency_id=swap.taker_currency_id,
        maker_amount=from_units(swap.maker_amount),
        taker_amount=from_units(swap.taker_amount),
        status=swap.status,
        created_at=as_utc(swap.created_at),
        updated_at=as_utc(swap.updated_at),
    )


def transaction_to_response(txn: TransactionModel) -> TransactionResponse:
    return TransactionResponse(
        uuid=txn.uuid,
        sender_account_id=txn.sender_account_id,
        receiver_account_id=txn.receiver_account_id,
        amount=from_units(txn.amount),
        created_at=as_utc(txn.created_at),
    )
