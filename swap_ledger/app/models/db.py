from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, UTC
from enum import Enum
from typing import Optional, Union
from sqlalchemy import BigInteger, CheckConstraint, UniqueConstraint
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(UTC)


class SwapStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TargetedTaker:
    """Only the owner of ``account_id`` may accept."""

    account_id: int


@dataclass(frozen=True)
class OpenTaker:
    """Anyone but the maker may accept; the filler is recorded on acceptance."""


SwapTaker = Union[TargetedTaker, OpenTaker]


class Currency(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    scope_key: str = Field(unique=True, index=True, max_length=64)
    name: str = Field(unique=True, max_length=64)
    ticker: str = Field(unique=True, max_length=16)
    created_at: datetime = Field(default_factory=utcnow)

class Account(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("user_key", "currency_id", name="uk_account_user_currency"),
        CheckConstraint("balance >= 0", name="ck_account_balance_nonneg"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_key: str = Field(index=True, max_length=64)
    currency_id: int = Field(foreign_key="currency.id", index=True)
    balance: int = Field(default=0, sa_type=BigInteger)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

class Swap(SQLModel, table=True):
    __tablename__ = "currency_swap"
    __table_args__ = (
        CheckConstraint("maker_amount > 0", name="ck_swap_maker_amount_pos"),
        CheckConstraint("taker_amount > 0", name="ck_swap_taker_amount_pos"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    maker_account_id: int = Field(foreign_key="account.id", index=True)
    taker_account_id: Optional[int] = Field(
        default=None, foreign_key="account.id", index=True
    )
    maker_currency_id: int = Field(foreign_key="currency.id")
    taker_currency_id: int = Field(foreign_key="currency.id")
    maker_amount: int = Field(sa_type=BigInteger)
    taker_amount: int = Field(sa_type=BigInteger)
    status: SwapStatus = Field(default=SwapStatus.PENDING, index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def taker(self) -> SwapTaker:
        if self.taker_account_id is None:
            return OpenTaker()
        return TargetedTaker(self.taker_account_id)

class Transaction(SQLModel, table=True):
    __tablename__ = "ledger_transaction"

    uuid: str = Field(primary_key=True, max_length=64)
    sender_account_id: int = Field(foreign_key="account.id", index=True)
    receiver_account_id: int = Field(foreign_key="account.id", index=True)
    amount: int = Field(sa_type=BigInteger)
    created_at: datetime = Field(default_factory=utcnow, index=True)
