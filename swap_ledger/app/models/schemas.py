from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from .db import SwapStatus

PositiveAmount = Annotated[
    Decimal, Field(gt=0, max_digits=18, decimal_places=8, description="Amount with up to 8 decimal places")
]

class CurrencyCreate(BaseModel):
    scope_key: str = Field(..., min_length=1, max_length=64, description="Guild or other scope owning the currency")
    name: str = Field(..., min_length=1, max_length=64)
    ticker: str = Field(..., min_length=3, max_length=4)

class CurrencyResponse(BaseModel):
    id: int
    scope_key: str
    name: str
    ticker: str
    created_at: datetime

class SupplyResponse(BaseModel):
    currency_id: int
    circulating: Decimal
    escrowed: Decimal
    total: Decimal

class AccountResponse(BaseModel):
    id: int
    user_key: str
    currency_id: int
    balance: Decimal = Field(..., ge=0)
    created_at: datetime
    updated_at: datetime

class MintRequest(BaseModel):
    amount: Decimal = Field(..., max_digits=18, decimal_places=8, description="Signed adjustment; negative burns")

class TransferRequest(BaseModel):
    sender_key: str = Field(..., min_length=1)
    receiver_key: str = Field(..., min_length=1)
    currency_id: int
    amount: PositiveAmount

class TransferResponse(BaseModel):
    source: AccountResponse
    dest: AccountResponse

class TransactionResponse(BaseModel):
    uuid: str
    sender_account_id: int
    receiver_account_id: int
    amount: Decimal
    created_at: datetime

class TargetedTakerSpec(BaseModel):
    kind: Literal["targeted"] = "targeted"
    account_id: int

class OpenTakerSpec(BaseModel):
    kind: Literal["open"] = "open"

class SwapCreate(BaseModel):
    maker_account_id: int
    maker_currency_id: int
    taker_currency_id: int
    maker_amount: PositiveAmount
    taker_amount: PositiveAmount
    taker: Annotated[
        Union[TargetedTakerSpec, OpenTakerSpec], Field(discriminator="kind")
    ] = Field(default_factory=OpenTakerSpec)

class SwapAccept(BaseModel):
    user_key: str = Field(..., min_length=1, description="User accepting the swap")
    txn_id_a: str = Field(..., min_length=1, max_length=64, description="Id for the taker -> maker leg")
    txn_id_b: str = Field(..., min_length=1, max_length=64, description="Id for the maker -> taker leg")

class SwapResponse(BaseModel):
    id: int
    maker_account_id: int
    taker_account_id: Optional[int] = None
    maker_currency_id: int
    taker_currency_id: int
    maker_amount: Decimal
    taker_amount: Decimal
    status: SwapStatus
    created_at: datetime
    updated_at: datetime
