from .db import Account as AccountModel
from .db import Currency as CurrencyModel
from .db import OpenTaker, SwapStatus, SwapTaker, TargetedTaker
from .db import Swap as SwapModel
from .db import Transaction as TransactionModel
from .schemas import (
    AccountResponse,
    CurrencyCreate,
    CurrencyResponse,
    MintRequest,
    OpenTakerSpec,
    SupplyResponse,
    SwapAccept,
    SwapCreate,
    SwapResponse,
    TargetedTakerSpec,
    TransactionResponse,
    TransferRequest,
    TransferResponse,
)

__all__ = [
    "AccountResponse",
    "CurrencyCreate",
    "CurrencyResponse",
    "MintRequest",
    "OpenTakerSpec",
    "SupplyResponse",
    "SwapAccept",
    "SwapCreate",
    "SwapResponse",
    "TargetedTakerSpec",
    "TransactionResponse",
    "TransferRequest",
    "TransferResponse",
    "AccountModel",
    "CurrencyModel",
    "SwapModel",
    "TransactionModel",
    "SwapStatus",
    "SwapTaker",
    "TargetedTaker",
    "OpenTaker",
]
