from .accounts import AccountResolver
from .ledger import LedgerService
from .queries import SwapQueries
from .repository import LedgerRepository
from .swaps import SwapEngine
from .transactions import TransactionLog

__all__ = [
    "AccountResolver",
    "LedgerRepository",
    "LedgerService",
    "SwapEngine",
    "SwapQueries",
    "TransactionLog",
]
