from fastapi import APIRouter, Depends, Header, status

from ..core.dependencies import get_ledger_service, get_swap_engine, get_swap_queries
from ..models import (
    AccountResponse,
    CurrencyCreate,
    CurrencyResponse,
    MintRequest,
    OpenTaker,
    SupplyResponse,
    SwapAccept,
    SwapCreate,
    SwapResponse,
    TargetedTaker,
    TargetedTakerSpec,
    TransactionResponse,
    TransferRequest,
    TransferResponse,
)
from ..services import LedgerService, SwapEngine, SwapQueries
from ..services.ledger import DEFAULT_HISTORY_LIMIT


currency_router = APIRouter(prefix="/currencies", tags=["currencies"])

@currency_router.post("", response_model=CurrencyResponse, status_code=status.HTTP_201_CREATED)
def create_currency(
    payload: CurrencyCreate,
    service: LedgerService = Depends(get_ledger_service),
) -> CurrencyResponse:
    return service.create_currency(payload)

@currency_router.get("", response_model=list[CurrencyResponse])
def list_currencies(service: LedgerService = Depends(get_ledger_service)) -> list[CurrencyResponse]:
    return service.list_currencies()

@currency_router.get("/ticker/{ticker}", response_model=CurrencyResponse)
def get_currency_by_ticker(
    ticker: str,
    service: LedgerService = Depends(get_ledger_service),
) -> CurrencyResponse:
    return service.get_currency_by_ticker(ticker)

@currency_router.get("/{currency_id}", response_model=CurrencyResponse)
def get_currency(
    currency_id: int,
    service: LedgerService = Depends(get_ledger_service),
) -> CurrencyResponse:
    return service.get_currency(currency_id)

@currency_router.get("/{currency_id}/supply", response_model=SupplyResponse)
def get_currency_supply(
    currency_id: int,
    service: LedgerService = Depends(get_ledger_service),
) -> SupplyResponse:
    return service.currency_supply(currency_id)

account_router = APIRouter(prefix="/accounts", tags=["accounts"])

@account_router.get("/{user_key}", response_model=list[AccountResponse])
def get_balances(
    user_key: str,
    service: LedgerService = Depends(get_ledger_service),
) -> list[AccountResponse]:
    return service.get_balances(user_key)

@account_router.get("/{user_key}/{currency_id}", response_model=AccountResponse)
def get_balance(
    user_key: str,
    currency_id: int,
    service: LedgerService = Depends(get_ledger_service),
) -> AccountResponse:
    return service.get_balance(user_key, currency_id)

@account_router.post("/{user_key}/{currency_id}/mint", response_model=AccountResponse)
def mint(
    user_key: str,
    currency_id: int,
    payload: MintRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> AccountResponse:
    return service.mint(user_key, currency_id, payload.amount)

transfer_router = APIRouter(tags=["transfers"])

@transfer_router.post("/transfers", response_model=TransferResponse)
def create_transfer(
    payload: TransferRequest,
    service: LedgerService = Depends(get_ledger_service),
    idempotency_key: str = Header(..., convert_underscores=False, alias="Idempotency-Key"),
) -> TransferResponse:
    source, dest = service.transfer(
        idempotency_key,
        payload.sender_key,
        payload.receiver_key,
        payload.currency_id,
        payload.amount,
    )
    return TransferResponse(source=source, dest=dest)

@transfer_router.get("/transactions/{uuid}", response_model=TransactionResponse)
def get_transaction(
    uuid: str,
    service: LedgerService = Depends(get_ledger_service),
) -> TransactionResponse:
    return service.get_transaction(uuid)

@transfer_router.get("/users/{user_key}/transactions", response_model=list[TransactionResponse])
def list_user_transactions(
    user_key: str,
    limit: int = DEFAULT_HISTORY_LIMIT,
    service: LedgerService = Depends(get_ledger_service),
) -> list[TransactionResponse]:
    return service.list_user_transactions(user_key, limit=limit)

swap_router = APIRouter(prefix="/swaps", tags=["swaps"])

@swap_router.post("", response_model=SwapResponse, status_code=status.HTTP_201_CREATED)
def create_swap(
    payload: SwapCreate,
    engine: SwapEngine = Depends(get_swap_engine),
    queries: SwapQueries = Depends(get_swap_queries),
) -> SwapResponse:
    if isinstance(payload.taker, TargetedTakerSpec):
        taker = TargetedTaker(payload.taker.account_id)
    else:
        taker = OpenTaker()
    swap_id = engine.create_swap(
        payload.maker_account_id,
        payload.maker_currency_id,
        payload.taker_currency_id,
        payload.maker_amount,
        payload.taker_amount,
        taker,
    )
    return queries.get_swap(swap_id)

@swap_router.get("", response_model=list[SwapResponse])
def list_pending_swaps(queries: SwapQueries = Depends(get_swap_queries)) -> list[SwapResponse]:
    return queries.all_pending()

@swap_router.get("/open", response_model=list[SwapResponse])
def list_open_swaps(queries: SwapQueries = Depends(get_swap_queries)) -> list[SwapResponse]:
    return queries.open_swaps()

@swap_router.get("/maker/{account_id}", response_model=list[SwapResponse])
def list_swaps_by_maker(
    account_id: int,
    pending_only: bool = False,
    queries: SwapQueries = Depends(get_swap_queries),
) -> list[SwapResponse]:
    if pending_only:
        return queries.pending_by_maker(account_id)
    return queries.by_maker(account_id)

@swap_router.get("/taker/{account_id}", response_model=list[SwapResponse])
def list_swaps_by_taker(
    account_id: int,
    queries: SwapQueries = Depends(get_swap_queries),
) -> list[SwapResponse]:
    return queries.by_taker(account_id)

@swap_router.get("/{swap_id}", response_model=SwapResponse)
def get_swap(
    swap_id: int,
    queries: SwapQueries = Depends(get_swap_queries),
) -> SwapResponse:
    return queries.get_swap(swap_id)

@swap_router.post("/{swap_id}/accept", response_model=SwapResponse)
def accept_swap(
    swap_id: int,
    payload: SwapAccept,
    engine: SwapEngine = Depends(get_swap_engine),
) -> SwapResponse:
    return engine.accept_swap(swap_id, payload.user_key, payload.txn_id_a, payload.txn_id_b)

@swap_router.post("/{swap_id}/cancel", response_model=SwapResponse)
def cancel_swap(
    swap_id: int,
    requested_by: str | None = None,
    engine: SwapEngine = Depends(get_swap_engine),
) -> SwapResponse:
    return engine.cancel_swap(swap_id, requested_by=requested_by)

@swap_router.post("/{swap_id}/complete", response_model=SwapResponse)
def complete_swap(
    swap_id: int,
    engine: SwapEngine = Depends(get_swap_engine),
) -> SwapResponse:
    return engine.complete_swap(swap_id)

__all__ = ["account_router", "currency_router", "swap_router", "transfer_router"]
