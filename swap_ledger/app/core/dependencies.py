from fastapi import Depends
from sqlmodel import Session

from ..services import LedgerRepository, LedgerService, SwapEngine, SwapQueries
from .db import get_session

def get_ledger_service(session: Session = Depends(get_session)) -> LedgerService:
    repository = LedgerRepository(session)
    return LedgerService(session, repository)

def get_swap_engine(session: Session = Depends(get_session)) -> SwapEngine:
    repository = LedgerRepository(session)
    return SwapEngine(session, repository)

def get_swap_queries(session: Session = Depends(get_session)) -> SwapQueries:
    repository = LedgerRepository(session)
    return SwapQueries(session, repository)
