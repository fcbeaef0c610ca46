from decimal import Decimal

import pytest
from sqlmodel import Session, SQLModel

from ..core.db import create_engine_for_url
from ..models import CurrencyCreate
from ..services import LedgerService, SwapEngine, SwapQueries


@pytest.fixture
def engine(tmp_path):
    test_engine = create_engine_for_url(f"sqlite:///{tmp_path / 'test.db'}")
    SQLModel.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as db_session:
        yield db_session


@pytest.fixture
def ledger(session) -> LedgerService:
    return LedgerService(session)


@pytest.fixture
def swaps(session) -> SwapEngine:
    return SwapEngine(session)


@pytest.fixture
def queries(session) -> SwapQueries:
    return SwapQueries(session)


@pytest.fixture
def currencies(ledger):
    """Three currencies X, Y and Z in separate scopes."""
    created = {}
    for scope, ticker in (("guild-x", "XXA"), ("guild-y", "YYA"), ("guild-z", "ZZA")):
        created[ticker[0]] = ledger.create_currency(
            CurrencyCreate(scope_key=scope, name=f"{ticker} coin", ticker=ticker)
        ).id
    return created


@pytest.fixture
def funded(ledger, currencies):
    """Mint ``amount`` of currency ``code`` to ``user`` and return the account id."""

    def _fund(user: str, code: str, amount: str) -> int:
        return ledger.mint(user, currencies[code], Decimal(amount)).id

    return _fund
