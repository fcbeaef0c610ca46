import uuid
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from ..core.db import get_session, set_engine
from ..core import db as core_db
from ..main import app


@pytest.fixture
def client(engine) -> TestClient:
    previous_engine = core_db.engine
    set_engine(engine)

    def _get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session_override

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    set_engine(previous_engine)


def _create_currency(client: TestClient, scope: str, ticker: str) -> int:
    response = client.post(
        "/currencies",
        json={"scope_key": scope, "name": f"{ticker} coin", "ticker": ticker},
    )
    assert response.status_code == 201
    return response.json()["id"]


def _mint(client: TestClient, user: str, currency_id: int, amount: str) -> dict:
    response = client.post(f"/accounts/{user}/{currency_id}/mint", json={"amount": amount})
    assert response.status_code == 200
    return response.json()


def _accept(client: TestClient, swap_id: int, user: str, ids=None):
    txn_a, txn_b = ids or (str(uuid.uuid4()), str(uuid.uuid4()))
    return client.post(
        f"/swaps/{swap_id}/accept",
        json={"user_key": user, "txn_id_a": txn_a, "txn_id_b": txn_b},
    )


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_targeted_swap_round_trip(client: TestClient) -> None:
    x = _create_currency(client, "guild-x", "XXA")
    y = _create_currency(client, "guild-y", "YYA")
    maker = _mint(client, "maker", x, "100")
    taker = _mint(client, "taker", y, "15")

    created = client.post(
        "/swaps",
        json={
            "maker_account_id": maker["id"],
            "maker_currency_id": x,
            "taker_currency_id": y,
            "maker_amount": "40",
            "taker_amount": "10",
            "taker": {"kind": "targeted", "account_id": taker["id"]},
        },
    )
    assert created.status_code == 201
    swap = created.json()
    assert swap["status"] == "pending"
    assert Decimal(client.get(f"/accounts/maker/{x}").json()["balance"]) == Decimal("60")

    ids = (str(uuid.uuid4()), str(uuid.uuid4()))
    accepted = _accept(client, swap["id"], "taker", ids)
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"

    balances = {a["currency_id"]: Decimal(a["balance"]) for a in client.get("/accounts/taker").json()}
    assert balances == {x: Decimal("40"), y: Decimal("5")}
    assert Decimal(client.get(f"/transactions/{ids[0]}").json()["amount"]) == Decimal("10")

    retry = _accept(client, swap["id"], "taker", ids)
    assert retry.status_code == 409
    assert retry.json()["kind"] == "duplicate_transaction_id"


def test_open_swap_listing_and_cancel(client: TestClient) -> None:
    x = _create_currency(client, "guild-x", "XXA")
    y = _create_currency(client, "guild-y", "YYA")
    maker = _mint(client, "maker", x, "100")

    swap = client.post(
        "/swaps",
        json={
            "maker_account_id": maker["id"],
            "maker_currency_id": x,
            "taker_currency_id": y,
            "maker_amount": "20",
            "taker_amount": "5",
        },
    ).json()
    assert [s["id"] for s in client.get("/swaps/open").json()] == [swap["id"]]
    assert [s["id"] for s in client.get("/swaps").json()] == [swap["id"]]
    assert [
        s["id"] for s in client.get(f"/swaps/maker/{maker['id']}", params={"pending_only": True}).json()
    ] == [swap["id"]]

    own = _accept(client, swap["id"], "maker")
    assert own.status_code == 403
    assert own.json()["kind"] == "cannot_accept_own_swap"

    cancelled = client.post(f"/swaps/{swap['id']}/cancel")
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"
    assert Decimal(client.get(f"/currencies/{x}/supply").json()["total"]) == Decimal("100")

    again = client.post(f"/swaps/{swap['id']}/cancel")
    assert again.status_code == 409
    assert again.json()["kind"] == "swap_not_pending"


def test_accept_with_insufficient_balance_returns_409(client: TestClient) -> None:
    x = _create_currency(client, "guild-x", "XXA")
    y = _create_currency(client, "guild-y", "YYA")
    maker = _mint(client, "maker", x, "100")
    _mint(client, "poor", y, "1")
    swap = client.post(
        "/swaps",
        json={
            "maker_account_id": maker["id"],
            "maker_currency_id": x,
            "taker_currency_id": y,
            "maker_amount": "20",
            "taker_amount": "5",
        },
    ).json()

    response = _accept(client, swap["id"], "poor")

    assert response.status_code == 409
    assert response.json()["kind"] == "insufficient_balance"
    assert client.get(f"/swaps/{swap['id']}").json()["status"] == "pending"


def test_transfer_uses_idempotency_key(client: TestClient) -> None:
    x = _create_currency(client, "guild-x", "XXA")
    _mint(client, "alice", x, "50")
    key = str(uuid.uuid4())
    payload = {"sender_key": "alice", "receiver_key": "bob", "currency_id": x, "amount": "20"}

    first = client.post("/transfers", json=payload, headers={"Idempotency-Key": key})
    assert first.status_code == 200
    assert Decimal(first.json()["dest"]["balance"]) == Decimal("20")

    second = client.post("/transfers", json=payload, headers={"Idempotency-Key": key})
    assert second.status_code == 409
    assert Decimal(client.get(f"/accounts/alice/{x}").json()["balance"]) == Decimal("30")
    assert [t["uuid"] for t in client.get("/users/bob/transactions").json()] == [key]


def test_transfer_rejects_self_transfer(client: TestClient) -> None:
    x = _create_currency(client, "guild-x", "XXA")
    _mint(client, "alice", x, "50")

    response = client.post(
        "/transfers",
        json={"sender_key": "alice", "receiver_key": "alice", "currency_id": x, "amount": "1"},
        headers={"Idempotency-Key": str(uuid.uuid4())},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot transfer to the same account"


def test_missing_resources_return_404(client: TestClient) -> None:
    assert client.get("/swaps/77").status_code == 404
    assert client.get("/currencies/77").status_code == 404
    assert client.get("/accounts/nobody/77").status_code == 404
    assert client.get(f"/transactions/{uuid.uuid4()}").status_code == 404


def test_reserved_ticker_returns_400(client: TestClient) -> None:
    response = client.post(
        "/currencies", json={"scope_key": "guild-x", "name": "Dollar", "ticker": "USD"}
    )
    assert response.status_code == 400
