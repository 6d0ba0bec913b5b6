"""End-to-end API flow for users and the bid subsystem (in-memory ledger store)."""

from collections.abc import Callable

from httpx import AsyncClient

from src.rl_common.enums import Role

BASE = "/api/v1"

AuthHeaders = Callable[..., dict[str, str]]


async def _purchase(
    client: AsyncClient, auth_headers: AuthHeaders, user_id: str, amount: int
) -> None:
    resp = await client.post(
        f"{BASE}/admin/riplimit/purchases",
        json={"user_id": user_id, "amount": amount, "reference_id": "pay_1"},
        headers=auth_headers("svc-payments", Role.ADMIN),
    )
    assert resp.status_code == 200, resp.text


async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_requires_token(client: AsyncClient) -> None:
    resp = await client.get(f"{BASE}/riplimit/balance")
    assert resp.status_code == 401


async def test_invalid_token(client: AsyncClient) -> None:
    resp = await client.get(
        f"{BASE}/riplimit/balance", headers={"Authorization": "Bearer nope"}
    )
    assert resp.status_code == 401


async def test_unknown_user_sees_zero_balance(
    client: AsyncClient, auth_headers: AuthHeaders
) -> None:
    resp = await client.get(f"{BASE}/riplimit/balance", headers=auth_headers("new-user"))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total_balance"] == 0
    assert data["open_holds"] == []


async def test_bid_lifecycle(client: AsyncClient, auth_headers: AuthHeaders) -> None:
    await _purchase(client, auth_headers, "u1", 1000)
    user = auth_headers("u1")

    resp = await client.post(
        f"{BASE}/riplimit/holds",
        json={"bid_id": "bid-42", "amount": 300, "auction_id": "auc-1"},
        headers=user,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "OPEN"

    dup = await client.post(
        f"{BASE}/riplimit/holds", json={"bid_id": "bid-42", "amount": 100}, headers=user
    )
    assert dup.status_code == 409
    assert dup.json()["code"] == 3001

    balance = (await client.get(f"{BASE}/riplimit/balance", headers=user)).json()["data"]
    assert (balance["available_balance"], balance["blocked_balance"]) == (700, 300)
    assert balance["available_inr"] == 35.0

    holds = (await client.get(f"{BASE}/riplimit/holds", headers=user)).json()["data"]
    assert [h["bid_id"] for h in holds["items"]] == ["bid-42"]

    resolved = await client.post(
        f"{BASE}/riplimit/holds/bid-42/resolve",
        json={"outcome": "won"},
        headers=auth_headers("svc-auctions", Role.ADMIN),
    )
    assert resolved.status_code == 200
    assert resolved.json()["data"]["transaction"]["type"] == "bid_capture"

    again = await client.post(
        f"{BASE}/riplimit/holds/bid-42/resolve",
        json={"outcome": "won"},
        headers=auth_headers("svc-auctions", Role.ADMIN),
    )
    assert again.json()["data"]["already_resolved"] is True

    history = (
        await client.get(f"{BASE}/riplimit/transactions?page=1&page_size=2", headers=user)
    ).json()["data"]
    assert [t["type"] for t in history["items"]] == ["bid_capture", "bid_block"]
    assert history["pagination"]["total_count"] == 3
    assert history["pagination"]["has_next_page"] is True


async def test_insufficient_balance(client: AsyncClient, auth_headers: AuthHeaders) -> None:
    await _purchase(client, auth_headers, "u1", 700)
    resp = await client.post(
        f"{BASE}/riplimit/holds",
        json={"bid_id": "bid-43", "amount": 1500},
        headers=auth_headers("u1"),
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == 2001
    assert body["message"] == "Insufficient RipLimit. Required: 1500, Available: 700"


async def test_user_cannot_resolve(client: AsyncClient, auth_headers: AuthHeaders) -> None:
    resp = await client.post(
        f"{BASE}/riplimit/holds/bid-1/resolve",
        json={"outcome": "won"},
        headers=auth_headers("u1"),
    )
    assert resp.status_code == 403


async def test_user_cannot_purchase_credit(client: AsyncClient, auth_headers: AuthHeaders) -> None:
    resp = await client.post(
        f"{BASE}/admin/riplimit/purchases",
        json={"user_id": "u1", "amount": 100},
        headers=auth_headers("u1"),
    )
    assert resp.status_code == 403


async def test_invalid_transaction_filter(client: AsyncClient, auth_headers: AuthHeaders) -> None:
    resp = await client.get(
        f"{BASE}/riplimit/transactions?type=refund", headers=auth_headers("u1")
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == 2004


async def test_non_positive_hold_rejected_by_schema(
    client: AsyncClient, auth_headers: AuthHeaders
) -> None:
    resp = await client.post(
        f"{BASE}/riplimit/holds",
        json={"bid_id": "bid-1", "amount": 0},
        headers=auth_headers("u1"),
    )
    assert resp.status_code == 422


async def test_unknown_outcome(client: AsyncClient, auth_headers: AuthHeaders) -> None:
    await _purchase(client, auth_headers, "u1", 100)
    await client.post(
        f"{BASE}/riplimit/holds", json={"bid_id": "bid-1", "amount": 10},
        headers=auth_headers("u1"),
    )
    resp = await client.post(
        f"{BASE}/riplimit/holds/bid-1/resolve",
        json={"outcome": "draw"},
        headers=auth_headers("svc", Role.ADMIN),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == 3003


async def test_over_long_token_subject_unauthorized(
    client: AsyncClient, auth_headers: AuthHeaders
) -> None:
    resp = await client.get(f"{BASE}/riplimit/balance", headers=auth_headers("u" * 65))
    assert resp.status_code == 401


async def test_retried_hold_returns_same_hold(
    client: AsyncClient, auth_headers: AuthHeaders
) -> None:
    await _purchase(client, auth_headers, "u1", 1000)
    body = {"bid_id": "bid-7", "amount": 300}

    first = await client.post(f"{BASE}/riplimit/holds", json=body, headers=auth_headers("u1"))
    again = await client.post(f"{BASE}/riplimit/holds", json=body, headers=auth_headers("u1"))

    assert again.status_code == first.status_code
    assert again.json()["data"]["id"] == first.json()["data"]["id"]
    balance = (await client.get(f"{BASE}/riplimit/balance", headers=auth_headers("u1"))).json()
    assert balance["data"]["blocked_balance"] == 300
