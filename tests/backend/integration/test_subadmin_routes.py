import pytest


pytestmark = pytest.mark.asyncio


async def test_subadmin_creates_funded_seller(client, auth_header_factory, create_subadmin,
                                              assert_ledger_consistent):
    sub = await create_subadmin(balance=1000)
    headers = await auth_header_factory(sub)

    resp = await client.post(
        "/api/v1/subadmin/sellers",
        json={"username": "shop_one", "password": "Passw0rd!", "userCreationCharge": 10, "initialBalance": 300},
        headers=headers,
    )
    data = resp.json()["data"]
    assert resp.status_code == 200
    assert data["role"] == "seller"
    assert data["createdBy"] == str(sub.id)
    assert data["wallet"]["balance"] == 300
    assert data["walletBalanceAfter"] == 700

    profile = await client.get("/api/v1/subadmin/profile", headers=headers)
    prof = profile.json()["data"]
    assert prof["wallet"]["balance"] == 700
    assert prof["createdSellers"] == 1
    last = prof["wallet"]["transactions"][-1]
    assert (last["amount"], last["description"]) == (-300, "Seller creation: shop_one")
    await assert_ledger_consistent(sub)


async def test_subadmin_insufficient_balance(client, auth_header_factory, create_subadmin):
    sub = await create_subadmin(balance=100)
    headers = await auth_header_factory(sub)

    resp = await client.post(
        "/api/v1/subadmin/sellers",
        json={"username": "too_rich", "password": "Passw0rd!", "initialBalance": 250},
        headers=headers,
    )
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert detail["code"] == "INSUFFICIENT_BALANCE"
    assert detail["required"] == 250
    assert detail["current"] == 100
    assert detail["shortage"] == 150

    # Nothing was written
    roster = await client.get("/api/v1/subadmin/sellers", headers=headers)
    assert roster.json()["total"] == 0
    profile = await client.get("/api/v1/subadmin/profile", headers=headers)
    assert profile.json()["data"]["wallet"]["balance"] == 100


async def test_subadmin_sees_only_own_sellers(client, auth_header_factory, create_subadmin, create_seller):
    sub_a = await create_subadmin(balance=100)
    sub_b = await create_subadmin(balance=100)
    mine = await create_seller(balance=10, owner=sub_a)
    await create_seller(balance=10, owner=sub_b)
    await create_seller(balance=0)

    headers = await auth_header_factory(sub_a)
    resp = await client.get("/api/v1/subadmin/sellers", headers=headers)
    listing = resp.json()
    assert resp.status_code == 200
    assert listing["total"] == 1
    assert listing["items"][0]["id"] == str(mine.id)


async def test_subadmin_tops_up_own_seller(client, auth_header_factory, create_subadmin, create_seller,
                                           assert_ledger_consistent):
    sub = await create_subadmin(balance=500)
    seller = await create_seller(balance=100, owner=sub)
    headers = await auth_header_factory(sub)

    resp = await client.post(
        f"/api/v1/subadmin/sellers/{seller.id}/wallet",
        json={"amount": 150, "description": "weekly"},
        headers=headers,
    )
    body = resp.json()
    assert resp.status_code == 200
    assert body["balance"] == 250
    assert body["actorBalance"] == 250

    profile = await client.get("/api/v1/subadmin/profile", headers=headers)
    last = profile.json()["data"]["wallet"]["transactions"][-1]
    assert last["amount"] == -150
    assert last["description"] == f"Transfer to seller: {seller.username} - weekly"
    await assert_ledger_consistent(sub)
    await assert_ledger_consistent(seller)


async def test_subadmin_top_up_needs_funds(client, auth_header_factory, create_subadmin, create_seller):
    sub = await create_subadmin(balance=50)
    seller = await create_seller(balance=50, owner=sub)
    headers = await auth_header_factory(sub)

    resp = await client.post(
        f"/api/v1/subadmin/sellers/{seller.id}/wallet",
        json={"amount": 10},
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["shortage"] == 10


async def test_subadmin_withdrawal_only_debits_seller(client, auth_header_factory, create_subadmin,
                                                      create_seller):
    sub = await create_subadmin(balance=100)
    seller = await create_seller(balance=20, owner=sub)
    headers = await auth_header_factory(sub)

    resp = await client.post(
        f"/api/v1/subadmin/sellers/{seller.id}/wallet",
        json={"amount": -30},
        headers=headers,
    )
    body = resp.json()
    assert resp.status_code == 200
    assert body["balance"] == -10
    assert body["actorBalance"] == 80


async def test_subadmin_cannot_touch_foreign_seller(client, auth_header_factory, create_subadmin, create_seller):
    owner = await create_subadmin(balance=100)
    intruder = await create_subadmin(balance=100)
    seller = await create_seller(balance=10, owner=owner)
    headers = await auth_header_factory(intruder)

    resp = await client.post(
        f"/api/v1/subadmin/sellers/{seller.id}/wallet",
        json={"amount": 10},
        headers=headers,
    )
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "FORBIDDEN_NOT_OWNER"

    profile = await client.get("/api/v1/subadmin/profile", headers=headers)
    assert profile.json()["data"]["wallet"]["balance"] == 100


async def test_seller_cannot_use_subadmin_routes(client, auth_header_factory, create_seller):
    seller = await create_seller(balance=10)
    headers = await auth_header_factory(seller)

    resp = await client.post(
        "/api/v1/subadmin/sellers",
        json={"username": "nope_seller", "password": "Passw0rd!"},
        headers=headers,
    )
    assert resp.status_code == 403
