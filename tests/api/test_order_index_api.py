import pytest

from order_index.services import index_options as opts
from tests.helpers.seed import make_order, make_subscription

pytestmark = pytest.mark.grp_query


async def _seed(session, store, users) -> dict:
    uid = await users.create_user(session, email="alice@shop.cn", first_name="Alice", last_name="Wong")
    o1 = await make_order(
        session, store, user_id=uid, billing_first="John", billing_last="Smith",
        billing_city="Ithaca", total="12.00", status="completed",
    )
    o2 = await make_order(session, store, billing_first="Jane", billing_last="Doe", billing_city="Dryden")
    sub = await make_subscription(session, store, parent_id=o1, user_id=uid)
    await session.commit()
    return {"uid": uid, "o1": o1, "o2": o2, "sub": sub}


@pytest.mark.asyncio
async def test_search_box(client, session, store, users):
    ids = await _seed(session, store, users)

    r = await client.get("/order-index/search", params={"s": "city:ithaca"})
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["data"]["ids"] == [ids["o1"]]
    assert body["data"]["criteria"] == {"customer_city": "ithaca"}
    assert body["data"]["suppress_default_search"] is True

    r = await client.get("/order-index/search", params={"s": f"#{ids['o2']}"})
    assert r.json()["data"]["ids"] == [ids["o2"]]

    r = await client.get("/order-index/search", params={"s": "alice@shop.cn", "kind": "subscription"})
    assert r.json()["data"]["ids"] == [ids["sub"]]


@pytest.mark.asyncio
async def test_search_box_without_criteria_lists_everything(client, session, store, users):
    ids = await _seed(session, store, users)
    r = await client.get("/order-index/search", params={"s": "", "limit": 1})
    data = r.json()["data"]
    assert data["ids"] == [ids["o2"]]
    assert data["suppress_default_search"] is False


@pytest.mark.asyncio
async def test_structured_search(client, session, store, users):
    ids = await _seed(session, store, users)
    r = await client.post(
        "/order-index/search",
        json={"meta_key": "_customer_user", "meta_value": str(ids["uid"])},
    )
    assert r.status_code == 200
    assert r.json()["data"]["ids"] == [ids["o1"]]

    r = await client.post("/order-index/search", json={"customer_user": "abc"})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_order_customer_and_customer_routes(client, session, store, users):
    ids = await _seed(session, store, users)
    uid = ids["uid"]

    r = await client.get(f"/order-index/orders/{ids['o1']}/customer")
    assert r.json()["data"] == {"order_id": ids["o1"], "user_id": uid}

    r = await client.get(f"/order-index/customers/{uid}/orders")
    assert r.json()["data"]["ids"] == [ids["o1"]]
    r = await client.get(f"/order-index/customers/{uid}/orders", params={"kind": "subscription"})
    assert r.json()["data"]["ids"] == [ids["sub"]]

    r = await client.get(f"/order-index/customers/{uid}/summary")
    data = r.json()["data"]
    assert data["order_count"] == 1
    assert data["last_order_id"] == ids["o1"]
    assert data["total_spent"] == "12.00"

    r = await client.get("/order-index/guest-orders")
    assert r.json()["data"]["ids"] == [ids["o2"]]


@pytest.mark.asyncio
async def test_recompute_route(client, session, store, users):
    ids = await _seed(session, store, users)

    r = await client.post(f"/order-index/orders/{ids['o1']}/recompute")
    assert r.status_code == 200
    assert r.json()["data"] == {"record_id": ids["o1"], "updated": True}

    r = await client.post("/order-index/orders/999999/recompute")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_reindex_status_route(client, session):
    r = await client.get("/order-index/reindex/status")
    assert r.json()["data"] == {"status": None, "kill_switch": False}

    await opts.set_option(session, opts.STATUS, "2024-01-01 00:00:00: 1 of 2 batches updated")
    await opts.set_option(session, opts.KILL_SWITCH, 1)
    await session.commit()

    r = await client.get("/order-index/reindex/status")
    assert r.json()["data"] == {
        "status": "2024-01-01 00:00:00: 1 of 2 batches updated",
        "kill_switch": True,
    }


@pytest.mark.asyncio
async def test_metrics_endpoint(client, session, store, users):
    await _seed(session, store, users)
    await client.get("/order-index/search", params={"s": "smith"})

    r = await client.get("/metrics")
    assert r.status_code == 200
    assert "coidx_index_upserts_total" in r.text
    assert "coidx_search_requests_total" in r.text
