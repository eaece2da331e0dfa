from decimal import Decimal

import pytest

from order_index.models.enum import RecordKind
from tests.helpers.seed import make_order, make_subscription

pytestmark = pytest.mark.grp_index

PAID = ("processing", "completed")


@pytest.mark.asyncio
async def test_order_customer(session, store, users, index_engine):
    uid = await users.create_user(session, email="a@x.com")
    oid = await make_order(session, store, user_id=uid)
    guest = await make_order(session, store)

    assert await index_engine.order_customer(session, oid) == uid
    assert await index_engine.order_customer(session, guest) == 0
    # 没建过索引的 id
    assert await index_engine.order_customer(session, 987654) == 0


@pytest.mark.asyncio
async def test_customers_orders_by_kind(session, store, users, index_engine):
    uid = await users.create_user(session, email="a@x.com")
    o1 = await make_order(session, store, user_id=uid)
    o2 = await make_order(session, store, user_id=uid)
    sub = await make_subscription(session, store, user_id=uid, parent_id=o1)
    await make_order(session, store)

    assert await index_engine.customers_orders(session, uid) == [o2, o1]
    assert await index_engine.customers_orders(session, uid, RecordKind.SUBSCRIPTION) == [sub]
    # 游客不走这条路径
    assert await index_engine.customers_orders(session, 0) == []


@pytest.mark.asyncio
async def test_guest_orders(session, store, users, index_engine):
    uid = await users.create_user(session, email="a@x.com")
    g1 = await make_order(session, store)
    await make_order(session, store, user_id=uid)
    g2 = await make_order(session, store, user_id=0)

    assert await index_engine.guest_orders(session) == [g2, g1]


@pytest.mark.asyncio
async def test_customer_summary_lookups(session, store, users, index_engine):
    uid = await users.create_user(session, email="a@x.com")
    o1 = await make_order(session, store, user_id=uid, total="10.50", status="completed")
    o2 = await make_order(session, store, user_id=uid, total="4.25", status="processing")
    o3 = await make_order(session, store, user_id=uid, total="99", status="cancelled")
    await make_order(session, store, total="1000", status="completed")

    assert await index_engine.customer_order_count(session, uid) == 3
    assert await index_engine.customer_last_order(session, uid) == o3
    assert await index_engine.customer_last_order(session, uid, statuses=PAID) == o2
    assert await index_engine.customer_last_order(session, 0) is None

    spent = await index_engine.customer_total_spent(session, uid, paid_statuses=PAID)
    assert spent == Decimal("14.75")
    assert await index_engine.customer_total_spent(session, uid, paid_statuses=()) == Decimal("0.00")
    assert o1 < o2 < o3


@pytest.mark.asyncio
async def test_customer_change_moves_orders_between_customers(session, store, users, index_engine):
    a = await users.create_user(session, email="a@x.com")
    b = await users.create_user(session, email="b@x.com")
    oid = await make_order(session, store, user_id=a)

    await store.set_attribute(session, oid, "_customer_user", str(b))

    assert await index_engine.customers_orders(session, a) == []
    assert await index_engine.customers_orders(session, b) == [oid]
    assert await index_engine.order_customer(session, oid) == b
