from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import select

from order_index.core.errors import TransientStoreError
from order_index.models.index_tables import SubscriptionIndex
from order_index.services.index_schema import INDEX_OPTIONS, ORDER_INDEX, SUBSCRIPTION_INDEX
from order_index.services.index_types import OrderIndexRow, SubscriptionIndexRow
from order_index.services.index_upsert import upsert, upsert_or_raise
from tests.helpers.seed import count_rows, index_row

pytestmark = pytest.mark.grp_index


def _row(order_id: int = 1, **kw) -> dict:
    base = OrderIndexRow(
        order_id=order_id,
        order_number=str(order_id),
        user_id=0,
        customer_email="",
        billing_email="a@x.com",
        customer_name="",
        billing_name="a b",
        shipping_name="",
        billing_city="ithaca",
        shipping_city="",
        billing_postcode="14850",
        shipping_postcode="",
    ).as_params()
    base.update(kw)
    return base


@pytest.mark.asyncio
async def test_upsert_inserts_then_overwrites(session):
    assert await upsert(session, ORDER_INDEX, _row(1)) is True
    assert await upsert(session, ORDER_INDEX, _row(1, billing_city="dryden")) is True
    assert await upsert(session, ORDER_INDEX, _row(1, billing_city="dryden")) is True

    assert await count_rows(session, "customer_order_index") == 1
    row = await index_row(session, 1)
    assert row["billing_city"] == "dryden"
    assert row["billing_email"] == "a@x.com"


@pytest.mark.asyncio
async def test_upsert_failure_is_logged_and_isolated(session, caplog):
    assert await upsert(session, ORDER_INDEX, _row(1)) is True

    # NOT NULL 违反：只回滚本条，外层事务可继续
    assert await upsert(session, ORDER_INDEX, _row(2, order_number=None)) is False
    assert "index upsert failed" in caplog.text

    assert await upsert(session, ORDER_INDEX, _row(3)) is True
    await session.commit()
    assert await count_rows(session, "customer_order_index") == 2


@pytest.mark.asyncio
async def test_upsert_or_raise_reports_table_and_key(session):
    with pytest.raises(TransientStoreError) as ei:
        await upsert_or_raise(session, ORDER_INDEX, _row(9, billing_email=None))
    assert ei.value.table == "customer_order_index"
    assert ei.value.key == {"order_id": 9}


@pytest.mark.asyncio
async def test_upsert_rejects_incomplete_row(session):
    with pytest.raises(ValueError):
        await upsert_or_raise(session, INDEX_OPTIONS, {"name": "x"})


@pytest.mark.asyncio
async def test_subscription_upsert_binds_decimal_and_dates(session):
    row = SubscriptionIndexRow(
        subscription_id=50,
        order_total=Decimal("12.30"),
        start_date=datetime(2024, 1, 1),
        trial_end_date=None,
        next_payment_date=datetime(2024, 2, 1),
        end_date=None,
        last_payment_date=None,
    )
    assert await upsert(session, SUBSCRIPTION_INDEX, row.as_params()) is True
    await session.commit()

    got = (await session.execute(select(SubscriptionIndex))).scalar_one()
    assert got.subscription_id == 50
    assert got.order_total == Decimal("12.30")
    assert got.next_payment_date == datetime(2024, 2, 1)
    assert got.end_date is None
