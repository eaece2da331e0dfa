# tests/helpers/seed.py
"""
测试造数：通过宿主存储写入，索引由触发器同步维护。
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from order_index.models.enum import RecordKind
from order_index.models.index_tables import SubscriptionIndex
from order_index.services import record_attributes as attr
from order_index.services.record_store import RecordStore

# 所有依赖时钟的断言都用这个固定时刻
FIXED_NOW = datetime(2024, 5, 6, 7, 8, 9)


def order_attrs(
    *,
    user_id: int = 0,
    number: Optional[str] = None,
    billing_email: str = "",
    billing_first: str = "",
    billing_last: str = "",
    shipping_first: str = "",
    shipping_last: str = "",
    billing_city: str = "",
    shipping_city: str = "",
    billing_postcode: str = "",
    shipping_postcode: str = "",
    total: Optional[str] = None,
) -> Dict[str, Optional[str]]:
    d: Dict[str, Optional[str]] = {
        attr.CUSTOMER_USER: str(user_id),
        attr.BILLING_EMAIL: billing_email,
        attr.BILLING_FIRST_NAME: billing_first,
        attr.BILLING_LAST_NAME: billing_last,
        attr.SHIPPING_FIRST_NAME: shipping_first,
        attr.SHIPPING_LAST_NAME: shipping_last,
        attr.BILLING_CITY: billing_city,
        attr.SHIPPING_CITY: shipping_city,
        attr.BILLING_POSTCODE: billing_postcode,
        attr.SHIPPING_POSTCODE: shipping_postcode,
    }
    if number is not None:
        d[attr.ORDER_NUMBER] = number
    if total is not None:
        d[attr.ORDER_TOTAL] = total
    return d


async def make_order(
    session: AsyncSession,
    store: RecordStore,
    *,
    status: str = "processing",
    record_id: Optional[int] = None,
    **kwargs,
) -> int:
    return await store.create_record(
        session,
        kind=RecordKind.ORDER,
        status=status,
        record_id=record_id,
        attributes=order_attrs(**kwargs),
    )


async def make_subscription(
    session: AsyncSession,
    store: RecordStore,
    *,
    parent_id: Optional[int] = None,
    record_id: Optional[int] = None,
    schedule: Optional[Dict[str, str]] = None,
    **kwargs,
) -> int:
    attributes = order_attrs(**kwargs)
    attributes.update(schedule or {})
    return await store.create_record(
        session,
        kind=RecordKind.SUBSCRIPTION,
        status="active",
        parent_id=parent_id,
        record_id=record_id,
        attributes=attributes,
    )


async def index_row(session: AsyncSession, order_id: int) -> Optional[dict]:
    row = (
        (
            await session.execute(
                text("SELECT * FROM customer_order_index WHERE order_id = :oid"),
                {"oid": int(order_id)},
            )
        )
        .mappings()
        .first()
    )
    return dict(row) if row else None


async def subscription_row(session: AsyncSession, subscription_id: int) -> Optional[SubscriptionIndex]:
    # 走 ORM 读，拿到 Decimal / datetime；populate_existing 避免拿到旧对象
    stmt = (
        select(SubscriptionIndex)
        .where(SubscriptionIndex.subscription_id == int(subscription_id))
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def count_rows(session: AsyncSession, table: str) -> int:
    return int((await session.execute(text(f"SELECT COUNT(1) FROM {table}"))).scalar() or 0)
