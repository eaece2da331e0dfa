# order_index/services/index_lookup.py
"""
基于订单索引的直接查找（只读）。
"""
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from order_index.models.enum import RecordKind
from order_index.services.index_schema import ORDER_INDEX
from order_index.services.record_attributes import ORDER_TOTAL


async def order_customer(session: AsyncSession, order_id: int) -> int:
    """下单客户 user_id；未建索引 / 游客 → 0。"""
    v = (
        await session.execute(
            text(f"SELECT user_id FROM {ORDER_INDEX.name} WHERE order_id = :oid"),
            {"oid": int(order_id)},
        )
    ).scalar()
    return abs(int(v or 0))


async def customers_orders(
    session: AsyncSession,
    user_id: int,
    kind: RecordKind = RecordKind.ORDER,
) -> List[int]:
    """
    某客户的全部记录 id（按 id 倒序）。

    user_id = 0 直接返回空：游客订单量级不可控，不走这条路径。
    """
    if not user_id or int(user_id) == 0:
        return []

    rows = await session.execute(
        text(
            f"""
            SELECT coi.order_id
              FROM {ORDER_INDEX.name} AS coi
             INNER JOIN records AS r ON r.id = coi.order_id
             WHERE coi.user_id = :uid
               AND r.kind = :kind
             ORDER BY coi.order_id DESC
            """
        ),
        {"uid": int(user_id), "kind": RecordKind(kind).value},
    )
    return [int(r[0]) for r in rows.all()]


async def guest_orders(session: AsyncSession) -> List[int]:
    """全部游客订单 id（代价高，慎用）。"""
    rows = await session.execute(
        text(f"SELECT order_id FROM {ORDER_INDEX.name} WHERE user_id = 0 ORDER BY order_id DESC")
    )
    return [int(r[0]) for r in rows.all()]


async def customer_order_count(session: AsyncSession, user_id: int) -> int:
    return len(await customers_orders(session, user_id, RecordKind.ORDER))


async def customer_last_order(
    session: AsyncSession,
    user_id: int,
    *,
    statuses: Optional[Sequence[str]] = None,
) -> Optional[int]:
    """客户最近一笔订单（最大 id）；可按状态过滤。"""
    if not user_id or int(user_id) <= 0:
        return None

    status_sql = ""
    params: dict = {"uid": int(user_id), "kind": RecordKind.ORDER.value}
    if statuses:
        status_sql = "AND r.status IN :statuses"
        params["statuses"] = list(statuses)

    stmt = text(
        f"""
        SELECT r.id
          FROM records AS r
         INNER JOIN {ORDER_INDEX.name} AS coi
            ON r.id = coi.order_id
           AND coi.user_id = :uid
         WHERE r.kind = :kind
           {status_sql}
         ORDER BY r.id DESC
         LIMIT 1
        """
    )
    if statuses:
        stmt = stmt.bindparams(bindparam("statuses", expanding=True))

    v = (await session.execute(stmt, params)).scalar()
    return int(v) if v is not None else None


async def customer_total_spent(
    session: AsyncSession,
    user_id: int,
    *,
    paid_statuses: Sequence[str],
) -> Decimal:
    """已支付订单的 _order_total 合计（经索引 JOIN 定位客户订单）。"""
    if not user_id or int(user_id) <= 0 or not paid_statuses:
        return Decimal("0.00")

    stmt = text(
        f"""
        SELECT COALESCE(SUM(CAST(a.value AS NUMERIC)), 0)
          FROM records AS r
         INNER JOIN {ORDER_INDEX.name} AS coi
            ON r.id = coi.order_id
           AND coi.user_id = :uid
          LEFT JOIN record_attributes AS a
            ON a.record_id = r.id
           AND a.name = :total_key
         WHERE r.kind = :kind
           AND r.status IN :statuses
        """
    ).bindparams(bindparam("statuses", expanding=True))

    v = (
        await session.execute(
            stmt,
            {
                "uid": int(user_id),
                "total_key": ORDER_TOTAL,
                "kind": RecordKind.ORDER.value,
                "statuses": list(paid_statuses),
            },
        )
    ).scalar()
    return Decimal(str(v or 0)).quantize(Decimal("0.01"))
