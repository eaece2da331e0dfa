# order_index/services/subscription_linkage.py
from __future__ import annotations

import logging
from typing import List

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from order_index.services.record_attributes import SUBSCRIPTION_RENEWAL

logger = logging.getLogger("coidx.linkage")


class RecordSubscriptionLinkage:
    """
    订单 → 关联订阅：
      - 父订单：records.parent_id = order_id 的订阅
      - 续费订单：订单属性 _subscription_renewal 指向的订阅
    结果去重、升序。
    """

    async def subscriptions_for_order(self, session: AsyncSession, order_id: int) -> List[int]:
        oid = int(order_id)
        found = set()

        rows = await session.execute(
            text(
                """
                SELECT id
                  FROM records
                 WHERE kind = 'subscription'
                   AND parent_id = :oid
                """
            ),
            {"oid": oid},
        )
        found.update(int(r[0]) for r in rows.all())

        renewal = (
            await session.execute(
                text(
                    """
                    SELECT value
                      FROM record_attributes
                     WHERE record_id = :oid
                       AND name = :name
                    """
                ),
                {"oid": oid, "name": SUBSCRIPTION_RENEWAL},
            )
        ).scalar()
        if renewal:
            try:
                sid = int(str(renewal).strip())
            except ValueError:
                logger.debug("order %s has non-numeric renewal link %r", oid, renewal)
                sid = 0
            if sid > 0:
                kind = (
                    await session.execute(
                        text("SELECT kind FROM records WHERE id = :sid"), {"sid": sid}
                    )
                ).scalar()
                if kind == "subscription":
                    found.add(sid)

        found.discard(oid)
        return sorted(found)
