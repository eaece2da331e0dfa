# order_index/services/index_engine.py
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, ContextManager, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from order_index.models.enum import RecordKind
from order_index.ports import CustomerDirectory, RecordSource, SubscriptionLinkage
from order_index.services import index_lookup
from order_index.services.index_trigger import ChangeTrigger
from order_index.services.record_store import SqlCustomerDirectory, SqlRecordSource
from order_index.services.subscription_linkage import RecordSubscriptionLinkage

logger = logging.getLogger("coidx.engine")


class IndexEngine:
    """
    索引引擎：进程启动时构造一次，显式传给所有使用方
    （宿主存储的观察者 / 查询层 / 批量重建 CLI / HTTP 层）。

    - trigger：宿主写入回调 + 重算路径
    - 其余方法：基于索引的只读查找
    """

    def __init__(
        self,
        *,
        source: RecordSource,
        customers: CustomerDirectory,
        linkage: SubscriptionLinkage,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.source = source
        self.trigger = ChangeTrigger(
            source=source,
            customers=customers,
            linkage=linkage,
            clock=clock,
        )

    # ---- 维护 ----
    async def recompute(self, session: AsyncSession, record_id: int, *, cascade: bool = True) -> bool:
        return await self.trigger.recompute(session, record_id, cascade=cascade)

    async def refresh_customer(self, session: AsyncSession, user_id: int) -> bool:
        return await self.trigger.refresh_customer(session, user_id)

    def checkout_processing(self) -> ContextManager[None]:
        return self.trigger.checkout_processing()

    # ---- 查找 ----
    async def order_customer(self, session: AsyncSession, order_id: int) -> int:
        return await index_lookup.order_customer(session, order_id)

    async def customers_orders(
        self,
        session: AsyncSession,
        user_id: int,
        kind: RecordKind = RecordKind.ORDER,
    ) -> List[int]:
        return await index_lookup.customers_orders(session, user_id, kind)

    async def guest_orders(self, session: AsyncSession) -> List[int]:
        return await index_lookup.guest_orders(session)

    async def customer_order_count(self, session: AsyncSession, user_id: int) -> int:
        return await index_lookup.customer_order_count(session, user_id)

    async def customer_last_order(
        self,
        session: AsyncSession,
        user_id: int,
        *,
        statuses: Optional[Sequence[str]] = None,
    ) -> Optional[int]:
        return await index_lookup.customer_last_order(session, user_id, statuses=statuses)

    async def customer_total_spent(
        self,
        session: AsyncSession,
        user_id: int,
        *,
        paid_statuses: Sequence[str],
    ) -> Decimal:
        return await index_lookup.customer_total_spent(
            session, user_id, paid_statuses=paid_statuses
        )


def build_index_engine(
    *,
    source: Optional[RecordSource] = None,
    customers: Optional[CustomerDirectory] = None,
    linkage: Optional[SubscriptionLinkage] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> IndexEngine:
    """默认装配：SQL 宿主存储 + 基于 parent_id / 续费属性的订阅关联。"""
    engine = IndexEngine(
        source=source or SqlRecordSource(),
        customers=customers or SqlCustomerDirectory(),
        linkage=linkage or RecordSubscriptionLinkage(),
        clock=clock,
    )
    logger.debug("index engine assembled")
    return engine
