# order_index/services/index_trigger.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Callable, Iterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from order_index.metrics import RECOMPUTES
from order_index.models.enum import RecordKind
from order_index.ports import CustomerDirectory, RecordSource, SubscriptionLinkage
from order_index.services.index_row_builder import (
    build_order_row,
    build_subscription_row,
    normalize_text,
    parse_user_id,
    snapshot_from_attributes,
)
from order_index.services.index_schema import ORDER_INDEX, SUBSCRIPTION_INDEX
from order_index.services.index_types import OrderSnapshot, SubscriptionSnapshot
from order_index.services.index_upsert import upsert
from order_index.services.record_attributes import CUSTOMER_USER, triggers_recompute

logger = logging.getLogger("coidx.trigger")

# 当前任务是否处于“结账同步处理”中
_IN_CHECKOUT: ContextVar[bool] = ContextVar("coidx_in_checkout", default=False)


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class ChangeTrigger:
    """
    变更触发器（无状态分发）：

    - 属性变更：命中触发集合（或 _schedule_ 前缀）→ 整行重算
    - 整行重算总是从宿主现读全部属性，不用通知里带的值
    - 重算订单时顺带重算它关联的所有订阅；订阅记录额外写订阅索引
    - 档案变更：按 user_id 批量 UPDATE customer_email / customer_name

    任何重算错误都只记日志，不抛回宿主的写入路径。
    """

    def __init__(
        self,
        *,
        source: RecordSource,
        customers: CustomerDirectory,
        linkage: SubscriptionLinkage,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._source = source
        self._customers = customers
        self._linkage = linkage
        self._clock = clock or _utcnow

    # ------------------------------------------------------------------
    # 结账标记
    # ------------------------------------------------------------------
    @contextmanager
    def checkout_processing(self) -> Iterator[None]:
        token = _IN_CHECKOUT.set(True)
        try:
            yield
        finally:
            _IN_CHECKOUT.reset(token)

    @staticmethod
    def in_checkout() -> bool:
        return _IN_CHECKOUT.get()

    # ------------------------------------------------------------------
    # 决策
    # ------------------------------------------------------------------
    @staticmethod
    def should_recompute(record_kind: object, attribute_name: str) -> bool:
        return RecordKind.parse(record_kind) is not None and triggers_recompute(attribute_name)

    # ------------------------------------------------------------------
    # 重算
    # ------------------------------------------------------------------
    async def load_snapshot(
        self, session: AsyncSession, record_id: int
    ) -> Optional[OrderSnapshot]:
        kind = await self._source.get_kind(session, record_id)
        if kind is None:
            return None
        attributes = await self._source.get_attributes(session, record_id)
        user_id = parse_user_id(attributes.get(CUSTOMER_USER))
        customer = await self._customers.get_customer(session, user_id) if user_id else None
        return snapshot_from_attributes(record_id, kind, attributes, customer)

    async def recompute(
        self,
        session: AsyncSession,
        record_id: int,
        *,
        cascade: bool = True,
    ) -> bool:
        """
        整行重算一条记录。

        返回 True 表示所有相关行都写成功；记录不存在或任一 upsert 失败返回 False。
        cascade=False 时不跟随订阅关联（批量重建会逐条覆盖全部记录）。
        """
        snapshot = await self.load_snapshot(session, record_id)
        if snapshot is None:
            logger.debug("recompute skipped, record %s not found", record_id)
            return False

        ok = await upsert(session, ORDER_INDEX, build_order_row(snapshot).as_params())

        if isinstance(snapshot, SubscriptionSnapshot):
            row = build_subscription_row(
                snapshot,
                in_checkout=self.in_checkout(),
                now=self._clock(),
            )
            ok = await upsert(session, SUBSCRIPTION_INDEX, row.as_params()) and ok

        RECOMPUTES.labels(kind=snapshot.kind.value).inc()

        if cascade:
            for sid in await self._linkage.subscriptions_for_order(session, record_id):
                if sid == int(record_id):
                    continue
                ok = await self.recompute(session, sid, cascade=False) and ok

        return ok

    # ------------------------------------------------------------------
    # 宿主回调
    # ------------------------------------------------------------------
    async def on_attribute_changed(
        self,
        session: AsyncSession,
        *,
        record_id: int,
        record_kind: str,
        attribute_name: str,
        new_value: Optional[str],
    ) -> None:
        if not self.should_recompute(record_kind, attribute_name):
            return

        logger.debug(
            "attribute %s changed on %s %s → recompute", attribute_name, record_kind, record_id
        )
        try:
            async with session.begin_nested():
                await self.recompute(session, record_id)
        except Exception:
            # 宿主写入路径上不抛任何重算异常
            logger.exception("index recompute failed for record %s", record_id)

    async def on_user_profile_updated(self, session: AsyncSession, *, user_id: int) -> None:
        await self.refresh_customer(session, user_id)

    async def refresh_customer(self, session: AsyncSession, user_id: int) -> bool:
        """
        档案变更只影响 customer_email / customer_name：
        直接按 user_id 批量 UPDATE，不逐单重算。
        """
        uid = int(user_id or 0)
        if uid <= 0:
            return False

        try:
            async with session.begin_nested():
                customer = await self._customers.get_customer(session, uid)
                await session.execute(
                    text(
                        f"""
                        UPDATE {ORDER_INDEX.name}
                           SET customer_email = :email,
                               customer_name  = :name
                         WHERE user_id = :uid
                        """
                    ),
                    {
                        "email": normalize_text(customer.email if customer else ""),
                        "name": normalize_text(customer.name if customer else ""),
                        "uid": uid,
                    },
                )
        except SQLAlchemyError:
            logger.exception("customer refresh failed for user %s", uid)
            return False
        return True
