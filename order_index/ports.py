# -*- coding: utf-8 -*-
# order_index/ports.py
"""
宿主侧协作方接口：

- RecordSource / CustomerDirectory / SubscriptionLinkage：索引重算时现读宿主状态
- AttributeObserver / ProfileObserver：宿主在每次写入后同步回调
"""
from __future__ import annotations

from typing import Dict, List, Optional, Protocol, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from order_index.models.enum import RecordKind
from order_index.services.index_types import CustomerIdentity


class RecordSource(Protocol):
    async def get_kind(self, session: AsyncSession, record_id: int) -> Optional[RecordKind]: ...

    async def get_attributes(
        self, session: AsyncSession, record_id: int
    ) -> Dict[str, Optional[str]]: ...


class CustomerDirectory(Protocol):
    async def get_customer(
        self, session: AsyncSession, user_id: int
    ) -> Optional[CustomerIdentity]: ...


class SubscriptionLinkage(Protocol):
    async def subscriptions_for_order(self, session: AsyncSession, order_id: int) -> List[int]: ...


class AttributeObserver(Protocol):
    async def on_attribute_changed(
        self,
        session: AsyncSession,
        *,
        record_id: int,
        record_kind: str,
        attribute_name: str,
        new_value: Optional[str],
    ) -> None: ...


class ProfileObserver(Protocol):
    async def on_user_profile_updated(self, session: AsyncSession, *, user_id: int) -> None: ...


class RecordPager(Protocol):
    async def count_records(self, session: AsyncSession, kinds: Sequence[RecordKind]) -> int: ...

    async def page_record_ids(
        self,
        session: AsyncSession,
        kinds: Sequence[RecordKind],
        *,
        limit: int,
        offset: int,
    ) -> List[int]: ...
