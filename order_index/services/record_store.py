# order_index/services/record_store.py
"""
宿主记录存储（SQL 参考实现）：

- records + record_attributes：按 key 读写属性
- 每次属性写入后，同步回调构造时传入的 AttributeObserver
- users：客户档案；档案变更后同步回调 ProfileObserver

本子系统只依赖 ports.py 里的接口，这里的实现供服务 / CLI / 测试直接使用。
"""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from order_index.models.enum import RecordKind
from order_index.models.record import Record
from order_index.models.user import User
from order_index.ports import AttributeObserver, ProfileObserver
from order_index.services.index_types import CustomerIdentity

logger = logging.getLogger("coidx.store")


class SqlRecordSource:
    """只读：按 id 取类型 / 属性，按页列出记录 id。"""

    async def get_kind(self, session: AsyncSession, record_id: int) -> Optional[RecordKind]:
        row = (
            await session.execute(
                text("SELECT kind FROM records WHERE id = :rid"),
                {"rid": int(record_id)},
            )
        ).first()
        return RecordKind.parse(row[0]) if row else None

    async def get_attributes(
        self, session: AsyncSession, record_id: int
    ) -> Dict[str, Optional[str]]:
        rows = (
            await session.execute(
                text("SELECT name, value FROM record_attributes WHERE record_id = :rid"),
                {"rid": int(record_id)},
            )
        ).all()
        return {str(r[0]): r[1] for r in rows}

    async def count_records(self, session: AsyncSession, kinds: Sequence[RecordKind]) -> int:
        stmt = text("SELECT COUNT(1) FROM records WHERE kind IN :kinds").bindparams(
            bindparam("kinds", expanding=True)
        )
        return int(
            (await session.execute(stmt, {"kinds": [k.value for k in kinds]})).scalar() or 0
        )

    async def page_record_ids(
        self,
        session: AsyncSession,
        kinds: Sequence[RecordKind],
        *,
        limit: int,
        offset: int,
    ) -> List[int]:
        stmt = text(
            """
            SELECT id
              FROM records
             WHERE kind IN :kinds
             ORDER BY created_at DESC, id DESC
             LIMIT :limit OFFSET :offset
            """
        ).bindparams(bindparam("kinds", expanding=True))
        rows = await session.execute(
            stmt,
            {"kinds": [k.value for k in kinds], "limit": int(limit), "offset": int(offset)},
        )
        return [int(r[0]) for r in rows.all()]


class RecordStore(SqlRecordSource):
    """可写：属性写入后同步通知 observers（按注册顺序）。"""

    def __init__(self, observers: Sequence[AttributeObserver] = ()) -> None:
        self._observers: List[AttributeObserver] = list(observers)

    async def create_record(
        self,
        session: AsyncSession,
        *,
        kind: RecordKind,
        status: str = "pending",
        parent_id: Optional[int] = None,
        record_id: Optional[int] = None,
        attributes: Optional[Mapping[str, Optional[str]]] = None,
    ) -> int:
        rec = Record(kind=RecordKind(kind).value, status=status, parent_id=parent_id)
        if record_id is not None:
            rec.id = int(record_id)
        session.add(rec)
        await session.flush()

        for name, value in (attributes or {}).items():
            await self.set_attribute(session, rec.id, name, value)
        return int(rec.id)

    async def set_status(self, session: AsyncSession, record_id: int, status: str) -> None:
        await session.execute(
            text("UPDATE records SET status = :st WHERE id = :rid"),
            {"st": status, "rid": int(record_id)},
        )

    async def set_attribute(
        self,
        session: AsyncSession,
        record_id: int,
        name: str,
        value: Optional[str],
    ) -> None:
        kind = await self.get_kind(session, record_id)
        if kind is None:
            raise ValueError(f"record not found: id={record_id}")

        await session.execute(
            text(
                """
                INSERT INTO record_attributes (record_id, name, value)
                VALUES (:rid, :name, :value)
                ON CONFLICT (record_id, name) DO UPDATE SET value = EXCLUDED.value
                """
            ),
            {"rid": int(record_id), "name": name, "value": None if value is None else str(value)},
        )

        for obs in self._observers:
            await obs.on_attribute_changed(
                session,
                record_id=int(record_id),
                record_kind=kind.value,
                attribute_name=name,
                new_value=None if value is None else str(value),
            )


class SqlCustomerDirectory:
    """按 user_id 解析客户身份；解析不到返回 None（不是错误）。"""

    async def get_customer(
        self, session: AsyncSession, user_id: int
    ) -> Optional[CustomerIdentity]:
        if not user_id or int(user_id) <= 0:
            return None
        row = (
            (
                await session.execute(
                    text(
                        """
                        SELECT id, email, first_name, last_name, display_name
                          FROM users
                         WHERE id = :uid
                        """
                    ),
                    {"uid": int(user_id)},
                )
            )
            .mappings()
            .first()
        )
        if row is None:
            logger.debug("customer %s not resolvable", user_id)
            return None

        name = f"{(row['first_name'] or '').strip()} {(row['last_name'] or '').strip()}".strip()
        if not name:
            name = (row["display_name"] or "").strip()
        return CustomerIdentity(user_id=int(row["id"]), email=row["email"] or "", name=name)


class UserDirectory(SqlCustomerDirectory):
    """可写的客户档案：email / 姓名变更后通知 observers。"""

    def __init__(self, observers: Sequence[ProfileObserver] = ()) -> None:
        self._observers: List[ProfileObserver] = list(observers)

    async def create_user(
        self,
        session: AsyncSession,
        *,
        email: str,
        first_name: str = "",
        last_name: str = "",
        display_name: str = "",
        user_id: Optional[int] = None,
    ) -> int:
        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            display_name=display_name,
        )
        if user_id is not None:
            user.id = int(user_id)
        session.add(user)
        await session.flush()
        return int(user.id)

    async def update_profile(
        self,
        session: AsyncSession,
        user_id: int,
        *,
        email: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> None:
        changes = {
            k: v
            for k, v in (
                ("email", email),
                ("first_name", first_name),
                ("last_name", last_name),
                ("display_name", display_name),
            )
            if v is not None
        }
        if not changes:
            return

        sets = ", ".join(f"{k} = :{k}" for k in changes)
        await session.execute(
            text(f"UPDATE users SET {sets} WHERE id = :uid"),
            {**changes, "uid": int(user_id)},
        )

        for obs in self._observers:
            await obs.on_user_profile_updated(session, user_id=int(user_id))
