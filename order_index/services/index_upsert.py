# order_index/services/index_upsert.py
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Mapping

from sqlalchemy import bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import TextClause

from order_index.core.errors import TransientStoreError
from order_index.metrics import UPSERTS
from order_index.services.index_schema import TableSpec

logger = logging.getLogger("coidx.upsert")


@lru_cache(maxsize=None)
def _upsert_sql(tspec: TableSpec) -> TextClause:
    """
    单条原子语句：INSERT ... ON CONFLICT (keys) DO UPDATE SET 非主键列 = EXCLUDED.*
    PostgreSQL 与 SQLite (>=3.24) 同语法。
    """
    cols = ", ".join(tspec.columns)
    binds = ", ".join(f":{c}" for c in tspec.columns)
    keys = ", ".join(tspec.key_columns)
    if tspec.value_columns:
        sets = ", ".join(f"{c} = EXCLUDED.{c}" for c in tspec.value_columns)
        conflict = f"DO UPDATE SET {sets}"
    else:
        conflict = "DO NOTHING"
    stmt = text(
        f"""
        INSERT INTO {tspec.name} ({cols})
        VALUES ({binds})
        ON CONFLICT ({keys}) {conflict}
        """
    )
    typed = [bindparam(c, type_=tspec.column_types[c]) for c in tspec.columns if c in tspec.column_types]
    return stmt.bindparams(*typed) if typed else stmt


def _key_of(tspec: TableSpec, row: Mapping[str, Any]) -> dict:
    return {k: row.get(k) for k in tspec.key_columns}


async def upsert_or_raise(session: AsyncSession, tspec: TableSpec, row: Mapping[str, Any]) -> None:
    """
    插入或覆盖一行（按主键）。

    - 包在 SAVEPOINT 里：失败只回滚本条，不污染调用方事务
    - 失败抛 TransientStoreError
    """
    missing = [c for c in tspec.columns if c not in row]
    if missing:
        raise ValueError(f"row for {tspec.name} missing columns: {missing}")

    params = {c: row[c] for c in tspec.columns}
    try:
        async with session.begin_nested():
            await session.execute(_upsert_sql(tspec), params)
    except SQLAlchemyError as e:
        UPSERTS.labels(table=tspec.name, result="error").inc()
        raise TransientStoreError(table=tspec.name, key=_key_of(tspec, row), reason=str(e)) from e

    UPSERTS.labels(table=tspec.name, result="ok").inc()


async def upsert(session: AsyncSession, tspec: TableSpec, row: Mapping[str, Any]) -> bool:
    """
    索引维护路径用的 upsert：失败只记日志并返回 False，绝不向上抛，
    调用方是宿主的属性写入路径；失败的行等下一次重算覆盖。
    """
    try:
        await upsert_or_raise(session, tspec, row)
    except TransientStoreError as e:
        logger.exception("index upsert failed: %s", e)
        return False
    return True
