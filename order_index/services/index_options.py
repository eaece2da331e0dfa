# order_index/services/index_options.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from order_index.services.index_schema import INDEX_OPTIONS
from order_index.services.index_upsert import upsert_or_raise

KILL_SWITCH = "reindex_kill_switch"
STATUS = "reindex_status"
BATCHES_DONE = "reindex_batches_done"
BATCH_SIZE = "reindex_batch_size"


async def get_option(session: AsyncSession, name: str, default: Optional[str] = None) -> Optional[str]:
    v = (
        await session.execute(
            text(f"SELECT value FROM {INDEX_OPTIONS.name} WHERE name = :name"),
            {"name": name},
        )
    ).scalar()
    return default if v is None else str(v)


async def get_int_option(session: AsyncSession, name: str, default: int = 0) -> int:
    v = await get_option(session, name)
    try:
        return int(str(v).strip()) if v is not None else default
    except ValueError:
        return default


async def set_option(session: AsyncSession, name: str, value: object) -> None:
    """失败抛 TransientStoreError（批量控制面需要知道写没写进去）。"""
    await upsert_or_raise(session, INDEX_OPTIONS, {"name": name, "value": str(value)})
