# order_index/db/session.py
# 统一的异步引擎 / 会话工厂（不在 import 时建引擎，由应用启动时显式构造）
from __future__ import annotations

import re
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

__all__ = ["normalize_async_dsn", "create_async_engine_safe", "make_session_maker"]


# ---- DSN 归一：统一到 psycopg3 与 aiosqlite ----
def normalize_async_dsn(url: str) -> str:
    url = (url or "").strip()
    # 有些环境会把值写成 '"postgresql+psycopg://..."'，统一剥掉两侧引号
    if (url.startswith('"') and url.endswith('"')) or (url.startswith("'") and url.endswith("'")):
        url = url[1:-1].strip()
    if not url:
        raise ValueError("DATABASE_URL 为空")
    # sqlite:/// → sqlite+aiosqlite:///
    if url.startswith("sqlite:///"):
        return "sqlite+aiosqlite://" + url[len("sqlite:///") - 1 :]
    # postgres/postgresql(+*) → postgresql+psycopg
    if url.startswith("postgresql+asyncpg://") or url.startswith("postgres+asyncpg://"):
        return re.sub(r"^postgres(?:ql)?\+asyncpg://", "postgresql+psycopg://", url)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    pysqlite / aiosqlite 默认推迟 BEGIN，会让 SAVEPOINT 语义失真；
    这里关闭驱动自带的事务控制，由 SQLAlchemy 自己发 BEGIN。
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):  # noqa: ANN001
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):  # noqa: ANN001
        conn.exec_driver_sql("BEGIN")


def create_async_engine_safe(url_str: str, *, echo: bool = False) -> AsyncEngine:
    """Async 引擎：'postgresql+psycopg' 或 'sqlite+aiosqlite'。"""
    url_str = normalize_async_dsn(url_str)
    backend = make_url(url_str).get_backend_name()

    kwargs: dict[str, Any] = {"echo": echo, "future": True}
    if backend.startswith("postgresql"):
        kwargs["pool_pre_ping"] = True

    engine = create_async_engine(url_str, **kwargs)
    if backend.startswith("sqlite"):
        _enable_sqlite_savepoints(engine)
    return engine


def make_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
