# tests/conftest.py
from __future__ import annotations

from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from order_index.core.config import AppSettings
from order_index.db.base import Base, init_models
from order_index.db.session import create_async_engine_safe, make_session_maker
from order_index.main import create_app
from order_index.services.index_engine import IndexEngine, build_index_engine
from order_index.services.record_store import RecordStore, UserDirectory
from tests.helpers.seed import FIXED_NOW


# =========================================
# 每用例独立的 sqlite 文件库（建表后即用）
# =========================================
@pytest.fixture(scope="function")
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'coidx.db'}"


@pytest_asyncio.fixture(scope="function")
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    init_models()
    engine = create_async_engine_safe(database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def async_session_maker(async_engine: AsyncEngine):
    return make_session_maker(async_engine)


@pytest_asyncio.fixture(scope="function")
async def session(async_session_maker) -> AsyncGenerator[AsyncSession, None]:
    """
    标准 Session（用例结束时有未提交事务就回滚）
    """
    async with async_session_maker() as sess:
        try:
            yield sess
        finally:
            if sess.in_transaction():
                await sess.rollback()


# =========================================
# 索引引擎 + 宿主存储（索引触发器已注册为观察者）
# =========================================
@pytest.fixture
def index_engine() -> IndexEngine:
    return build_index_engine(clock=lambda: FIXED_NOW)


@pytest.fixture
def store(index_engine: IndexEngine) -> RecordStore:
    return RecordStore(observers=[index_engine.trigger])


@pytest.fixture
def users(index_engine: IndexEngine) -> UserDirectory:
    return UserDirectory(observers=[index_engine.trigger])


# =========================================
# HTTP 客户端：同一个 sqlite 文件，独立的应用引擎
# =========================================
@pytest_asyncio.fixture(scope="function")
async def client(
    database_url: str,
    async_engine: AsyncEngine,
    index_engine: IndexEngine,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    app = create_app(AppSettings(DATABASE_URL=database_url), index_engine=index_engine)
    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
            yield c
    finally:
        await app.state.db_engine.dispose()
