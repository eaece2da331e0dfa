# order_index/api/deps.py
"""
请求级依赖：全部从 app.state 取（create_app 时构造一次），不做全局查找。
"""
from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from order_index.core.config import AppSettings
from order_index.services.index_engine import IndexEngine


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.session_maker() as session:
        yield session


def get_index_engine(request: Request) -> IndexEngine:
    return request.app.state.index_engine


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.settings
