# order_index/db/base.py
from __future__ import annotations

import importlib
import logging
from typing import List

from sqlalchemy.orm import DeclarativeBase, configure_mappers

log = logging.getLogger("coidx.models")


class Base(DeclarativeBase):
    """全局唯一 ORM Base"""

    pass


_INITIALIZED: bool = False  # 防重复初始化

# 宿主表在前，索引表在后
_MODEL_MODULES = [
    "order_index.models.record",
    "order_index.models.user",
    "order_index.models.index_tables",
    "order_index.models.option",
]


def init_models(*, force: bool = False) -> None:
    """
    集中导入模型 + 固化映射，保证 Base.metadata 拿到全部表
    （create_all / alembic 都依赖这一点）。
    """
    global _INITIALIZED
    if _INITIALIZED and not force:
        log.debug("init_models() called again; already initialized, skipping.")
        return

    loaded: List[str] = []
    for mod in _MODEL_MODULES:
        importlib.import_module(mod)
        loaded.append(mod)

    configure_mappers()
    _INITIALIZED = True
    log.info("ORM models initialized & mappers configured (loaded %d modules)", len(loaded))
