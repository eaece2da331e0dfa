# alembic/env.py — 只管本子系统的表；宿主表另有归属时用 scope 排除

from __future__ import annotations

import os
import re
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import MetaData, create_engine
from sqlalchemy.engine import Connection
from sqlalchemy.pool import NullPool

# Alembic 基本配置
config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# 延迟加载模型（避免导入时机引发的问题）
from order_index.db.base import Base, init_models  # noqa: E402

# ---------------------------------------------------------------------------
# 范围控制：
#   index → 只比较索引表（宿主表由宿主自己迁移）
#   all   → 连同参考实现的宿主表一起比较
# ---------------------------------------------------------------------------

CHECK_SCOPE = (os.getenv("COIDX_ALEMBIC_SCOPE") or "all").lower()

INDEX_TABLES = {"customer_order_index", "subscription_index", "index_options"}


def build_scoped_metadata(scope: str) -> MetaData:
    md = MetaData()
    for name, tbl in Base.metadata.tables.items():
        if scope == "index" and name not in INDEX_TABLES:
            continue
        tbl.to_metadata(md)
    return md


def include_object(
    obj: Any, name: str | None, type_: str, reflected: bool, compare_to: Any
) -> bool:
    """
    规则：
      1) DB 有而模型里没有的对象不参与比较（不自动生成 drop）；
      2) scope=index 时宿主表整张跳过。
    """
    if reflected and compare_to is None:
        return False
    if CHECK_SCOPE == "index" and type_ == "table" and (name or "") not in INDEX_TABLES:
        return False
    return True


# ---------------------------------------------------------------------------
# URL：应用用异步驱动，迁移用同步驱动
# ---------------------------------------------------------------------------

_ASYNC_DRV_RE = re.compile(r"^sqlite\+aiosqlite://", re.I)


def get_url() -> str:
    url = (os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url") or "").strip()
    if (url.startswith('"') and url.endswith('"')) or (url.startswith("'") and url.endswith("'")):
        url = url[1:-1].strip()
    if not url:
        raise RuntimeError(
            "Alembic 无法确定数据库 URL：请设置 DATABASE_URL，或在 alembic.ini 里配置 sqlalchemy.url"
        )

    url = _ASYNC_DRV_RE.sub("sqlite://", url)
    url = re.sub(r"\+asyncpg\b", "+psycopg", url, flags=re.I)
    url = re.sub(r"^postgres://", "postgresql+psycopg://", url, flags=re.I)
    if url.lower().startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


# ---------------------------------------------------------------------------
# 迁移执行函数
# ---------------------------------------------------------------------------


def run_migrations_offline() -> None:
    """Offline 模式：不真实连库，只生成 SQL。"""
    init_models()
    context.configure(
        url=get_url(),
        target_metadata=build_scoped_metadata(CHECK_SCOPE),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Online 模式：真实连库执行迁移。"""
    init_models()
    engine = create_engine(get_url(), poolclass=NullPool, future=True)

    with engine.connect() as connection:  # type: Connection
        context.configure(
            connection=connection,
            target_metadata=build_scoped_metadata(CHECK_SCOPE),
            compare_type=True,
            compare_server_default=False,
            include_object=include_object,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
