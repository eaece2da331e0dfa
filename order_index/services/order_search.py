# order_index/services/order_search.py
from __future__ import annotations

import logging
from typing import List, Sequence

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from order_index.metrics import SEARCHES
from order_index.models.enum import RecordKind
from order_index.schemas.filter_request import FilterRequest
from order_index.services.query_rewriter import rewrite_join, rewrite_orderby, rewrite_where

logger = logging.getLogger("coidx.query")

DEFAULT_ORDER = "r.created_at DESC, r.id DESC"


async def search_records(
    session: AsyncSession,
    flt: FilterRequest,
    *,
    kinds: Sequence[RecordKind] = (RecordKind.ORDER,),
    default_order: str = DEFAULT_ORDER,
    limit: int = 50,
    offset: int = 0,
) -> List[int]:
    """
    记录列表查询 + 索引改写：

        SELECT r.id FROM records AS r <JOIN> WHERE r.kind IN (...) <AND 谓词> ORDER BY <排序>

    空 FilterRequest 时退化为普通列表（不 JOIN 索引）。
    """
    join = rewrite_join(flt, source="r")
    where = rewrite_where(flt)
    order_by = rewrite_orderby(flt, default_order)

    stmt = text(
        f"""
        SELECT r.id
          FROM records AS r
          {join}
         WHERE r.kind IN :kinds{where.as_and()}
         ORDER BY {order_by}
         LIMIT :limit OFFSET :offset
        """
    ).bindparams(bindparam("kinds", expanding=True))

    params = {
        **where.params,
        "kinds": [RecordKind(k).value for k in kinds],
        "limit": int(limit),
        "offset": int(offset),
    }

    SEARCHES.labels(mode="indexed" if join else "plain").inc()
    logger.debug("record search criteria=%s join=%r", flt.criteria(), join)

    rows = await session.execute(stmt, params)
    return [int(r[0]) for r in rows.all()]
