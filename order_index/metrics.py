# order_index/metrics.py
from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, generate_latest

# 索引写入 / 重算 / 搜索
UPSERTS = Counter("coidx_index_upserts_total", "Index upserts", ["table", "result"])
RECOMPUTES = Counter("coidx_recomputes_total", "Index row recomputes", ["kind"])
SEARCHES = Counter("coidx_search_requests_total", "Index-backed searches", ["mode"])

router = APIRouter()


@router.get("/metrics")
def metrics() -> Response:
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)
