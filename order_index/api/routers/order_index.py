# order_index/api/routers/order_index.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from order_index.api.deps import get_app_settings, get_index_engine, get_session
from order_index.core.config import AppSettings
from order_index.models.enum import RecordKind
from order_index.schemas.filter_request import FilterRequest
from order_index.schemas.order_index import (
    CustomerSummaryOut,
    OrderCustomerOut,
    RecomputeOut,
    RecordIdsOut,
    ReindexStatusOut,
    SearchOut,
)
from order_index.services import index_options as opts
from order_index.services.index_engine import IndexEngine
from order_index.services.order_search import search_records
from order_index.services.search_terms import parse_search

router = APIRouter(prefix="/order-index", tags=["order-index"])


def _ok(data: Any) -> Dict[str, Any]:
    return {"ok": True, "data": data}


@router.get("/search")
async def search(
    s: str = Query("", description="后台搜索框原始输入"),
    kind: RecordKind = Query(RecordKind.ORDER),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
    settings: AppSettings = Depends(get_app_settings),
):
    """
    搜索框：解析 key:value / email / #订单号 / 全文，改写成索引 JOIN 查询。

    ✅ 合同：
    - suppress_default_search=true 表示调用方不要再跑默认全文搜索
    - 没解析出任何条件时返回普通列表
    """
    parsed = parse_search(s)
    ids = await search_records(
        session,
        parsed.filter,
        kinds=(kind,),
        limit=limit or settings.SEARCH_RESULT_LIMIT,
        offset=offset,
    )
    out = SearchOut(
        ids=ids,
        criteria=parsed.filter.criteria(),
        suppress_default_search=parsed.suppress_default_search,
    )
    return _ok(out.model_dump(mode="json"))


@router.post("/search")
async def search_structured(
    body: FilterRequest,
    kind: RecordKind = Query(RecordKind.ORDER),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
    settings: AppSettings = Depends(get_app_settings),
):
    ids = await search_records(
        session,
        body,
        kinds=(kind,),
        limit=limit or settings.SEARCH_RESULT_LIMIT,
        offset=offset,
    )
    out = SearchOut(ids=ids, criteria=body.criteria(), suppress_default_search=not body.is_empty)
    return _ok(out.model_dump(mode="json"))


@router.get("/orders/{order_id}/customer")
async def order_customer(
    order_id: int,
    session: AsyncSession = Depends(get_session),
    engine: IndexEngine = Depends(get_index_engine),
):
    user_id = await engine.order_customer(session, order_id)
    return _ok(OrderCustomerOut(order_id=order_id, user_id=user_id).model_dump())


@router.post("/orders/{record_id}/recompute")
async def recompute(
    record_id: int,
    session: AsyncSession = Depends(get_session),
    engine: IndexEngine = Depends(get_index_engine),
):
    if await engine.source.get_kind(session, record_id) is None:
        raise HTTPException(status_code=404, detail=f"record not found: {record_id}")
    updated = await engine.recompute(session, record_id)
    await session.commit()
    return _ok(RecomputeOut(record_id=record_id, updated=updated).model_dump())


@router.get("/customers/{user_id}/orders")
async def customer_orders(
    user_id: int,
    kind: RecordKind = Query(RecordKind.ORDER),
    session: AsyncSession = Depends(get_session),
    engine: IndexEngine = Depends(get_index_engine),
):
    ids = await engine.customers_orders(session, user_id, kind)
    return _ok(RecordIdsOut(ids=ids).model_dump())


@router.get("/customers/{user_id}/summary")
async def customer_summary(
    user_id: int,
    session: AsyncSession = Depends(get_session),
    engine: IndexEngine = Depends(get_index_engine),
    settings: AppSettings = Depends(get_app_settings),
):
    out = CustomerSummaryOut(
        user_id=user_id,
        order_count=await engine.customer_order_count(session, user_id),
        last_order_id=await engine.customer_last_order(session, user_id),
        total_spent=await engine.customer_total_spent(
            session, user_id, paid_statuses=settings.PAID_STATUSES
        ),
    )
    return _ok(out.model_dump(mode="json"))


@router.get("/guest-orders")
async def guest_orders(
    session: AsyncSession = Depends(get_session),
    engine: IndexEngine = Depends(get_index_engine),
):
    return _ok(RecordIdsOut(ids=await engine.guest_orders(session)).model_dump())


@router.get("/reindex/status")
async def reindex_status(session: AsyncSession = Depends(get_session)):
    out = ReindexStatusOut(
        status=await opts.get_option(session, opts.STATUS),
        kill_switch=await opts.get_int_option(session, opts.KILL_SWITCH, 0) > 0,
    )
    return _ok(out.model_dump())
