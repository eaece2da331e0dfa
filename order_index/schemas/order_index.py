# order_index/schemas/order_index.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class RecordIdsOut(BaseModel):
    ids: List[int] = Field(default_factory=list)


class SearchOut(RecordIdsOut):
    criteria: Dict[str, Any] = Field(default_factory=dict)
    suppress_default_search: bool = False


class OrderCustomerOut(BaseModel):
    order_id: int
    user_id: int


class CustomerSummaryOut(BaseModel):
    user_id: int
    order_count: int
    last_order_id: Optional[int] = None
    total_spent: Decimal


class RecomputeOut(BaseModel):
    record_id: int
    updated: bool


class ReindexStatusOut(BaseModel):
    status: Optional[str] = None
    kill_switch: bool = False
