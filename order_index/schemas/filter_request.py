# order_index/schemas/filter_request.py
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from order_index.services.index_schema import SUBSCRIPTION_SORT_FIELDS
from order_index.services.record_attributes import CUSTOMER_USER

log = logging.getLogger("coidx.query")

_ORDERBY_SPLIT = re.compile(r"[\s:,]+")

# 任一存在即需要 JOIN 订单索引
ORDER_INDEX_CRITERIA = (
    "customer_user",
    "customer_email",
    "customer_name",
    "customer_postcode",
    "customer_city",
    "order_id",
    "full_search",
)


class SubscriptionOrderBy(BaseModel):
    """订阅排序：列只能取订阅索引的金额 / 日期列。"""

    model_config = ConfigDict(frozen=True)

    column: str
    direction: Literal["ASC", "DESC"] = "ASC"

    @classmethod
    def parse(cls, value: Any) -> Optional["SubscriptionOrderBy"]:
        """
        接受：
          - "next_payment_date" / "next_payment_date desc" / "next_payment_date:desc"
          - {"field" | "column": ..., "direction" | "order": ...}
          - ("next_payment_date", "desc")
        非法列或方向 → None（调用方保持默认排序）。
        """
        if value is None or isinstance(value, cls):
            return value

        column: Any = None
        direction: Any = None
        if isinstance(value, Mapping):
            column = value.get("field", value.get("column"))
            direction = value.get("direction", value.get("order"))
        elif isinstance(value, (tuple, list)) and len(value) in (1, 2):
            column = value[0]
            direction = value[1] if len(value) == 2 else None
        elif isinstance(value, str):
            parts = [p for p in _ORDERBY_SPLIT.split(value.strip()) if p]
            if not parts or len(parts) > 2:
                log.debug("subscription_orderby rejected: %r", value)
                return None
            column = parts[0]
            direction = parts[1] if len(parts) == 2 else None
        else:
            log.debug("subscription_orderby rejected: %r", value)
            return None

        col = str(column or "").strip().lower()
        dirn = str(direction or "ASC").strip().upper()
        if col not in SUBSCRIPTION_SORT_FIELDS or dirn not in ("ASC", "DESC"):
            log.debug("subscription_orderby rejected: column=%r direction=%r", column, direction)
            return None
        return cls(column=col, direction=dirn)


class FilterRequest(BaseModel):
    """
    查询改写的结构化条件：

    - 多个条件之间 AND
    - 未给出的条件完全省略（不是“匹配全部”）
    - 空串 / customer_user=0 视为未给出
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    customer_user: Optional[int] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    customer_postcode: Optional[str] = None
    customer_city: Optional[str] = None
    order_id: Optional[str] = None
    full_search: Optional[str] = None
    subscription_orderby: Optional[SubscriptionOrderBy] = None

    @model_validator(mode="before")
    @classmethod
    def _legacy_aliases(cls, data: Any) -> Any:
        """
        兼容“我的订单”老参数：
          - meta_key=_customer_user + meta_value → customer_user
          - customer → customer_user
        """
        if not isinstance(data, Mapping):
            return data
        d: Dict[str, Any] = dict(data)
        meta_key = d.pop("meta_key", None)
        meta_value = d.pop("meta_value", None)
        if meta_key == CUSTOMER_USER and d.get("customer_user") in (None, ""):
            d["customer_user"] = meta_value
        customer = d.pop("customer", None)
        if customer not in (None, "") and d.get("customer_user") in (None, ""):
            d["customer_user"] = customer
        return d

    @field_validator(
        "customer_email",
        "customer_name",
        "customer_postcode",
        "customer_city",
        "full_search",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    @field_validator("customer_user", mode="before")
    @classmethod
    def _norm_user(cls, v: Any) -> Optional[int]:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        n = int(v)
        return n if n > 0 else None

    @field_validator("order_id", mode="before")
    @classmethod
    def _norm_order_id(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        s = str(v).strip()
        if s.startswith("#"):
            s = s[1:].strip()
        return s or None

    @field_validator("subscription_orderby", mode="before")
    @classmethod
    def _norm_orderby(cls, v: Any) -> Optional[SubscriptionOrderBy]:
        return SubscriptionOrderBy.parse(v)

    @property
    def uses_order_index(self) -> bool:
        return any(getattr(self, name) is not None for name in ORDER_INDEX_CRITERIA)

    @property
    def uses_subscription_index(self) -> bool:
        return self.subscription_orderby is not None

    @property
    def is_empty(self) -> bool:
        return not (self.uses_order_index or self.uses_subscription_index)

    def criteria(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
