# order_index/services/query_rewriter.py
"""
查询改写：FilterRequest → JOIN / WHERE / ORDER BY 三段片段。

- JOIN：出现任一订单类条件 → INNER JOIN 订单索引；有订阅排序 → INNER JOIN 订阅索引。
  JOIN 本身不带过滤，没建过索引的记录天然被 INNER JOIN 排除。
- WHERE：每个条件一段，之间 AND。
- ORDER BY：只有订阅排序会替换调用方默认排序；不会自造排序。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from order_index.schemas.filter_request import FilterRequest
from order_index.services.index_schema import (
    ORDER_INDEX,
    SUBSCRIPTION_INDEX,
    SUBSCRIPTION_SORT_FIELDS,
)
from order_index.services.query_clauses import (
    AllOf,
    AnyOf,
    Clause,
    Equals,
    ParamNamer,
    like_any,
)

ORDER_ALIAS = "coi"
SUBSCRIPTION_ALIAS = "csi"

EMAIL_COLUMNS = ("customer_email", "billing_email")
NAME_COLUMNS = ("customer_name", "billing_name", "shipping_name")
POSTCODE_COLUMNS = ("billing_postcode", "shipping_postcode")
CITY_COLUMNS = ("billing_city", "shipping_city")

# 全文搜索：数值列只在 token 是纯数字时参与
NUMERIC_SEARCH_COLUMNS = ("order_id", "user_id")
TEXT_SEARCH_COLUMNS = (
    ("order_number",) + EMAIL_COLUMNS + NAME_COLUMNS + CITY_COLUMNS + POSTCODE_COLUMNS
)


@dataclass(frozen=True)
class SqlFragment:
    sql: str = ""
    params: Dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.sql)

    def as_and(self) -> str:
        """拼到已有 WHERE 之后：' AND <pred>'；空片段返回空串。"""
        return f" AND {self.sql}" if self.sql else ""


def _oc(*columns: str) -> Tuple[str, ...]:
    return tuple(f"{ORDER_ALIAS}.{c}" for c in columns)


def rewrite_join(flt: FilterRequest, *, source: str = "r", source_id: str = "id") -> str:
    parts: List[str] = []
    if flt.uses_order_index:
        parts.append(
            f"INNER JOIN {ORDER_INDEX.name} AS {ORDER_ALIAS} "
            f"ON {source}.{source_id} = {ORDER_ALIAS}.order_id"
        )
    if flt.uses_subscription_index:
        parts.append(
            f"INNER JOIN {SUBSCRIPTION_INDEX.name} AS {SUBSCRIPTION_ALIAS} "
            f"ON {source}.{source_id} = {SUBSCRIPTION_ALIAS}.subscription_id"
        )
    return " ".join(parts)


def order_id_clause(value: str) -> Clause:
    """纯数字既可能是记录 id 也可能是订单号；否则只比订单号。"""
    s = str(value).strip().lower()
    if s.isdigit():
        return AnyOf(
            (
                Equals(f"{ORDER_ALIAS}.order_id", int(s)),
                Equals(f"{ORDER_ALIAS}.order_number", s),
            )
        )
    return Equals(f"{ORDER_ALIAS}.order_number", s)


def full_search_clause(raw: str) -> Optional[Clause]:
    """
    按空白切词，每个词对一组列 OR，词与词之间 AND。
    非纯数字的词不碰 order_id / user_id。
    """
    groups: List[Clause] = []
    for token in (raw or "").split():
        core = token.strip("*")
        if not core:
            continue
        if core.isdigit():
            columns = _oc(*NUMERIC_SEARCH_COLUMNS) + _oc(*TEXT_SEARCH_COLUMNS)
        else:
            columns = _oc(*TEXT_SEARCH_COLUMNS)
        groups.append(like_any(columns, token, cast_columns=_oc(*NUMERIC_SEARCH_COLUMNS)))

    if not groups:
        return None
    return AllOf(tuple(groups))


def build_clauses(flt: FilterRequest) -> List[Clause]:
    clauses: List[Clause] = []
    if flt.customer_user is not None:
        clauses.append(Equals(f"{ORDER_ALIAS}.user_id", int(flt.customer_user)))
    if flt.customer_email is not None:
        clauses.append(like_any(_oc(*EMAIL_COLUMNS), flt.customer_email))
    if flt.customer_name is not None:
        clauses.append(like_any(_oc(*NAME_COLUMNS), flt.customer_name))
    if flt.customer_postcode is not None:
        clauses.append(like_any(_oc(*POSTCODE_COLUMNS), flt.customer_postcode))
    if flt.customer_city is not None:
        clauses.append(like_any(_oc(*CITY_COLUMNS), flt.customer_city))
    if flt.order_id is not None:
        clauses.append(order_id_clause(flt.order_id))
    if flt.full_search is not None:
        fs = full_search_clause(flt.full_search)
        if fs is not None:
            clauses.append(fs)
    return clauses


def rewrite_where(flt: FilterRequest, *, param_prefix: str = "coi") -> SqlFragment:
    namer = ParamNamer(prefix=param_prefix)
    parts = [c.lower(namer) for c in build_clauses(flt)]
    return SqlFragment(sql=" AND ".join(parts), params=dict(namer.params))


def rewrite_orderby(flt: FilterRequest, default: str) -> str:
    ob = flt.subscription_orderby
    if ob is None or ob.column not in SUBSCRIPTION_SORT_FIELDS:
        return default
    return f"{SUBSCRIPTION_ALIAS}.{ob.column} {ob.direction}"
