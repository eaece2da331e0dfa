# order_index/services/search_terms.py
"""
后台搜索框解析：原始字符串 → FilterRequest

顺序：
  1) 抽出 key:value / key=value（value 可用单/双引号包含空格），从原串中移除
  2) 剩余部分整体是合法 email → email 条件
  3) 剩余部分以 # 开头 → 订单号条件
  4) 识别的 key 映射到 FilterRequest 字段，未识别的丢弃
  5) 剩余非空 → full_search
  6) 只要产生了任何条件，调用方就不应再跑默认全文搜索
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Optional

from pydantic import EmailStr, TypeAdapter, ValidationError

from order_index.core.errors import MalformedSearchToken
from order_index.schemas.filter_request import FilterRequest

log = logging.getLogger("coidx.search")

_TOKEN_RE = re.compile(
    r"""(?<!\S)
        (?P<key>[A-Za-z_][\w-]*)
        [:=]
        (?:
            "(?P<dq>[^"]*)"
          | '(?P<sq>[^']*)'
          | (?P<bare>[^\s"']\S*)
        )?
    """,
    re.VERBOSE,
)

_EMAIL = TypeAdapter(EmailStr)

KEY_ALIASES: Dict[str, str] = {
    "email": "customer_email",
    "mail": "customer_email",
    "name": "customer_name",
    "post": "customer_postcode",
    "postal": "customer_postcode",
    "zip": "customer_postcode",
    "postcode": "customer_postcode",
    "postalcode": "customer_postcode",
    "zipcode": "customer_postcode",
    "suburb": "customer_city",
    "address": "customer_city",
    "city": "customer_city",
}


@dataclass(frozen=True)
class ParsedSearch:
    raw: str
    filter: FilterRequest
    tokens: Dict[str, str] = field(default_factory=dict)

    @property
    def suppress_default_search(self) -> bool:
        return not self.filter.is_empty


def is_email(value: str) -> bool:
    s = (value or "").strip()
    if not s or " " in s:
        return False
    try:
        _EMAIL.validate_python(s)
    except ValidationError:
        return False
    return True


def _token_value(m: "re.Match[str]") -> str:
    for group in ("dq", "sq", "bare"):
        v = m.group(group)
        if v is not None:
            v = v.strip()
            if v:
                return v
            break
    raise MalformedSearchToken(m.group(0))


def extract_tokens(raw: str) -> tuple[Dict[str, str], str]:
    """返回 (key → value, 去掉 token 后的剩余串)。畸形 token 直接丢弃。"""
    tokens: Dict[str, str] = {}

    def _take(m: "re.Match[str]") -> str:
        try:
            tokens[m.group("key").lower()] = _token_value(m)
        except MalformedSearchToken as e:
            log.debug("malformed search token dropped: %r", str(e))
        return " "

    remainder = _TOKEN_RE.sub(_take, raw or "")
    return tokens, " ".join(remainder.split())


def parse_search(raw: Optional[str]) -> ParsedSearch:
    source = (raw or "").strip()
    tokens, remainder = extract_tokens(source)

    criteria: Dict[str, str] = {}
    for key, value in tokens.items():
        target = KEY_ALIASES.get(key)
        if target is None:
            log.debug("unrecognized search key dropped: %s", key)
            continue
        criteria[target] = value

    if remainder and is_email(remainder):
        criteria.setdefault("customer_email", remainder)
        remainder = ""

    if remainder.startswith("#"):
        criteria["order_id"] = remainder[1:].strip()
        remainder = ""

    if remainder:
        criteria["full_search"] = remainder

    return ParsedSearch(raw=source, filter=FilterRequest(**criteria), tokens=tokens)
