# order_index/services/index_row_builder.py
"""
索引行构建（纯函数）：

  属性快照 → 完整索引行

口径：
  - 所有文本列 trim + 小写，索引里不保留原始大小写
  - 姓名 = trim(first + " " + last)
  - user_id 有值但档案解析不到 → customer_email / customer_name 留空，不报错
  - 订阅的 last_payment_date：结账同步处理中取 now，否则取持久化属性
"""
from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from order_index.models.enum import RecordKind
from order_index.services import record_attributes as attr
from order_index.services.index_types import (
    CustomerIdentity,
    OrderIndexRow,
    OrderSnapshot,
    SubscriptionIndexRow,
    SubscriptionSnapshot,
)

log = logging.getLogger("coidx.builder")

_CENT = Decimal("0.01")


def normalize_text(value: object) -> str:
    return str(value or "").strip().lower()


def _full_name(first: str, last: str) -> str:
    return f"{(first or '').strip()} {(last or '').strip()}".strip()


def parse_user_id(value: Optional[str]) -> int:
    try:
        n = int(str(value or "0").strip() or "0")
    except ValueError:
        log.debug("non-numeric customer user %r treated as guest", value)
        return 0
    return n if n > 0 else 0


def _parse_total(value: Optional[str]) -> Optional[Decimal]:
    s = str(value or "").strip()
    if not s:
        return None
    try:
        return Decimal(s).quantize(_CENT)
    except InvalidOperation:
        log.debug("unparseable order total %r", value)
        return None


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    """'0' / 空 → None；支持 ISO 串和 unix 秒；一律转成 UTC naive。"""
    s = str(value or "").strip()
    if not s or s == "0":
        return None
    if s.isdigit():
        try:
            return datetime.fromtimestamp(int(s), UTC).replace(tzinfo=None)
        except (ValueError, OverflowError, OSError):
            log.debug("lifecycle timestamp out of range %r", value)
            return None
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        log.debug("unparseable lifecycle date %r", value)
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def snapshot_from_attributes(
    record_id: int,
    kind: RecordKind,
    attributes: Mapping[str, Optional[str]],
    customer: Optional[CustomerIdentity],
) -> OrderSnapshot:
    """按记录类型选字段，拼出快照（不做大小写归一，留给 build_*）。"""

    def a(key: str) -> str:
        return str(attributes.get(key) or "")

    common = dict(
        record_id=int(record_id),
        order_number=a(attr.ORDER_NUMBER).strip() or str(int(record_id)),
        user_id=parse_user_id(attributes.get(attr.CUSTOMER_USER)),
        customer=customer,
        billing_email=a(attr.BILLING_EMAIL),
        billing_first_name=a(attr.BILLING_FIRST_NAME),
        billing_last_name=a(attr.BILLING_LAST_NAME),
        shipping_first_name=a(attr.SHIPPING_FIRST_NAME),
        shipping_last_name=a(attr.SHIPPING_LAST_NAME),
        billing_city=a(attr.BILLING_CITY),
        shipping_city=a(attr.SHIPPING_CITY),
        billing_postcode=a(attr.BILLING_POSTCODE),
        shipping_postcode=a(attr.SHIPPING_POSTCODE),
    )

    if kind is RecordKind.SUBSCRIPTION:
        return SubscriptionSnapshot(
            **common,
            order_total=_parse_total(attributes.get(attr.ORDER_TOTAL)),
            start_date=_parse_date(attributes.get(attr.SCHEDULE_START)),
            trial_end_date=_parse_date(attributes.get(attr.SCHEDULE_TRIAL_END)),
            next_payment_date=_parse_date(attributes.get(attr.SCHEDULE_NEXT_PAYMENT)),
            end_date=_parse_date(attributes.get(attr.SCHEDULE_END)),
            last_payment_date=_parse_date(attributes.get(attr.SCHEDULE_LAST_PAYMENT)),
        )
    return OrderSnapshot(**common)


def build_order_row(snapshot: OrderSnapshot) -> OrderIndexRow:
    customer_email = ""
    customer_name = ""
    # 游客订单不取档案；档案解析不到时降级为空，billing 字段仍可用
    if snapshot.user_id and snapshot.customer is not None:
        customer_email = normalize_text(snapshot.customer.email)
        customer_name = normalize_text(snapshot.customer.name)

    return OrderIndexRow(
        order_id=snapshot.record_id,
        order_number=normalize_text(snapshot.order_number),
        user_id=snapshot.user_id,
        customer_email=customer_email,
        billing_email=normalize_text(snapshot.billing_email),
        customer_name=customer_name,
        billing_name=normalize_text(_full_name(snapshot.billing_first_name, snapshot.billing_last_name)),
        shipping_name=normalize_text(_full_name(snapshot.shipping_first_name, snapshot.shipping_last_name)),
        billing_city=normalize_text(snapshot.billing_city),
        shipping_city=normalize_text(snapshot.shipping_city),
        billing_postcode=normalize_text(snapshot.billing_postcode),
        shipping_postcode=normalize_text(snapshot.shipping_postcode),
    )


def build_subscription_row(
    snapshot: SubscriptionSnapshot,
    *,
    in_checkout: bool = False,
    now: Optional[datetime] = None,
) -> SubscriptionIndexRow:
    # 结账处理中：持久化的最后付款日期此刻还没落库，以 now 为准
    if in_checkout:
        last_payment = now or datetime.now(UTC).replace(tzinfo=None)
    else:
        last_payment = snapshot.last_payment_date

    return SubscriptionIndexRow(
        subscription_id=snapshot.record_id,
        order_total=snapshot.order_total,
        start_date=snapshot.start_date,
        trial_end_date=snapshot.trial_end_date,
        next_payment_date=snapshot.next_payment_date,
        end_date=snapshot.end_date,
        last_payment_date=last_payment,
    )
