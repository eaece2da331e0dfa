# order_index/services/index_types.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar, Dict, Optional

from order_index.models.enum import RecordKind


@dataclass(frozen=True)
class CustomerIdentity:
    """已解析的客户身份（来自用户档案）。"""

    user_id: int
    email: str
    name: str


@dataclass(frozen=True)
class OrderSnapshot:
    """
    订单在某一时刻的可读属性快照。

    注意：快照必须在重算时现读，不能拿变更通知里的旧值拼。
    """

    kind: ClassVar[RecordKind] = RecordKind.ORDER

    record_id: int
    order_number: str = ""
    user_id: int = 0
    customer: Optional[CustomerIdentity] = None
    billing_email: str = ""
    billing_first_name: str = ""
    billing_last_name: str = ""
    shipping_first_name: str = ""
    shipping_last_name: str = ""
    billing_city: str = ""
    shipping_city: str = ""
    billing_postcode: str = ""
    shipping_postcode: str = ""


@dataclass(frozen=True)
class SubscriptionSnapshot(OrderSnapshot):
    """订阅 = 订单字段 + 金额 / 生命周期日期。"""

    kind: ClassVar[RecordKind] = RecordKind.SUBSCRIPTION

    order_total: Optional[Decimal] = None
    start_date: Optional[datetime] = None
    trial_end_date: Optional[datetime] = None
    next_payment_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    last_payment_date: Optional[datetime] = None


@dataclass(frozen=True)
class OrderIndexRow:
    order_id: int
    order_number: str
    user_id: int
    customer_email: str
    billing_email: str
    customer_name: str
    billing_name: str
    shipping_name: str
    billing_city: str
    shipping_city: str
    billing_postcode: str
    shipping_postcode: str

    def as_params(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SubscriptionIndexRow:
    subscription_id: int
    order_total: Optional[Decimal]
    start_date: Optional[datetime]
    trial_end_date: Optional[datetime]
    next_payment_date: Optional[datetime]
    end_date: Optional[datetime]
    last_payment_date: Optional[datetime]

    def as_params(self) -> Dict[str, Any]:
        return asdict(self)
