# order_index/models/enum.py
from __future__ import annotations

from enum import Enum


class RecordKind(str, Enum):
    """宿主记录类型：订单 / 订阅（订阅本身也是一种订单记录）。"""

    ORDER = "order"
    SUBSCRIPTION = "subscription"

    @classmethod
    def parse(cls, value: object) -> "RecordKind | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return None
