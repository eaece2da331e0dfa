# order_index/core/errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass
class TransientStoreError(Exception):
    """upsert / update 语句执行失败；可稍后重算，不视为数据错误。"""

    table: str
    key: Mapping[str, Any]
    reason: str = ""

    def __str__(self) -> str:
        return f"store write failed: table={self.table} key={dict(self.key)} {self.reason}".strip()


@dataclass
class BulkAbort(Exception):
    """批量重建过程中观察到 kill switch。"""

    batches_done: int
    total_batches: int


class MalformedSearchToken(ValueError):
    pass
