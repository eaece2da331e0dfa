# order_index/services/index_schema.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Tuple, Type

from order_index.db.base import Base
from order_index.models.index_tables import CustomerOrderIndex, SubscriptionIndex
from order_index.models.option import IndexOption


@dataclass(frozen=True)
class TableSpec:
    """
    索引表的静态描述：表名 + 主键列 + 全部列（顺序即写入顺序）。

    upsert / 查询改写只从这里取标识符，永远不拼接外部输入。
    """

    name: str
    key_columns: Tuple[str, ...]
    columns: Tuple[str, ...]
    # 列 → SQLAlchemy 类型；text() 绑定参数时用来做 Decimal / datetime 转换
    column_types: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False, repr=False)

    @property
    def value_columns(self) -> Tuple[str, ...]:
        return tuple(c for c in self.columns if c not in self.key_columns)

    @classmethod
    def from_model(cls, model: Type[Base]) -> "TableSpec":
        table = model.__table__
        return cls(
            name=table.name,
            key_columns=tuple(c.name for c in table.primary_key.columns),
            columns=tuple(c.name for c in table.columns),
            column_types={c.name: c.type for c in table.columns},
        )


ORDER_INDEX = TableSpec.from_model(CustomerOrderIndex)
SUBSCRIPTION_INDEX = TableSpec.from_model(SubscriptionIndex)
INDEX_OPTIONS = TableSpec.from_model(IndexOption)

# 订阅排序允许的字段：订阅索引的全部非主键列（金额 + 生命周期日期）
SUBSCRIPTION_SORT_FIELDS = frozenset(SUBSCRIPTION_INDEX.value_columns)
