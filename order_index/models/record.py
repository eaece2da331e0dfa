# order_index/models/record.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from order_index.db.base import Base


class Record(Base):
    """
    宿主记录（订单 / 订阅）：
    - 归宿主存储所有，本子系统只读
    - 属性以 key/value 形式挂在 record_attributes 上
    """

    __tablename__ = "records"
    __table_args__ = (Index("ix_records_kind_created", "kind", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")

    # 订阅的父订单（下单时生成订阅的那笔订单）
    parent_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Record id={self.id} kind={self.kind} status={self.status}>"


class RecordAttribute(Base):
    """记录属性：每个 (record_id, name) 只有一个值。"""

    __tablename__ = "record_attributes"

    record_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("records.id", ondelete="CASCADE"), primary_key=True
    )
    name: Mapped[str] = mapped_column(String(191), primary_key=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
