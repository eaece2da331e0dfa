# order_index/models/option.py
from __future__ import annotations

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from order_index.db.base import Base


class IndexOption(Base):
    """批量重建的控制值（kill switch / 进度 / 状态串）。"""

    __tablename__ = "index_options"

    name: Mapped[str] = mapped_column(String(191), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
