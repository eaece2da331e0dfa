# order_index/models/index_tables.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from order_index.db.base import Base


class CustomerOrderIndex(Base):
    """
    订单索引：每个订单一行，是宿主记录当前状态的纯投影。

    - 所有文本列在写入前 trim + 小写（大小写不敏感匹配）
    - user_id = 0 表示游客订单
    - 只由本子系统写入；读方（查询改写 / 查找接口）只读
    """

    __tablename__ = "customer_order_index"

    order_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    order_number: Mapped[str] = mapped_column(String(64), nullable=False, default="", index=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)

    customer_email: Mapped[str] = mapped_column(String(175), nullable=False, default="", index=True)
    billing_email: Mapped[str] = mapped_column(String(175), nullable=False, default="", index=True)

    customer_name: Mapped[str] = mapped_column(String(175), nullable=False, default="", index=True)
    billing_name: Mapped[str] = mapped_column(String(175), nullable=False, default="", index=True)
    shipping_name: Mapped[str] = mapped_column(String(175), nullable=False, default="", index=True)

    billing_city: Mapped[str] = mapped_column(String(100), nullable=False, default="", index=True)
    shipping_city: Mapped[str] = mapped_column(String(100), nullable=False, default="", index=True)

    billing_postcode: Mapped[str] = mapped_column(String(20), nullable=False, default="", index=True)
    shipping_postcode: Mapped[str] = mapped_column(String(20), nullable=False, default="", index=True)


class SubscriptionIndex(Base):
    """订阅索引：金额 + 生命周期日期，用于订阅列表排序。"""

    __tablename__ = "subscription_index"

    subscription_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    order_total: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True, index=True)
    start_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    trial_end_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    next_payment_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    last_payment_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
