# order_index/models/user.py
from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from order_index.db.base import Base


class User(Base):
    """宿主用户档案（客户身份）。"""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(175), nullable=False, default="")
    first_name: Mapped[str] = mapped_column(String(175), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(175), nullable=False, default="")
    display_name: Mapped[str] = mapped_column(String(250), nullable=False, default="")
