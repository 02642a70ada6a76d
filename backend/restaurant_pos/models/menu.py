"""Menu item model. Prices are read and snapshotted by orders."""

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from restaurant_pos.db.base import Base, TimestampMixin
from restaurant_pos.models.validators import non_negative


class MenuItem(Base, TimestampMixin):
    __tablename__ = "menu_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    preparation_time: Mapped[int] = mapped_column(Integer, default=15, nullable=False)

    @validates("price")
    def _validate_price(self, key, value):
        return non_negative(key, value)
