from datetime import datetime
from typing import Optional
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import CheckConstraint, ForeignKey, Integer, REAL, Text, text
from sqlalchemy.types import TypeDecorator

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class Timestamp(TypeDecorator):
    """TEXT column holding sqlite's CURRENT_TIMESTAMP format (UTC, second precision)."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if isinstance(value, datetime):
            return value.strftime(TIMESTAMP_FORMAT)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return datetime.fromisoformat(value)


class Base(DeclarativeBase):
    pass


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price>=0"),
        CheckConstraint("stock>=0"),
    )

    product_id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[float] = mapped_column(REAL, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False)


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        CheckConstraint("qty>0"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_id: Mapped[str] = mapped_column(
        Text, ForeignKey("products.product_id"), unique=True, nullable=False
    )
    qty: Mapped[int] = mapped_column(Integer, nullable=False)


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = {"sqlite_autoincrement": True}

    order_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        Timestamp, server_default=text("CURRENT_TIMESTAMP")
    )
    total: Mapped[float] = mapped_column(REAL, nullable=False)


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("orders.order_id"))
    product_id: Mapped[Optional[str]] = mapped_column(Text, ForeignKey("products.product_id"))
    qty: Mapped[Optional[int]] = mapped_column(Integer)
    # unit price captured when the order was placed
    price: Mapped[Optional[float]] = mapped_column(REAL)
