import logging
import math
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Any, Iterable, List, Optional, Sequence, Union
from pydantic import ValidationError
from sqlalchemy import delete, select

from .cart import CartRepository
from .config import settings
from .db import Store
from .errors import EmptyCart, InsufficientStock, InvalidOrder, NotFound
from .metrics import ORDERS_CREATED, ORDERS_FAILED
from .models import CartItem, Order, OrderItem, Product
from .schemas import CartLine, OrderLine, OrderOut, Totals
from .stock import require_stock

logger = logging.getLogger(__name__)

TAX_RATE = settings.TAX_RATE


def round_money(amount: Decimal, places: int = 2) -> Decimal:
    """Round to specified decimal places using banker's rounding."""
    quantize_str = "0." + "0" * places
    return amount.quantize(Decimal(quantize_str), rounding=ROUND_HALF_EVEN)


def compute_totals(lines: Iterable[CartLine], tax_rate: Optional[Decimal] = None) -> Totals:
    """Subtotal of price x qty, tax on top of it, and the grand total."""
    rate = TAX_RATE if tax_rate is None else Decimal(str(tax_rate))
    subtotal = round_money(
        sum((Decimal(str(line.price or 0)) * line.qty for line in lines), Decimal(0))
    )
    tax = round_money(subtotal * rate)
    return Totals(subtotal=subtotal, tax=tax, total=subtotal + tax)


class OrderRepository:
    def __init__(self, store: Store):
        self.store = store

    def create_order(
        self, cart_items: Sequence[Union[CartLine, Any]], total: Union[Decimal, float]
    ) -> OrderOut:
        """
        Checkout: turn `cart_items` into an order in one transaction.

        Each product's stock is re-read and decremented; order items keep
        the unit price carried by the cart line, not the catalog's current
        one. The whole cart is emptied at the end. On any failure nothing
        is written.

        Raises InvalidOrder for a malformed line or a negative or non-finite
        total, EmptyCart when there is nothing to order.
        """
        try:
            lines = [it if isinstance(it, CartLine) else CartLine.model_validate(it) for it in cart_items]
        except ValidationError as exc:
            ORDERS_FAILED.labels(reason="invalid_line").inc()
            raise InvalidOrder(f"invalid order line: {exc.errors()[0]['msg']}") from exc
        if not lines:
            ORDERS_FAILED.labels(reason="empty_cart").inc()
            raise EmptyCart()
        amount = float(total)
        if not math.isfinite(amount) or amount < 0:
            ORDERS_FAILED.labels(reason="invalid_total").inc()
            raise InvalidOrder(f"invalid order total: {total}")

        try:
            with self.store.session() as s:
                order = Order(total=amount)
                s.add(order)
                s.flush()  # get order.order_id

                for line in lines:
                    product = require_stock(s, line.product_id, line.qty, InsufficientStock)
                    s.add(OrderItem(
                        order_id=order.order_id,
                        product_id=line.product_id,
                        qty=line.qty,
                        price=line.price,
                    ))
                    product.stock = Product.stock - line.qty
                    # the next require_stock must see this decrement
                    s.flush()

                s.execute(delete(CartItem))
                s.flush()
                s.refresh(order)
                out = OrderOut.model_validate(order)
        except InsufficientStock as exc:
            ORDERS_FAILED.labels(reason="insufficient_stock").inc()
            logger.warning("checkout rolled back: %s", exc)
            raise
        except NotFound as exc:
            ORDERS_FAILED.labels(reason="missing_product").inc()
            logger.warning("checkout rolled back: %s", exc)
            raise

        ORDERS_CREATED.inc()
        logger.info("order %s created: %d line(s), total %s", out.order_id, len(lines), out.total)
        return out

    def checkout(self) -> OrderOut:
        """Order everything currently in the cart, tax included."""
        lines = CartRepository(self.store).get_cart()
        return self.create_order(lines, compute_totals(lines).total)

    def get_orders(self) -> List[OrderOut]:
        stmt = select(Order).order_by(Order.created_at.desc(), Order.order_id.desc())
        with self.store.session() as s:
            return [OrderOut.model_validate(o) for o in s.execute(stmt).scalars()]

    def get_order_items(self, order_id: int) -> List[OrderLine]:
        stmt = (
            select(
                OrderItem.id,
                OrderItem.product_id,
                Product.name,
                OrderItem.qty,
                OrderItem.price,
            )
            .join(Product, OrderItem.product_id == Product.product_id)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.id)
        )
        with self.store.session() as s:
            return [OrderLine(**row._mapping) for row in s.execute(stmt)]
