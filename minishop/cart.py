import logging
from typing import List, Optional
from sqlalchemy import delete, select

from .db import Store
from .errors import NotFound, OutOfStock
from .metrics import CART_ADDS, CART_REJECTED
from .models import CartItem, Product
from .schemas import CartLine
from .stock import require_stock

logger = logging.getLogger(__name__)


class CartRepository:
    def __init__(self, store: Store):
        self.store = store

    def add_to_cart(self, product_id: str) -> CartLine:
        """
        Put one more unit of `product_id` in the cart.
        Raises NotFound for an unknown product and OutOfStock when the
        cart would hold more than the product's stock; the cart is left
        untouched in both cases.
        """
        try:
            with self.store.session() as s:
                item = s.execute(
                    select(CartItem).where(CartItem.product_id == product_id)
                ).scalar_one_or_none()
                qty = (item.qty if item is not None else 0) + 1
                product = require_stock(s, product_id, qty)
                if item is None:
                    item = CartItem(product_id=product_id, qty=qty)
                    s.add(item)
                else:
                    item.qty = qty
                s.flush()
                line = _line(item, product)
        except OutOfStock as exc:
            CART_REJECTED.labels(reason="out_of_stock").inc()
            logger.warning("add to cart rejected: %s", exc)
            raise
        CART_ADDS.inc()
        return line

    def get_cart(self) -> List[CartLine]:
        stmt = (
            select(
                CartItem.id,
                CartItem.product_id,
                Product.name,
                Product.price,
                CartItem.qty,
                Product.stock,
            )
            .join(Product, CartItem.product_id == Product.product_id)
            .order_by(CartItem.id)
        )
        with self.store.session() as s:
            return [CartLine(**row._mapping) for row in s.execute(stmt)]

    def update_qty(self, id: int, qty: int) -> Optional[CartLine]:
        """
        Set a cart row's quantity. qty <= 0 removes the row and returns None.
        A positive qty is checked against the product's live stock.
        """
        try:
            with self.store.session() as s:
                item = s.get(CartItem, id)
                if qty <= 0:
                    if item is not None:
                        s.delete(item)
                    return None
                if item is None:
                    raise NotFound(f"cart item {id} does not exist")
                product = require_stock(s, item.product_id, qty)
                item.qty = qty
                s.flush()
                return _line(item, product)
        except OutOfStock as exc:
            CART_REJECTED.labels(reason="out_of_stock").inc()
            logger.warning("quantity update rejected: %s", exc)
            raise

    def remove_from_cart(self, id: int) -> None:
        self.update_qty(id, 0)

    def clear_cart(self) -> int:
        with self.store.session() as s:
            return s.execute(delete(CartItem)).rowcount


def _line(item: CartItem, product: Product) -> CartLine:
    return CartLine(
        id=item.id,
        product_id=item.product_id,
        qty=item.qty,
        name=product.name,
        price=product.price,
        stock=product.stock,
    )
