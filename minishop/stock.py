from typing import Type
from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from .errors import NotFound, OutOfStock, StockError
from .models import CartItem, Product


def require_stock(
    session: Session, product_id: str, qty: int, error: Type[StockError] = OutOfStock
) -> Product:
    """
    Re-read the product's stock and make sure it covers `qty`.
    Raises NotFound if the product is gone, `error` if stock < qty.
    Shared by the cart (OutOfStock) and checkout (InsufficientStock).
    """
    product = session.get(Product, product_id, populate_existing=True)
    if product is None:
        raise NotFound(f"product {product_id} does not exist")
    if product.stock < qty:
        raise error(product.product_id, product.name, qty, product.stock)
    return product


def reserved_qty():
    """Quantity of the enclosing Product row currently held in the cart."""
    return (
        select(func.coalesce(func.sum(CartItem.qty), 0))
        .where(CartItem.product_id == Product.product_id)
        .correlate(Product)
        .scalar_subquery()
    )


def available_column():
    left = Product.stock - reserved_qty()
    return case((left < 0, 0), else_=left).label("available")
