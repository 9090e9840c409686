class ShopError(Exception):
    """Base class for failures the presentation layer is expected to show."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(ShopError):
    pass


class StockError(ShopError):
    reason = "stock"

    def __init__(self, product_id: str, name: str, requested: int, available: int):
        super().__init__(f"{self.reason} for {name}: requested {requested}, only {available} left")
        self.product_id = product_id
        self.name = name
        self.requested = requested
        self.available = available


class OutOfStock(StockError):
    reason = "out of stock"


class InsufficientStock(StockError):
    """Raised during checkout; the whole order is rolled back first."""

    reason = "insufficient stock"


class EmptyCart(ShopError):
    def __init__(self, message: str = "cart is empty"):
        super().__init__(message)


class StorageError(ShopError):
    """A SQLAlchemy / sqlite failure, e.g. a CHECK or FOREIGN KEY violation."""


class InvalidOrder(ShopError):
    """Checkout input that can never be stored: a malformed line or a bad total."""
