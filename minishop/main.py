import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from .cart import CartRepository
from .catalog import ProductRepository
from .config import settings
from .db import Store
from .orders import OrderRepository

logger = logging.getLogger(__name__)


class Shop:
    """The repositories the presentation layer talks to, sharing one Store."""

    def __init__(self, store: Store):
        self.store = store
        self.products = ProductRepository(store)
        self.cart = CartRepository(store)
        self.orders = OrderRepository(store)

    def startup(self, seed: bool = True) -> None:
        self.store.init_db()
        if seed:
            self.products.seed_products()

    def shutdown(self) -> None:
        self.store.close()


@contextmanager
def open_shop(path: Optional[str] = None, seed: Optional[bool] = None) -> Iterator[Shop]:
    """
    Open the local database, make sure the schema exists and (optionally)
    seed the starter catalog; the store is closed when the block exits.
    """
    shop = Shop(Store(path))
    try:
        shop.startup(settings.SEED_ON_STARTUP if seed is None else seed)
        yield shop
    finally:
        shop.shutdown()
        logger.info("store at %s closed", shop.store.path)
