"""Shared pytest fixtures for minishop tests."""

import pytest

from minishop.cart import CartRepository
from minishop.catalog import ProductRepository
from minishop.db import Store
from minishop.orders import OrderRepository


@pytest.fixture
def store(tmp_path):
    """A fresh on-disk store with the schema created."""
    s = Store(str(tmp_path / "shopping.db"))
    s.init_db()
    yield s
    s.close()


@pytest.fixture
def products(store):
    repo = ProductRepository(store)
    repo.seed_products()
    return repo


@pytest.fixture
def cart(store, products):
    return CartRepository(store)


@pytest.fixture
def orders(store, products):
    return OrderRepository(store)


@pytest.fixture
def set_stock(store):
    """Overwrite a product's stock directly, bypassing the repositories."""
    from minishop.models import Product

    def _set(product_id, stock):
        with store.session() as s:
            s.get(Product, product_id).stock = stock

    return _set
