from decimal import Decimal

import pytest
from prometheus_client import REGISTRY

from minishop.errors import EmptyCart, InsufficientStock, InvalidOrder, NotFound
from minishop.models import Product
from minishop.orders import compute_totals
from minishop.schemas import CartLine


def _stock(store, product_id):
    with store.session() as s:
        return s.get(Product, product_id).stock


def _created():
    return REGISTRY.get_sample_value("shop_orders_created_total") or 0


def _failures(reason):
    return REGISTRY.get_sample_value("shop_order_failures_total", {"reason": reason}) or 0


def test_compute_totals_adds_ten_percent_tax():
    lines = [CartLine(product_id="p1", qty=50, price=250000)]
    totals = compute_totals(lines)
    assert totals.subtotal == Decimal("12500000.00")
    assert totals.tax == Decimal("1250000.00")
    assert totals.total == Decimal("13750000.00")


def test_compute_totals_rounds_to_cents():
    lines = [CartLine(product_id="x", qty=3, price=0.35), CartLine(product_id="y", qty=1, price=0.1)]
    totals = compute_totals(lines)
    assert totals.subtotal == Decimal("1.15")
    assert totals.tax == Decimal("0.12")
    assert totals.total == Decimal("1.27")
    assert compute_totals(lines, tax_rate=0).total == Decimal("1.15")


def test_full_checkout_of_one_product(cart, orders, store):
    for _ in range(50):
        cart.add_to_cart("p1")
    lines = cart.get_cart()
    before = _created()
    order = orders.create_order(lines, 250000 * 50 * Decimal("1.10"))
    assert _created() == before + 1

    assert order.total == 13750000
    assert _stock(store, "p1") == 0
    assert cart.get_cart() == []
    assert [o.order_id for o in orders.get_orders()] == [order.order_id]

    items = orders.get_order_items(order.order_id)
    assert [(i.product_id, i.name, i.qty, i.price) for i in items] == [
        ("p1", "Hạt Cà phê Arabica", 50, 250000)
    ]


def test_checkout_decrements_each_product(cart, orders, store):
    cart.add_to_cart("p2")
    cart.add_to_cart("p2")
    cart.add_to_cart("p12")
    order = orders.checkout()
    assert order.total == pytest.approx((180000 * 2 + 950000) * 1.1)
    assert _stock(store, "p2") == 28
    assert _stock(store, "p12") == 4
    assert cart.get_cart() == []
    assert len(orders.get_order_items(order.order_id)) == 2


def test_insufficient_stock_rolls_back_everything(cart, orders, store, set_stock):
    for _ in range(3):
        cart.add_to_cart("p1")
    cart.add_to_cart("p2")
    cart.add_to_cart("p2")
    set_stock("p2", 1)
    lines = cart.get_cart()
    failed = _failures("insufficient_stock")
    created = _created()

    with pytest.raises(InsufficientStock) as exc:
        orders.create_order(lines, compute_totals(lines).total)
    assert exc.value.product_id == "p2"
    assert "Trà Oolong" in str(exc.value)

    assert _stock(store, "p1") == 50
    assert _stock(store, "p2") == 1
    assert [(i.product_id, i.qty) for i in cart.get_cart()] == [("p1", 3), ("p2", 2)]
    assert orders.get_orders() == []
    assert _failures("insufficient_stock") == failed + 1
    assert _created() == created


def test_repeated_lines_see_the_earlier_decrement(orders, store):
    lines = [
        {"product_id": "p12", "qty": 3, "price": 950000},
        {"product_id": "p12", "qty": 3, "price": 950000},
    ]
    with pytest.raises(InsufficientStock):
        orders.create_order(lines, 0)
    assert _stock(store, "p12") == 5
    assert orders.get_orders() == []


def test_vanished_product_raises_not_found(orders):
    with pytest.raises(NotFound):
        orders.create_order([CartLine(product_id="ghost", qty=1, price=1)], 1.1)
    assert orders.get_orders() == []


def test_empty_cart_cannot_be_ordered(orders):
    before = _failures("empty_cart")
    with pytest.raises(EmptyCart):
        orders.create_order([], 0)
    with pytest.raises(EmptyCart):
        orders.checkout()
    assert _failures("empty_cart") == before + 2


def test_order_keeps_price_at_time_of_order(cart, orders, store):
    cart.add_to_cart("p3")
    order = orders.checkout()
    with store.session() as s:
        s.get(Product, "p3").price = 999999
    [item] = orders.get_order_items(order.order_id)
    assert item.price == 320000
    assert orders.get_orders()[0].total == pytest.approx(352000)


def test_order_item_price_comes_from_the_cart_line(orders):
    order = orders.create_order([CartLine(product_id="p6", qty=2, price=70000)], 154000)
    [item] = orders.get_order_items(order.order_id)
    assert item.price == 70000


def test_orders_are_listed_newest_first(cart, orders):
    cart.add_to_cart("p1")
    first = orders.checkout()
    cart.add_to_cart("p2")
    second = orders.checkout()
    assert [o.order_id for o in orders.get_orders()] == [second.order_id, first.order_id]
    assert first.created_at is not None


def test_order_items_of_unknown_order_is_empty(orders):
    assert orders.get_order_items(999) == []


@pytest.mark.parametrize("total", [-5, -0.01, float("nan"), float("inf")])
def test_invalid_total_is_rejected(cart, orders, store, total):
    cart.add_to_cart("p1")
    before = _failures("invalid_total")
    with pytest.raises(InvalidOrder):
        orders.create_order([{"product_id": "p1", "qty": 1, "price": 250000}], total)
    assert _failures("invalid_total") == before + 1
    assert orders.get_orders() == []
    assert _stock(store, "p1") == 50
    assert len(cart.get_cart()) == 1


@pytest.mark.parametrize("line", [
    {"product_id": "p1", "qty": 0, "price": 250000},
    {"product_id": "p1", "qty": -2, "price": 250000},
    {"qty": 1, "price": 250000},
])
def test_malformed_line_raises_typed_error(orders, store, line):
    before = _failures("invalid_line")
    with pytest.raises(InvalidOrder):
        orders.create_order([line], 275000)
    assert _failures("invalid_line") == before + 1
    assert orders.get_orders() == []
    assert _stock(store, "p1") == 50


def test_zero_total_is_accepted(orders):
    order = orders.create_order([CartLine(product_id="p6", qty=1, price=0)], 0)
    assert order.total == 0
