"""Shared builders for storefront tests.

Every builder persists through the domain's repositories, so the objects are
visible to the reconcilers exactly as production data would be.
"""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.inventory.reservation import StockLevel, StockReservation
from storefront.order.order import Order

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


@pytest.fixture()
def now():
    return NOW


@pytest.fixture()
def make_order():
    def _make(timeout=NOW - timedelta(hours=1), reserved_until=None, **overrides):
        order = Order.place(
            customer_id=overrides.pop("customer_id", "cust-001"),
            order_number=overrides.pop("order_number", "ORD-0001"),
            grand_total=overrides.pop("grand_total", 49.99),
            payment_timeout=timeout,
            placed_at=NOW - timedelta(days=2),
        )
        if reserved_until is not None:
            order.reserve_inventory(until=reserved_until)
        for name, value in overrides.items():
            setattr(order, name, value)
        current_domain.repository_for(Order).add(order)
        return order

    return _make


@pytest.fixture()
def make_stock():
    def _make(product_id="prod-001", on_hand=10, reserved=0):
        level = StockLevel.create(product_id=product_id, on_hand=on_hand)
        if reserved:
            level.hold(reserved)
        current_domain.repository_for(StockLevel).add(level)
        return level

    return _make


@pytest.fixture()
def make_reservation():
    def _make(order_id="ord-001", product_id="prod-001", quantity=2, expires_at=NOW - timedelta(minutes=1)):
        reservation = StockReservation.create(
            order_id=order_id,
            product_id=product_id,
            quantity=quantity,
            expires_at=expires_at,
            reserved_at=expires_at - timedelta(minutes=15),
        )
        current_domain.repository_for(StockReservation).add(reservation)
        return reservation

    return _make


@pytest.fixture()
def make_cart():
    def _make(updated_at=NOW - timedelta(hours=25), expires_at=None, **overrides):
        cart = ShoppingCart.create(
            customer_id=overrides.pop("customer_id", "cust-001"),
            session_id=overrides.pop("session_id", None),
            expires_at=expires_at,
        )
        cart.add_item(overrides.pop("quantity", 1))
        cart.updated_at = updated_at
        for name, value in overrides.items():
            setattr(cart, name, value)
        current_domain.repository_for(ShoppingCart).add(cart)
        return cart

    return _make


@pytest.fixture()
def reload():
    def _reload(aggregate):
        return current_domain.repository_for(type(aggregate)).get(aggregate.id)

    return _reload


@pytest.fixture()
def stock_of():
    def _stock_of(product_id="prod-001"):
        return current_domain.repository_for(StockLevel).get(product_id)

    return _stock_of
