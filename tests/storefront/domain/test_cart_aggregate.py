"""Tests for ShoppingCart activity, checkout and abandonment."""

from datetime import UTC, datetime

import pytest
from protean.exceptions import ValidationError

from storefront.cart.cart import CartStatus, ShoppingCart


class TestCartActivity:
    def test_new_cart_is_active_and_empty(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        assert cart.status == CartStatus.ACTIVE.value
        assert cart.item_count == 0

    def test_guest_cart(self):
        cart = ShoppingCart.create(session_id="sess-001")
        assert cart.customer_id is None
        assert cart.session_id == "sess-001"

    def test_add_item_touches_last_activity(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        cart.updated_at = datetime(2020, 1, 1, tzinfo=UTC)
        cart.add_item(2)
        assert cart.item_count == 2
        assert cart.updated_at > datetime(2020, 1, 1, tzinfo=UTC)


class TestCartCheckout:
    def test_check_out(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        cart.add_item()
        cart.check_out()
        assert cart.status == CartStatus.CHECKED_OUT.value

    def test_cannot_check_out_empty_cart(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        with pytest.raises(ValidationError):
            cart.check_out()


class TestCartAbandonment:
    def test_mark_abandoned(self):
        as_of = datetime(2026, 3, 2, tzinfo=UTC)
        cart = ShoppingCart.create(customer_id="cust-001")
        cart.mark_abandoned(as_of)
        assert cart.status == CartStatus.ABANDONED.value
        assert cart.updated_at == as_of

    def test_cannot_abandon_twice(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        cart.mark_abandoned()
        with pytest.raises(ValidationError):
            cart.mark_abandoned()

    def test_cannot_abandon_checked_out_cart(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        cart.add_item()
        cart.check_out()
        with pytest.raises(ValidationError):
            cart.mark_abandoned()

    def test_cannot_add_to_abandoned_cart(self):
        cart = ShoppingCart.create(customer_id="cust-001")
        cart.mark_abandoned()
        with pytest.raises(ValidationError):
            cart.add_item()
