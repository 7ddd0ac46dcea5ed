"""Shared BDD fixtures and step definitions for storefront expiry scenarios."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then

from storefront.cart.cart import CartStatus
from storefront.order.order import Order, OrderStatus, PaymentStatus


@pytest.fixture()
def context():
    """Mutable scenario state: the aggregates under test, overrides and the last report."""
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('product "{product_id}" has {on_hand:d} on hand with {reserved:d} reserved'))
def stock_level(make_stock, product_id, on_hand, reserved):
    make_stock(product_id=product_id, on_hand=on_hand, reserved=reserved)


@given("an unpaid order whose payment deadline has passed")
def unpaid_order(context, make_order, now):
    context["order"] = make_order(timeout=now - timedelta(hours=1))


@given(parsers.cfparse('the order is "{status}"'))
def order_status(context, status):
    order = context["order"]
    order.status = OrderStatus(status).value
    current_domain.repository_for(Order).add(order)


@given(parsers.cfparse('the order holds {quantity:d} units of product "{product_id}"'))
def order_holds_stock(context, make_reservation, now, quantity, product_id):
    order = context["order"]
    until = now + timedelta(minutes=10)
    order.reserve_inventory(until=until)
    current_domain.repository_for(Order).add(order)
    make_reservation(order_id=order.id, product_id=product_id, quantity=quantity, expires_at=until)


@given(parsers.cfparse("an active cart last used {hours:d} hours ago"))
def idle_cart(context, make_cart, now, hours):
    context["cart"] = make_cart(updated_at=now - timedelta(hours=hours))


@given("the inventory service is unavailable")
def inventory_unavailable(context):
    release_service = MagicMock()
    release_service.release_by_order.side_effect = RuntimeError("inventory service unavailable")
    release_service.release_expired.side_effect = RuntimeError("inventory service unavailable")
    context["release_service"] = release_service


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the stage reports no errors")
def stage_has_no_errors(context):
    assert context["report"].has_errors is False


@then(parsers.cfparse("the stage counted {count:d} failure"))
def stage_failures(context, count):
    assert context["report"].failed == count
    assert context["report"].has_errors is True


@then(parsers.cfparse("the stage counted {count:d} release failure"))
def stage_release_failures(context, count):
    assert context["report"].release_failures == count
    assert context["report"].has_errors is True


@then(parsers.cfparse('product "{product_id}" has {available:d} available'))
def product_available(stock_of, product_id, available):
    assert stock_of(product_id).available == available


@then("the order is cancelled with payment failed")
def order_cancelled(context, reload):
    order = reload(context["order"])
    assert order.status == OrderStatus.CANCELLED.value
    assert order.payment_status == PaymentStatus.FAILED.value
    assert order.cancelled_by == "System"


@then("the order is still pending")
def order_pending(context, reload):
    order = reload(context["order"])
    assert order.status == OrderStatus.PENDING.value
    assert order.payment_status == PaymentStatus.PENDING.value


@then("the order no longer holds inventory")
def order_released(context, reload):
    assert reload(context["order"]).inventory_reserved is False


@then("the order still holds inventory")
def order_still_holds(context, reload):
    assert reload(context["order"]).inventory_reserved is True


@then("the cart is abandoned")
def cart_abandoned(context, reload):
    assert reload(context["cart"]).status == CartStatus.ABANDONED.value


@then("the cart is still active")
def cart_active(context, reload):
    assert reload(context["cart"]).status == CartStatus.ACTIVE.value
