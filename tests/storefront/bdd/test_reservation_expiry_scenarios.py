"""BDD tests for releasing expired stock reservations."""

from pytest_bdd import given, parsers, scenarios, then, when

from storefront.cleanup.orchestrator import CleanupOrchestrator
from storefront.inventory.expiry import ReservationReconciler

scenarios("features/reservation_expiry.feature")


@given(parsers.cfparse('{count:d} expired reservations of {quantity:d} units for product "{product_id}"'))
def expired_reservations(make_reservation, count, quantity, product_id):
    for i in range(count):
        make_reservation(order_id=f"ord-{i:03d}", product_id=product_id, quantity=quantity)


@when("the reservation cleanup runs")
def run_reservation_cleanup(context, now):
    context["report"] = ReservationReconciler().cleanup_expired_reservations(now)


@then(parsers.cfparse("{count:d} reservations were released"))
def reservations_released(context, count):
    assert context["report"].succeeded == count


@then(parsers.cfparse("the cleanup stats show {count:d} expired reservations"))
def stats_expired_reservations(now, count):
    assert CleanupOrchestrator().get_cleanup_stats(now)["expired_reservations"] == count
