"""BDD tests for payment timeouts."""

from pytest_bdd import scenarios, when

from storefront.order.payment_timeout import PaymentTimeoutReconciler

scenarios("features/payment_timeout.feature")


@when("the payment timeout cleanup runs")
def run_payment_cleanup(context, now):
    reconciler = PaymentTimeoutReconciler(release_service=context.get("release_service"))
    context["report"] = reconciler.cleanup_expired_payments(now)
