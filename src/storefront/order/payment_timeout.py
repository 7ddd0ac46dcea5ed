"""Payment timeout — cancel any still-cancellable order left unpaid too long.

Ordering: the cancellation is persisted first and the stock released second.
A failed release does not undo the cancellation; the order keeps its
reservation flag and the reservation reconciler reclaims the stock once the
hold runs out.
"""

import time

import structlog
from protean.utils.globals import current_domain

from storefront.cleanup.policies import PaymentTimeoutPolicy
from storefront.cleanup.report import StageReport
from storefront.inventory.release import ReservationReleaseService
from storefront.order.order import Order, PaymentStatus
from storefront.utils.clock import utcnow

logger = structlog.get_logger(__name__)

STAGE = "payments"


class PaymentTimeoutReconciler:
    def __init__(self, orders=None, release_service=None, policy=None, batch_size=1000):
        self._orders = orders
        self.release_service = release_service or ReservationReleaseService()
        self.policy = policy or PaymentTimeoutPolicy()
        self.batch_size = batch_size

    @property
    def orders(self):
        return self._orders or current_domain.repository_for(Order)

    def cleanup_expired_payments(self, as_of=None) -> StageReport:
        as_of = as_of or utcnow()
        started = time.perf_counter()
        report = StageReport(stage=STAGE)

        unpaid = self.orders.search(payment_status=PaymentStatus.PENDING, limit=self.batch_size)
        report.scanned = len(unpaid)

        for order in unpaid:
            verdict = self.policy.evaluate(order, as_of)
            if not verdict.expired:
                continue
            report.expired += 1

            # Decided before the cancellation touches the order
            holds_stock = order.has_inventory_reserved(as_of)

            verdict.apply_to(order)
            if not holds_stock:
                # A lapsed hold is reclaimed by the reservation stage
                order.release_reservation_flag()
            try:
                self.orders.update(order)
            except Exception as e:
                report.failed += 1
                logger.error(
                    "Failed to cancel order after payment timeout",
                    order_id=str(order.id),
                    error=str(e),
                )
                continue
            report.succeeded += 1

            if not holds_stock:
                continue

            try:
                self.release_service.release_by_order(order.id, as_of=as_of)
            except Exception as e:
                report.release_failures += 1
                logger.error(
                    "Failed to release inventory after payment timeout",
                    order_id=str(order.id),
                    error=str(e),
                )
                continue

            order.release_reservation_flag()
            try:
                self.orders.update(order)
            except Exception as e:
                report.release_failures += 1
                logger.error(
                    "Failed to clear reservation flag after release",
                    order_id=str(order.id),
                    error=str(e),
                )

        report.duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Payment timeout cleanup finished",
            scanned=report.scanned,
            expired=report.expired,
            cancelled=report.succeeded,
            failed=report.failed,
            release_failures=report.release_failures,
        )
        return report
