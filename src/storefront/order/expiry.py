"""Unpaid order expiry — cancel pending orders whose payment deadline passed.

Ordering: stock is released first, the order is cancelled second. If the
release fails the order is left untouched (still Pending, still flagged) and
retried on the next pass, so an order is never cancelled while it still
claims reserved inventory.
"""

import time

import structlog
from protean.utils.globals import current_domain

from storefront.cleanup.policies import OrderExpiryPolicy
from storefront.cleanup.report import StageReport
from storefront.inventory.release import ReservationReleaseService
from storefront.order.order import Order, OrderStatus, PaymentStatus
from storefront.utils.clock import utcnow

logger = structlog.get_logger(__name__)

STAGE = "orders"


class OrderExpiryReconciler:
    def __init__(self, orders=None, release_service=None, policy=None, batch_size=100):
        self._orders = orders
        self.release_service = release_service or ReservationReleaseService()
        self.policy = policy or OrderExpiryPolicy()
        self.batch_size = batch_size

    @property
    def orders(self):
        return self._orders or current_domain.repository_for(Order)

    def cleanup_expired_orders(self, as_of=None) -> StageReport:
        as_of = as_of or utcnow()
        started = time.perf_counter()
        report = StageReport(stage=STAGE)

        pending = self.orders.search(
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            limit=self.batch_size,
        )
        report.scanned = len(pending)

        for order in pending:
            verdict = self.policy.evaluate(order, as_of)
            if not verdict.expired:
                continue
            report.expired += 1

            if order.has_inventory_reserved(as_of):
                try:
                    self.release_service.release_by_order(order.id, as_of=as_of)
                except Exception as e:
                    report.failed += 1
                    logger.error(
                        "Failed to release inventory for expired order",
                        order_id=str(order.id),
                        error=str(e),
                    )
                    continue

            verdict.apply_to(order)
            try:
                self.orders.update(order)
            except Exception as e:
                report.failed += 1
                logger.error(
                    "Failed to cancel expired order",
                    order_id=str(order.id),
                    error=str(e),
                )
                continue

            report.succeeded += 1
            logger.info(
                "Cancelled expired order",
                order_id=str(order.id),
                order_number=order.order_number,
                payment_timeout=str(order.payment_timeout),
            )

        report.duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Expired order cleanup finished",
            scanned=report.scanned,
            expired=report.expired,
            cancelled=report.succeeded,
            failed=report.failed,
        )
        return report
