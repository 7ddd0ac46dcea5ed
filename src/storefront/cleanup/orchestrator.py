"""Cleanup orchestrator — one pass over every clock-bound aggregate.

Runs the stages in a fixed order: reservations, orders, carts, payments.
Reservations go first so that stock freed by timed-out holds is back in the
pool before orders are cancelled. A stage that raises is recorded on the
report and the remaining stages still run.
"""

import time
from uuid import uuid4

import structlog
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.cart.expiry import CartExpiryReconciler
from storefront.cleanup.policies import OrderExpiryPolicy, PaymentTimeoutPolicy
from storefront.cleanup.report import CleanupReport, StageReport
from storefront.config import CleanupSettings
from storefront.inventory.expiry import ReservationReconciler
from storefront.inventory.release import ReservationReleaseService
from storefront.inventory.reservation import StockReservation
from storefront.order.expiry import OrderExpiryReconciler
from storefront.order.order import Order, OrderStatus, PaymentStatus
from storefront.order.payment_timeout import PaymentTimeoutReconciler
from storefront.utils.clock import utcnow
from storefront.utils.logging import add_context, clear_context

logger = structlog.get_logger(__name__)


class CleanupOrchestrator:
    def __init__(self, reservations=None, orders=None, carts=None, payments=None, settings=None):
        self.settings = settings or CleanupSettings()
        release_service = ReservationReleaseService()

        self.reservations = reservations or ReservationReconciler(
            release_service=release_service,
            batch_size=self.settings.reservation_batch_size,
        )
        self.orders = orders or OrderExpiryReconciler(
            release_service=release_service,
            batch_size=self.settings.order_batch_size,
        )
        self.carts = carts or CartExpiryReconciler(
            idle_threshold=self.settings.cart_idle_threshold,
            batch_size=self.settings.cart_batch_size,
        )
        self.payments = payments or PaymentTimeoutReconciler(
            release_service=release_service,
            batch_size=self.settings.payment_batch_size,
        )

    @classmethod
    def from_settings(cls, settings: CleanupSettings | None = None) -> "CleanupOrchestrator":
        return cls(settings=settings or CleanupSettings.from_env())

    # -------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------
    def cleanup_expired_reservations(self, as_of=None) -> StageReport:
        return self.reservations.cleanup_expired_reservations(as_of)

    def cleanup_expired_orders(self, as_of=None) -> StageReport:
        return self.orders.cleanup_expired_orders(as_of)

    def cleanup_expired_carts(self, as_of=None) -> StageReport:
        return self.carts.cleanup_expired_carts(as_of)

    def cleanup_expired_payments(self, as_of=None) -> StageReport:
        return self.payments.cleanup_expired_payments(as_of)

    def stages(self):
        return [
            ("reservations", self.cleanup_expired_reservations),
            ("orders", self.cleanup_expired_orders),
            ("carts", self.cleanup_expired_carts),
            ("payments", self.cleanup_expired_payments),
        ]

    # -------------------------------------------------------------------
    # Full pass
    # -------------------------------------------------------------------
    def run_cleanup(self, as_of=None) -> CleanupReport:
        as_of = as_of or utcnow()
        report = CleanupReport(run_id=str(uuid4()), started_at=utcnow())
        add_context(cleanup_run_id=report.run_id)

        try:
            logger.info("Starting cleanup pass", as_of=as_of.isoformat())
            for name, run_stage in self.stages():
                started = time.perf_counter()
                try:
                    stage_report = run_stage(as_of)
                except Exception as e:
                    stage_report = StageReport(
                        stage=name,
                        error=str(e) or e.__class__.__name__,
                        duration_ms=(time.perf_counter() - started) * 1000,
                    )
                    logger.error("Cleanup stage failed", stage=name, error=stage_report.error)
                else:
                    if stage_report.has_errors:
                        logger.warning(
                            "Cleanup stage completed with errors",
                            stage=name,
                            failed=stage_report.failed,
                            release_failures=stage_report.release_failures,
                        )
                report.stages.append(stage_report)

            report.finished_at = utcnow()
            if report.has_errors:
                logger.warning("Cleanup pass completed with errors", stages=len(report.stages))
            else:
                logger.info("Cleanup pass completed")
        finally:
            clear_context("cleanup_run_id")

        return report

    # -------------------------------------------------------------------
    # Stats
    # -------------------------------------------------------------------
    def get_cleanup_stats(self, as_of=None) -> dict[str, int]:
        """Counts of what the next pass would touch. Reads only."""
        as_of = as_of or utcnow()
        settings = self.settings

        expired_reservations = current_domain.repository_for(StockReservation).list_expired(
            as_of, limit=settings.reservation_batch_size
        )
        expired_carts = current_domain.repository_for(ShoppingCart).list_expired(
            as_of, idle_threshold=settings.cart_idle_threshold, limit=settings.cart_batch_size
        )

        order_repo = current_domain.repository_for(Order)
        pending_orders = order_repo.search(
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            limit=settings.order_batch_size,
        )
        unpaid_orders = order_repo.search(payment_status=PaymentStatus.PENDING, limit=settings.payment_batch_size)

        order_policy = OrderExpiryPolicy()
        payment_policy = PaymentTimeoutPolicy()
        return {
            "expired_reservations": len(expired_reservations),
            "expired_carts": len(expired_carts),
            "pending_orders": len(pending_orders),
            "expired_orders": sum(1 for o in pending_orders if order_policy.evaluate(o, as_of).expired),
            "expired_payments": sum(1 for o in unpaid_orders if payment_policy.evaluate(o, as_of).expired),
        }
