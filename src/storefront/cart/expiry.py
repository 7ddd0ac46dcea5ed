"""Cart expiry — flag idle or past-deadline carts as abandoned.

Carts hold no stock, so there is nothing to release; each cart is moved to
ABANDONED and persisted on its own, and a failure on one cart never stops
the rest of the batch.
"""

import time
from datetime import timedelta

import structlog
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.cleanup.policies import CartExpiryPolicy
from storefront.cleanup.report import StageReport
from storefront.utils.clock import utcnow

logger = structlog.get_logger(__name__)

STAGE = "carts"


class CartExpiryReconciler:
    def __init__(self, carts=None, idle_threshold=timedelta(hours=24), batch_size=1000):
        self._carts = carts
        self.policy = CartExpiryPolicy(idle_threshold=idle_threshold)
        self.idle_threshold = idle_threshold
        self.batch_size = batch_size

    @property
    def carts(self):
        return self._carts or current_domain.repository_for(ShoppingCart)

    def cleanup_expired_carts(self, as_of=None) -> StageReport:
        as_of = as_of or utcnow()
        started = time.perf_counter()
        report = StageReport(stage=STAGE)

        expired = self.carts.list_expired(as_of, idle_threshold=self.idle_threshold, limit=self.batch_size)
        report.scanned = len(expired)

        for cart in expired:
            verdict = self.policy.evaluate(cart, as_of)
            if not verdict.expired:
                continue
            report.expired += 1

            verdict.apply_to(cart)
            try:
                self.carts.update(cart)
            except Exception as e:
                report.failed += 1
                logger.error(
                    "Failed to abandon expired cart",
                    cart_id=str(cart.id),
                    error=str(e),
                )
                continue

            report.succeeded += 1
            logger.info(
                "Cart abandoned",
                cart_id=str(cart.id),
                customer_id=str(cart.customer_id) if cart.customer_id else None,
            )

        report.duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Expired cart cleanup finished",
            scanned=report.scanned,
            abandoned=report.succeeded,
            failed=report.failed,
        )
        return report
