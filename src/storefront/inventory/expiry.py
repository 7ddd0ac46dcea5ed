"""Reservation expiry — release stock holds whose timer ran out.

Fetches one snapshot of expired reservations and hands exactly that snapshot
to the release service, so the reported count and the released set cannot
drift apart under concurrent expiry. A failure in the release step fails the
whole stage; the release service is idempotent per reservation, so the next
pass simply picks up whatever is still active.
"""

import time

import structlog
from protean.utils.globals import current_domain

from storefront.cleanup.policies import ReservationExpiryPolicy
from storefront.cleanup.report import StageReport
from storefront.inventory.release import ReservationReleaseService
from storefront.inventory.reservation import StockReservation
from storefront.utils.clock import utcnow

logger = structlog.get_logger(__name__)

STAGE = "reservations"


class ReservationReconciler:
    def __init__(self, reservations=None, release_service=None, policy=None, batch_size=1000):
        self._reservations = reservations
        self.release_service = release_service or ReservationReleaseService(reservations=reservations)
        self.policy = policy or ReservationExpiryPolicy()
        self.batch_size = batch_size

    @property
    def reservations(self):
        return self._reservations or current_domain.repository_for(StockReservation)

    def cleanup_expired_reservations(self, as_of=None) -> StageReport:
        as_of = as_of or utcnow()
        started = time.perf_counter()
        report = StageReport(stage=STAGE)

        fetched = self.reservations.list_expired(as_of, limit=self.batch_size)
        expired = [r for r in fetched if self.policy.evaluate(r, as_of).expired]
        report.scanned = len(fetched)
        report.expired = len(expired)

        if not expired:
            logger.info("No expired reservations found")
            report.duration_ms = (time.perf_counter() - started) * 1000
            return report

        logger.info("Releasing expired reservations", count=len(expired), as_of=as_of.isoformat())
        report.succeeded = self.release_service.release_expired(as_of, reservations=expired)
        report.duration_ms = (time.perf_counter() - started) * 1000

        logger.info(
            "Expired reservations released",
            expired=report.expired,
            released=report.succeeded,
        )
        return report
