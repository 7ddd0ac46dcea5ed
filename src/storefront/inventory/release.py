"""Reservation release: hand held stock back to the available pool.

Each reservation is released in its own unit of work: the reservation's
status change and the matching StockLevel adjustment commit together or not
at all. A reservation that is no longer releasable is skipped, so calling
either entry point again over the same data releases nothing and never moves
stock twice.
"""

import structlog
from protean import UnitOfWork
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.inventory.reservation import ReservationStatus, StockLevel, StockReservation
from storefront.utils.clock import utcnow

logger = structlog.get_logger(__name__)


class ReservationReleaseService:
    def __init__(self, reservations=None, stock_levels=None):
        self._reservations = reservations
        self._stock_levels = stock_levels

    @property
    def reservations(self):
        return self._reservations or current_domain.repository_for(StockReservation)

    @property
    def stock_levels(self):
        return self._stock_levels or current_domain.repository_for(StockLevel)

    def release(self, reservation, reason, as_of=None, status=ReservationStatus.RELEASED):
        """Release one reservation. Returns False when it was already released.

        The reservation is re-read inside the unit of work, so a stale copy
        from an earlier snapshot cannot release the same hold twice.
        """
        as_of = as_of or utcnow()
        with UnitOfWork():
            current = self.reservations.get(reservation.id)
            if not current.can_be_released():
                logger.debug(
                    "Reservation already released, skipping",
                    reservation_id=str(current.id),
                    status=current.status,
                )
                return False

            current.release(reason=reason, as_of=as_of, status=status)
            self.reservations.add(current)

            try:
                level = self.stock_levels.get(current.product_id)
            except ObjectNotFoundError:
                logger.warning(
                    "No stock level for reserved product, nothing to restore",
                    reservation_id=str(current.id),
                    product_id=str(current.product_id),
                )
            else:
                level.restore(current.quantity)
                self.stock_levels.add(level)

        logger.info(
            "Released stock reservation",
            reservation_id=str(current.id),
            order_id=str(current.order_id),
            product_id=str(current.product_id),
            quantity=current.quantity,
            reason=reason,
        )
        return True

    def release_expired(self, as_of=None, reservations=None):
        """Expire every timed-out reservation; ``reservations`` pins the batch to a snapshot."""
        as_of = as_of or utcnow()
        if reservations is None:
            reservations = self.reservations.list_expired(as_of)

        released = 0
        for reservation in reservations:
            if self.release(reservation, reason="timeout", as_of=as_of, status=ReservationStatus.EXPIRED):
                released += 1
        return released

    def release_by_order(self, order_id, as_of=None, reason="order_cancelled"):
        """Release every outstanding reservation held for ``order_id``."""
        as_of = as_of or utcnow()
        released = 0
        for reservation in self.reservations.list_for_order(order_id):
            if self.release(reservation, reason=reason, as_of=as_of):
                released += 1
        return released
