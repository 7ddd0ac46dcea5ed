"""Repositories for stock reservations."""

from storefront.domain import storefront
from storefront.inventory.reservation import ReservationStatus, StockReservation
from storefront.utils.clock import as_utc


@storefront.repository(part_of=StockReservation)
class StockReservationRepository:
    def list_active(self, limit=1000) -> list[StockReservation]:
        return self._dao.query.filter(status=ReservationStatus.ACTIVE.value).limit(limit).all().items

    def list_expired(self, as_of, limit=1000) -> list[StockReservation]:
        """Active reservations whose hold ran out at or before ``as_of``, oldest first."""
        return (
            self._dao.query.filter(status=ReservationStatus.ACTIVE.value, expires_at__lte=as_utc(as_of))
            .order_by("expires_at")
            .limit(limit)
            .all()
            .items
        )

    def list_for_order(self, order_id) -> list[StockReservation]:
        return self._dao.query.filter(order_id=str(order_id)).limit(1000).all().items
