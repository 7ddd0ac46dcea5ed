"""Repository for the Order aggregate."""

from storefront.domain import storefront
from storefront.order.order import Order, OrderStatus, PaymentStatus


def _value(status):
    return status.value if isinstance(status, (OrderStatus, PaymentStatus)) else status


@storefront.repository(part_of=Order)
class OrderRepository:
    def search(self, status=None, payment_status=None, limit=100) -> list[Order]:
        """Orders matching the given status filters, at most ``limit`` of them."""
        filters = {}
        if status is not None:
            filters["status"] = _value(status)
        if payment_status is not None:
            filters["payment_status"] = _value(payment_status)

        query = self._dao.query.filter(**filters) if filters else self._dao.query
        return query.limit(limit).all().items

    def update(self, order: Order) -> Order:
        return self.add(order)
