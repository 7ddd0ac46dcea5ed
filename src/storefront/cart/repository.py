"""Repository for the ShoppingCart aggregate."""

from datetime import timedelta

from storefront.cart.cart import CartStatus, ShoppingCart
from storefront.domain import storefront
from storefront.utils.clock import as_utc


@storefront.repository(part_of=ShoppingCart)
class CartRepository:
    def list_active(self, limit=1000, offset=0) -> list[ShoppingCart]:
        """Active carts, least recently used first."""
        return (
            self._dao.query.filter(status=CartStatus.ACTIVE.value)
            .order_by("updated_at")
            .offset(offset)
            .limit(limit)
            .all()
            .items
        )

    def list_expired(self, as_of, idle_threshold=timedelta(hours=24), limit=1000) -> list[ShoppingCart]:
        """Up to ``limit`` active carts past their hard deadline or idle for at least ``idle_threshold``.

        ``expires_at`` is optional, so the deadline check runs here rather than
        in the query; active carts are paged through until the batch is full.
        """
        as_of = as_utc(as_of)
        cutoff = as_of - idle_threshold

        expired = []
        offset = 0
        while len(expired) < limit:
            page = self.list_active(limit=limit, offset=offset)
            for cart in page:
                if cart.expires_at and as_utc(cart.expires_at) <= as_of:
                    expired.append(cart)
                elif cart.updated_at and as_utc(cart.updated_at) <= cutoff:
                    expired.append(cart)
            if len(page) < limit:
                break
            offset += limit
        return expired[:limit]

    def update(self, cart: ShoppingCart) -> ShoppingCart:
        return self.add(cart)
