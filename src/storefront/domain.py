"""Storefront bounded context: order, cart and stock-hold housekeeping.

Owns the aggregates whose lifetimes are bounded by a clock (unpaid orders,
idle carts, stock reservations) and the reconciliation engine that moves
them to a terminal state once that clock runs out.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging

configure_logging()

storefront = Domain(name="storefront")
