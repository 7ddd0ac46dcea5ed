"""Expiry policies: when a clock-bound aggregate is done, and what it becomes.

Each policy is a pure check over one aggregate and a reference time. It
returns an ``ExpiryVerdict`` holding the exact field changes of the terminal
state; the verdict can be applied to the in-memory aggregate, but persisting
it is left to the caller.

Expiry is inclusive: an object whose deadline equals ``as_of`` is expired.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from storefront.cart.cart import CartStatus
from storefront.inventory.reservation import ReservationStatus
from storefront.order.order import CANCELLABLE_STATES, CancellationActor, OrderStatus, PaymentStatus
from storefront.utils.clock import as_utc

PAYMENT_TIMEOUT_REASON = "payment_timeout"
DEFAULT_CART_IDLE_THRESHOLD = timedelta(hours=24)


@dataclass(frozen=True)
class ExpiryVerdict:
    expired: bool
    changes: dict[str, Any] = field(default_factory=dict)

    def apply_to(self, entity) -> None:
        for name, value in self.changes.items():
            setattr(entity, name, value)


NOT_EXPIRED = ExpiryVerdict(expired=False)


def _cancellation(as_of: datetime) -> dict[str, Any]:
    return {
        "status": OrderStatus.CANCELLED.value,
        "payment_status": PaymentStatus.FAILED.value,
        "cancelled_by": CancellationActor.SYSTEM.value,
        "cancellation_reason": PAYMENT_TIMEOUT_REASON,
        "updated_at": as_of,
    }


class ReservationExpiryPolicy:
    def evaluate(self, reservation, as_of: datetime) -> ExpiryVerdict:
        if ReservationStatus(reservation.status) != ReservationStatus.ACTIVE:
            return NOT_EXPIRED
        if reservation.expires_at is None or as_utc(reservation.expires_at) > as_utc(as_of):
            return NOT_EXPIRED

        return ExpiryVerdict(
            expired=True,
            changes={
                "status": ReservationStatus.EXPIRED.value,
                "released_at": as_of,
                "updated_at": as_of,
            },
        )


class OrderExpiryPolicy:
    """Unpaid orders past their payment deadline are cancelled by the system."""

    def evaluate(self, order, as_of: datetime) -> ExpiryVerdict:
        if OrderStatus(order.status) != OrderStatus.PENDING:
            return NOT_EXPIRED
        if PaymentStatus(order.payment_status) != PaymentStatus.PENDING:
            return NOT_EXPIRED
        if not order.is_payment_expired(as_of):
            return NOT_EXPIRED

        changes = _cancellation(as_of)
        changes["inventory_reserved"] = False
        changes["reserved_until"] = None
        return ExpiryVerdict(expired=True, changes=changes)


class PaymentTimeoutPolicy:
    """Like ``OrderExpiryPolicy`` but for any still-cancellable order.

    The reservation flag is left alone: it is only cleared once the held
    stock has actually been released.
    """

    def evaluate(self, order, as_of: datetime) -> ExpiryVerdict:
        if PaymentStatus(order.payment_status) != PaymentStatus.PENDING:
            return NOT_EXPIRED
        if OrderStatus(order.status) not in CANCELLABLE_STATES:
            return NOT_EXPIRED
        if not order.is_payment_expired(as_of):
            return NOT_EXPIRED

        return ExpiryVerdict(expired=True, changes=_cancellation(as_of))


class CartExpiryPolicy:
    def __init__(self, idle_threshold: timedelta = DEFAULT_CART_IDLE_THRESHOLD):
        self.idle_threshold = idle_threshold

    def evaluate(self, cart, as_of: datetime) -> ExpiryVerdict:
        if CartStatus(cart.status) != CartStatus.ACTIVE:
            return NOT_EXPIRED

        as_of_utc = as_utc(as_of)
        past_deadline = cart.expires_at is not None and as_utc(cart.expires_at) <= as_of_utc
        idle = cart.updated_at is not None and as_of_utc - as_utc(cart.updated_at) >= self.idle_threshold
        if not (past_deadline or idle):
            return NOT_EXPIRED

        return ExpiryVerdict(
            expired=True,
            changes={"status": CartStatus.ABANDONED.value, "updated_at": as_of},
        )
