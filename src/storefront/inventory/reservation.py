"""Stock reservations and the stock levels they draw from.

Stock Level Model:
    on_hand:   Physical count in the warehouse
    reserved:  Held for orders (not yet paid/shipped)
    available: on_hand - reserved (what can be sold)

A StockReservation is a timed hold of ``quantity`` units of one product for
one order. Reservations transition through: ACTIVE → CONFIRMED, or
ACTIVE/CONFIRMED → RELEASED (order cancelled) / EXPIRED (hold timed out).
RELEASED and EXPIRED are terminal; releasing twice is a no-op.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String

from storefront.domain import storefront
from storefront.utils.clock import as_utc

DEFAULT_HOLD = timedelta(minutes=15)


class ReservationStatus(Enum):
    ACTIVE = "Active"
    CONFIRMED = "Confirmed"
    RELEASED = "Released"
    EXPIRED = "Expired"


RELEASABLE_STATES = frozenset({ReservationStatus.ACTIVE, ReservationStatus.CONFIRMED})


@storefront.aggregate
class StockLevel:
    """Stock counters for one product."""

    product_id = Identifier(identifier=True, required=True)
    on_hand = Integer(default=0, min_value=0)
    reserved = Integer(default=0, min_value=0)
    available = Integer(default=0, min_value=0)
    updated_at = DateTime()

    @classmethod
    def create(cls, product_id, on_hand=0):
        return cls(
            product_id=product_id,
            on_hand=on_hand,
            reserved=0,
            available=on_hand,
            updated_at=datetime.now(UTC),
        )

    def hold(self, quantity):
        """Move ``quantity`` units from available to reserved."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if quantity > self.available:
            raise ValidationError({"quantity": [f"Insufficient stock: {self.available} available, {quantity} requested"]})

        self.reserved += quantity
        self.available = self.on_hand - self.reserved
        self.updated_at = datetime.now(UTC)

    def restore(self, quantity):
        """Return ``quantity`` held units to available stock."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        self.reserved = max(0, self.reserved - quantity)
        self.available = self.on_hand - self.reserved
        self.updated_at = datetime.now(UTC)


@storefront.aggregate
class StockReservation:
    order_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    status = String(choices=ReservationStatus, default=ReservationStatus.ACTIVE.value)
    reserved_at = DateTime(required=True)
    expires_at = DateTime(required=True)
    released_at = DateTime()
    release_reason = String(max_length=255)
    updated_at = DateTime()

    @classmethod
    def create(cls, order_id, product_id, quantity, expires_at=None, reserved_at=None):
        now = reserved_at or datetime.now(UTC)
        return cls(
            order_id=order_id,
            product_id=product_id,
            quantity=quantity,
            status=ReservationStatus.ACTIVE.value,
            reserved_at=now,
            expires_at=expires_at or now + DEFAULT_HOLD,
            updated_at=now,
        )

    def is_expired(self, as_of=None):
        as_of = as_of or datetime.now(UTC)
        return as_utc(self.expires_at) <= as_utc(as_of)

    def can_be_released(self):
        return ReservationStatus(self.status) in RELEASABLE_STATES

    def confirm(self):
        """Confirm the hold after the order is paid."""
        if ReservationStatus(self.status) != ReservationStatus.ACTIVE:
            raise ValidationError({"status": ["Only active reservations can be confirmed"]})

        self.status = ReservationStatus.CONFIRMED.value
        self.updated_at = datetime.now(UTC)

    def release(self, reason, as_of=None, status=ReservationStatus.RELEASED):
        """End the hold. ``status`` is RELEASED for cancellations, EXPIRED for timeouts."""
        if status not in (ReservationStatus.RELEASED, ReservationStatus.EXPIRED):
            raise ValidationError({"status": [f"{status.value} is not a release state"]})
        if not self.can_be_released():
            raise ValidationError({"status": [f"Reservation is already {self.status}"]})

        now = as_of or datetime.now(UTC)
        self.status = status.value
        self.release_reason = reason
        self.released_at = now
        self.updated_at = now
