"""Order aggregate (CQRS), limited to what payment and stock-hold expiry need.

An order is placed in PENDING with its payment PENDING and a payment deadline.
Inventory for its lines is held by StockReservations in the inventory module;
the order only tracks whether such a hold exists (``inventory_reserved``) and
until when (``reserved_until``).

State Machine:
    PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED → COMPLETED
    CANCELLED (from PENDING, CONFIRMED, PROCESSING) → REFUNDED
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, String

from storefront.domain import storefront
from storefront.inventory.reservation import DEFAULT_HOLD
from storefront.utils.clock import as_utc


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


class PaymentStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class CancellationActor(Enum):
    CUSTOMER = "Customer"
    SYSTEM = "System"
    ADMIN = "Admin"


# States from which an unpaid order may still be cancelled
CANCELLABLE_STATES = frozenset(
    {
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
    }
)

DEFAULT_PAYMENT_TIMEOUT = timedelta(hours=24)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    customer_id = Identifier(required=True)
    order_number = String(max_length=50)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    grand_total = Float(default=0.0)
    payment_timeout = DateTime()
    inventory_reserved = Boolean(default=False)
    reserved_until = DateTime()
    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=50)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, customer_id, order_number=None, grand_total=0.0, payment_timeout=None, placed_at=None):
        """Place a new unpaid order with a payment deadline (24 hours unless given)."""
        now = placed_at or datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            order_number=order_number,
            grand_total=grand_total,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_timeout=payment_timeout or now + DEFAULT_PAYMENT_TIMEOUT,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def is_payment_expired(self, as_of=None):
        """True once the payment deadline has been reached."""
        if self.payment_timeout is None:
            return False
        as_of = as_of or datetime.now(UTC)
        return as_utc(as_of) >= as_utc(self.payment_timeout)

    def is_reservation_expired(self, as_of=None):
        if self.reserved_until is None:
            return False
        as_of = as_of or datetime.now(UTC)
        return as_utc(as_of) >= as_utc(self.reserved_until)

    def has_inventory_reserved(self, as_of=None):
        """True while the order still holds stock: flag set and hold not lapsed."""
        return bool(self.inventory_reserved) and not self.is_reservation_expired(as_of)

    # -------------------------------------------------------------------
    # Mutators
    # -------------------------------------------------------------------
    def reserve_inventory(self, until=None):
        """Record that stock is held for this order until ``until``."""
        if OrderStatus(self.status) not in CANCELLABLE_STATES:
            raise ValidationError({"status": [f"Cannot reserve inventory for a {self.status} order"]})

        self.inventory_reserved = True
        self.reserved_until = until or datetime.now(UTC) + DEFAULT_HOLD
        self.updated_at = datetime.now(UTC)

    def release_reservation_flag(self):
        """Forget the stock hold. The reservation rows themselves are released elsewhere."""
        self.inventory_reserved = False
        self.reserved_until = None

    def record_payment(self):
        """Record a captured payment."""
        if PaymentStatus(self.payment_status) != PaymentStatus.PENDING:
            raise ValidationError({"payment_status": ["Only pending payments can be captured"]})
        if OrderStatus(self.status) not in CANCELLABLE_STATES:
            raise ValidationError({"status": [f"Cannot take payment for a {self.status} order"]})

        self.payment_status = PaymentStatus.PAID.value
        if OrderStatus(self.status) == OrderStatus.PENDING:
            self.status = OrderStatus.CONFIRMED.value
        self.updated_at = datetime.now(UTC)

    def cancel(self, reason, cancelled_by=CancellationActor.CUSTOMER.value):
        """Cancel an order that has not shipped yet."""
        current = OrderStatus(self.status)
        if current not in CANCELLABLE_STATES:
            raise ValidationError(
                {
                    "status": [
                        f"Cannot cancel order in {current.value} state. "
                        f"Cancellation is only allowed from: "
                        f"{', '.join(sorted(s.value for s in CANCELLABLE_STATES))}"
                    ]
                }
            )

        self.status = OrderStatus.CANCELLED.value
        if PaymentStatus(self.payment_status) == PaymentStatus.PENDING:
            self.payment_status = PaymentStatus.FAILED.value
        self.cancellation_reason = reason
        self.cancelled_by = cancelled_by
        self.updated_at = datetime.now(UTC)
