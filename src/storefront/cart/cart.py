"""Shopping Cart aggregate (CQRS) — ephemeral cart that is checked out or abandoned.

Carts hold no stock. A cart left idle past its expiry window is flagged as
abandoned by the cart expiry reconciler; abandonment and checkout are both
one-way exits from ACTIVE.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String

from storefront.domain import storefront


class CartStatus(Enum):
    ACTIVE = "Active"
    ABANDONED = "Abandoned"
    CHECKED_OUT = "Checked_Out"


@storefront.aggregate
class ShoppingCart:
    customer_id = Identifier()  # Nullable for guest carts
    session_id = String(max_length=255)  # For guest cart identification
    item_count = Integer(default=0, min_value=0)
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    expires_at = DateTime()  # Optional hard deadline
    created_at = DateTime()
    updated_at = DateTime()  # Last activity

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id=None, session_id=None, expires_at=None):
        now = datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            session_id=session_id,
            status=CartStatus.ACTIVE.value,
            expires_at=expires_at,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Activity
    # -------------------------------------------------------------------
    def add_item(self, quantity=1):
        """Put items into the cart; any activity resets the idle clock."""
        if CartStatus(self.status) != CartStatus.ACTIVE:
            raise ValidationError({"status": ["Items can only be added to an active cart"]})

        self.item_count = (self.item_count or 0) + quantity
        self.updated_at = datetime.now(UTC)

    def check_out(self):
        """Mark cart as checked out."""
        if CartStatus(self.status) != CartStatus.ACTIVE:
            raise ValidationError({"status": ["Only active carts can be checked out"]})
        if not self.item_count:
            raise ValidationError({"cart": ["Cannot check out an empty cart"]})

        self.status = CartStatus.CHECKED_OUT.value
        self.updated_at = datetime.now(UTC)

    def mark_abandoned(self, as_of=None):
        """Mark cart as abandoned."""
        if CartStatus(self.status) != CartStatus.ACTIVE:
            raise ValidationError({"status": ["Only active carts can be abandoned"]})

        self.status = CartStatus.ABANDONED.value
        self.updated_at = as_of or datetime.now(UTC)
