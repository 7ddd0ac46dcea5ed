"""Runtime settings for the expiry reconciliation engine.

Values default to the cadence and batch sizes the engine was tuned for and
can be overridden through ``CLEANUP_*`` environment variables.
"""

import os
from datetime import timedelta

from pydantic import BaseModel, Field

DEFAULT_INTERVAL_SECONDS = 300


class CleanupSettings(BaseModel):
    interval_seconds: float = Field(gt=0, default=DEFAULT_INTERVAL_SECONDS)
    order_batch_size: int = Field(ge=1, default=100)
    payment_batch_size: int = Field(ge=1, default=1000)
    reservation_batch_size: int = Field(ge=1, default=1000)
    cart_batch_size: int = Field(ge=1, default=1000)
    cart_idle_hours: float = Field(ge=0, default=24)

    @property
    def cart_idle_threshold(self) -> timedelta:
        return timedelta(hours=self.cart_idle_hours)

    @classmethod
    def from_env(cls, environ=None) -> "CleanupSettings":
        """Build settings from ``CLEANUP_<FIELD>`` variables; unset ones keep their defaults."""
        environ = os.environ if environ is None else environ
        overrides = {}
        for name in cls.model_fields:
            value = environ.get(f"CLEANUP_{name.upper()}")
            if value not in (None, ""):
                overrides[name] = value
        return cls(**overrides)
