"""
Payment domain events.

Dataclass events record settlement facts for downstream handling
(notifications, projections). Domain remains free of infrastructure imports.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
import uuid


@dataclass
class PaymentEvent:
    reference: str
    payment_id: Optional[int] = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class PaymentSucceeded(PaymentEvent):
    amount: int = 0


@dataclass
class PaymentFailed(PaymentEvent):
    reason: Optional[str] = None


@dataclass
class PaymentRequiresRefund(PaymentEvent):
    """Payment captured by the gateway but stock ran out before settlement."""
    item_id: Optional[int] = None
    amount: int = 0
