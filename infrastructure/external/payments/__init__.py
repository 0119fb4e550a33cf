"""
Factory for payment gateway clients.
"""
from __future__ import annotations

from typing import Optional

from application.ports.payment_gateway import PaymentGateway


DEFAULT_PROVIDER = "paystack"


def get_payment_gateway(provider: Optional[str] = None) -> PaymentGateway:
    name = (provider or DEFAULT_PROVIDER).lower()
    if name == "paystack":
        from .paystack_client import PaystackClient
        return PaystackClient()
    raise ValueError(f"Unsupported payment provider: {name}")
