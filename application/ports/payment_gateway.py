"""
Payment gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from application.dtos.payments import (
    InitializeTransaction,
    InitializedTransaction,
    VerifiedTransaction,
)


@runtime_checkable
class PaymentGateway(Protocol):
    """Gateway protocol for the hosted-checkout payment provider.

    Implementations should be async and side-effect free beyond IO:
    no local state is mutated by a gateway call.
    """

    provider: str

    async def initialize(self, req: InitializeTransaction) -> InitializedTransaction: ...

    async def verify(self, reference: str) -> VerifiedTransaction: ...

    def verify_signature(self, payload: bytes, signature: Optional[str]) -> bool: ...
