"""
Paystack adapter over the REST API (https://paystack.com/docs/api/).

- initialize: POST /transaction/initialize, amount in kobo, split to the
  seller subaccount; returns authorization_url/access_code/reference.
- verify: GET /transaction/verify/{reference}.
- webhooks: ``x-paystack-signature`` is the HMAC-SHA512 hex digest of the
  raw body keyed with the secret key.
"""
from __future__ import annotations

import hashlib
import hmac
from datetime import datetime
from typing import Any, Optional
from urllib.parse import quote

import httpx

from application.dtos.payments import (
    InitializeTransaction,
    InitializedTransaction,
    VerifiedTransaction,
)
from core.settings import payment_settings
from infrastructure.external.payments.base import BasePaymentClient
from infrastructure.external.payments.exceptions import PaymentProviderError


class PaystackClient(BasePaymentClient):
    provider = "paystack"

    def __init__(
        self,
        *,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        callback_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        cfg = payment_settings.paystack
        super().__init__(
            base_url=(base_url or cfg.base_url).rstrip("/"),
            timeouts=payment_settings.timeouts.model_dump(),
            retry={"max": payment_settings.retry.max, "base": payment_settings.retry.base_backoff},
            transport=transport,
        )
        self._secret_key = secret_key if secret_key is not None else cfg.secret_key
        self._callback_url = callback_url or cfg.callback_url

    def _default_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._secret_key or ''}",
            "Content-Type": "application/json",
        }

    def _require_secret(self) -> None:
        if not self._secret_key:
            raise RuntimeError("PAYSTACK__SECRET_KEY not configured")

    def _unwrap(self, resp: httpx.Response) -> dict[str, Any]:
        body = self._json(resp)
        if resp.status_code >= 400 or not body.get("status"):
            message = body.get("message") or "Payment gateway rejected the request"
            self._log("gateway_rejected", status_code=resp.status_code, message=message)
            raise PaymentProviderError(
                message,
                provider=self.provider,
                provider_code=str(resp.status_code),
            )
        data = body.get("data")
        return data if isinstance(data, dict) else {}

    async def initialize(self, req: InitializeTransaction) -> InitializedTransaction:
        self._require_secret()
        payload: dict[str, Any] = {
            "email": req.email,
            "amount": str(req.amount),
            "subaccount": req.subaccount,
            "metadata": req.metadata,
        }
        callback_url = req.callback_url or self._callback_url
        if callback_url:
            payload["callback_url"] = callback_url

        resp = await self._request("POST", "/transaction/initialize", json=payload)
        data = self._unwrap(resp)
        if not data.get("authorization_url") or not data.get("reference"):
            raise PaymentProviderError("Incomplete initialize response", provider=self.provider)

        self._log("transaction_initialized", reference=data["reference"], amount=req.amount)
        return InitializedTransaction(
            authorization_url=data["authorization_url"],
            access_code=data.get("access_code"),
            reference=data["reference"],
        )

    async def verify(self, reference: str) -> VerifiedTransaction:
        self._require_secret()
        resp = await self._request("GET", f"/transaction/verify/{quote(reference, safe='')}")
        data = self._unwrap(resp)

        gateway_status = str(data.get("status") or "")
        outcome = self._map_status(gateway_status)
        amount = data.get("amount")
        self._log("transaction_verified", reference=reference, gateway_status=gateway_status, outcome=outcome.value)
        return VerifiedTransaction(
            reference=data.get("reference") or reference,
            outcome=outcome,
            gateway_status=gateway_status,
            amount=int(amount) if amount is not None else None,
            paid_at=self._parse_datetime(data.get("paid_at") or data.get("paidAt")),
        )

    def verify_signature(self, payload: bytes, signature: Optional[str]) -> bool:
        if not signature or not self._secret_key:
            return False
        expected = hmac.new(self._secret_key.encode("utf-8"), payload, hashlib.sha512).hexdigest()
        return hmac.compare_digest(expected.encode("ascii"), signature.strip().lower().encode("utf-8"))

    @staticmethod
    def _parse_datetime(value: Any) -> Optional[datetime]:
        if not value or not isinstance(value, str):
            return None
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
