"""
Base payment client implementing shared concerns: http, retry, logging, mapping.

Concrete providers should subclass and implement provider-specific logic.
"""
from __future__ import annotations

from typing import Any, Callable, Optional
from contextlib import asynccontextmanager

import httpx
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from core.logging_config import get_logger
from application.ports.payment_gateway import PaymentGateway
from domain.payment.commands import SettlementOutcome
from infrastructure.external.payments.exceptions import (
    GatewayUnavailableError,
    PaymentProviderError,
)
from shared.codes.payment_codes import PROVIDER_STATUS_TO_OUTCOME


logger = get_logger(__name__)


class BasePaymentClient(PaymentGateway):
    provider: str = "base"

    def __init__(
        self,
        *,
        base_url: str = "",
        timeouts: Optional[dict[str, float]] = None,
        retry: Optional[dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url
        self._timeouts_cfg = timeouts or {"connect": 1.0, "read": 3.0, "write": 3.0, "total": 5.0}
        self._retry_cfg = retry or {"max": 2, "base": 0.2}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def timeouts(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self._timeouts_cfg["connect"],
            read=self._timeouts_cfg["read"],
            write=self._timeouts_cfg["write"],
            timeout=self._timeouts_cfg["total"],
        )

    def _default_headers(self) -> dict[str, str]:
        return {}

    @asynccontextmanager
    async def client(self):
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self.timeouts,
                headers=self._default_headers(),
                transport=self._transport,
            )
        try:
            yield self._client
        finally:
            # Keep open for reuse; explicit aclose() will close.
            ...

    async def aclose(self) -> None:
        """Close underlying HTTP client if created."""
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def _retry(self, fn: Callable[[], Any]):
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(int(self._retry_cfg["max"]) + 1),
            wait=wait_exponential(multiplier=self._retry_cfg["base"], min=0.1, max=2.0),
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.TransportError)),
            reraise=True,
        ):
            with attempt:
                return await fn()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send with retry on transport errors; map outages to GatewayUnavailableError."""

        async def _send() -> httpx.Response:
            async with self.client() as client:
                return await client.request(method, path, **kwargs)

        try:
            resp = await self._retry(_send)
        except httpx.HTTPError as exc:
            self._log("gateway_unavailable", path=path, error=str(exc) or exc.__class__.__name__)
            raise GatewayUnavailableError(
                "Payment gateway is unreachable, please retry",
                provider=self.provider,
                details={"path": path},
            ) from exc

        if resp.status_code >= 500:
            self._log("gateway_unavailable", path=path, status_code=resp.status_code)
            raise GatewayUnavailableError(
                "Payment gateway is temporarily unavailable, please retry",
                provider=self.provider,
                provider_code=str(resp.status_code),
                details={"path": path},
            )
        return resp

    def _json(self, resp: httpx.Response) -> dict[str, Any]:
        try:
            body = resp.json()
        except ValueError as exc:
            raise PaymentProviderError(
                "Malformed gateway response",
                provider=self.provider,
                provider_code=str(resp.status_code),
            ) from exc
        return body if isinstance(body, dict) else {}

    # Helpers
    def _map_status(self, provider_status: Optional[str]) -> SettlementOutcome:
        mapping = PROVIDER_STATUS_TO_OUTCOME.get(self.provider, {})
        value = mapping.get((provider_status or "").lower(), SettlementOutcome.PENDING.value)
        return SettlementOutcome(value)

    def _log(self, event: str, **kwargs) -> None:
        logger.info(
            event,
            provider=self.provider,
            **kwargs,
        )
