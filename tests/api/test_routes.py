import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone

import httpx
import jwt
import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from api.dependencies import get_gateway, get_uow_factory
from application.services.settlement_service import SettlementService
from core.config import settings
from domain.inventory.entity import ItemStatus
from domain.payment.entity import PaymentStatus
from infrastructure.external.payments.paystack_client import PaystackClient
from main import app
from shared.codes import BusinessCode


GATEWAY_SECRET = "sk_test_api"
SELLER_ID = 10
BUYER_ID = 20
STRANGER_ID = 99


class GatewayStub:
    """Paystack HTTP double behind a real PaystackClient."""

    def __init__(self):
        self.initialized = 0
        self.verify_status = "success"

    def handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/transaction/initialize":
            self.initialized += 1
            reference = f"ref-api-{self.initialized}"
            return httpx.Response(200, json={
                "status": True,
                "data": {
                    "authorization_url": f"https://checkout.test/{reference}",
                    "access_code": f"ac-{reference}",
                    "reference": reference,
                },
            })
        reference = request.url.path.rsplit("/", 1)[-1]
        return httpx.Response(200, json={
            "status": True,
            "data": {"reference": reference, "status": self.verify_status, "amount": 500000},
        })


def _token(user_id: int, *, email: str = "user@campus.test", expires_in: int = 3600) -> str:
    payload = {
        "sub": str(user_id),
        "email": email,
        "type": "access",
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _auth(user_id: int) -> dict:
    return {"Authorization": f"Bearer {_token(user_id)}"}


def _webhook(event: str, reference: str, secret: str = GATEWAY_SECRET):
    body = json.dumps({"event": event, "data": {"reference": reference, "status": "success"}}).encode()
    signature = hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()
    return body, {"x-paystack-signature": signature, "content-type": "application/json"}


@pytest.fixture
def gateway_stub():
    return GatewayStub()


@pytest_asyncio.fixture
async def client(uow_factory, gateway_stub):
    async def _gateway():
        gateway = PaystackClient(
            secret_key=GATEWAY_SECRET,
            base_url="https://paystack.test",
            transport=httpx.MockTransport(gateway_stub.handle),
        )
        try:
            yield gateway
        finally:
            await gateway.aclose()

    app.dependency_overrides[get_uow_factory] = lambda: uow_factory
    app.dependency_overrides[get_gateway] = _gateway
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "healthy"
    assert resp.headers.get("X-Request-ID")


# -- checkout -----------------------------------------------------------------

@pytest.mark.asyncio
async def test_initialize_creates_pending_payment(client, make_item, fetch):
    item = await make_item(quantity=2)

    resp = await client.post(
        "/api/v1/payments/initialize",
        json={"item_id": item.id, "amount": 500000, "delivery_address": "Hall 1"},
        headers=_auth(BUYER_ID),
    )

    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["reference"] == "ref-api-1"
    assert data["payment_url"] == "https://checkout.test/ref-api-1"
    payment = await fetch.payment("ref-api-1")
    assert payment.status == PaymentStatus.PENDING
    assert payment.buyer_id == BUYER_ID
    assert payment.seller_id == SELLER_ID
    assert payment.delivery_address == "Hall 1"
    # stock is only taken at settlement
    assert (await fetch.item(item.id)).quantity == 2


@pytest.mark.asyncio
async def test_initialize_requires_verified_seller(client, make_item, gateway_stub):
    item = await make_item(quantity=1, seller_subaccount=None)

    resp = await client.post(
        "/api/v1/payments/initialize",
        json={"item_id": item.id, "amount": 500000},
        headers=_auth(BUYER_ID),
    )

    assert resp.status_code == 403
    assert resp.json()["code"] == BusinessCode.SELLER_NOT_VERIFIED
    assert gateway_stub.initialized == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("quantity, status", [(0, ItemStatus.SOLD), (3, ItemStatus.HIDDEN)])
async def test_initialize_rejects_unavailable_items(client, make_item, gateway_stub, quantity, status):
    item = await make_item(quantity=quantity, status=status)

    resp = await client.post(
        "/api/v1/payments/initialize",
        json={"item_id": item.id, "amount": 500000},
        headers=_auth(BUYER_ID),
    )

    assert resp.status_code == 400
    assert resp.json()["code"] == BusinessCode.OUT_OF_STOCK
    assert gateway_stub.initialized == 0


@pytest.mark.asyncio
async def test_initialize_unknown_item(client):
    resp = await client.post(
        "/api/v1/payments/initialize",
        json={"item_id": 12345, "amount": 500000},
        headers=_auth(BUYER_ID),
    )
    assert resp.status_code == 404
    assert resp.json()["error"]["type"] == "ItemNotFound"


@pytest.mark.asyncio
async def test_initialize_validates_amount(client, make_item):
    item = await make_item(quantity=1)
    resp = await client.post(
        "/api/v1/payments/initialize",
        json={"item_id": item.id, "amount": 0},
        headers=_auth(BUYER_ID),
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_authentication_is_required(client):
    assert (await client.get("/api/v1/orders/my-purchases")).status_code == 401
    bad = await client.get("/api/v1/orders/my-purchases", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401
    expired = await client.get(
        "/api/v1/orders/my-purchases",
        headers={"Authorization": f"Bearer {_token(BUYER_ID, expires_in=-60)}"},
    )
    assert expired.status_code == 401
    assert expired.json()["code"] == BusinessCode.TOKEN_EXPIRED


# -- webhook ------------------------------------------------------------------

@pytest.mark.asyncio
async def test_webhook_with_bad_signature_changes_nothing(client, make_item, make_payment, fetch):
    item = await make_item(quantity=1)
    await make_payment(item, "ref-hook")
    body, headers = _webhook("charge.success", "ref-hook", secret="sk_forged")

    resp = await client.post("/api/v1/payments/webhook", content=body, headers=headers)

    assert resp.status_code == 401
    assert (await fetch.payment("ref-hook")).status == PaymentStatus.PENDING
    assert (await fetch.item(item.id)).quantity == 1


@pytest.mark.asyncio
async def test_webhook_without_signature_is_rejected(client, make_item, make_payment, fetch):
    item = await make_item(quantity=1)
    await make_payment(item, "ref-hook")
    body, _ = _webhook("charge.success", "ref-hook")

    resp = await client.post("/api/v1/payments/webhook", content=body, headers={"content-type": "application/json"})

    assert resp.status_code == 401
    assert (await fetch.payment("ref-hook")).status == PaymentStatus.PENDING


@pytest.mark.asyncio
async def test_webhook_with_signature_for_another_body_is_rejected(client, make_item, make_payment, fetch):
    item = await make_item(quantity=1)
    await make_payment(item, "ref-hook")
    _, stale_headers = _webhook("charge.success", "ref-earlier")
    body, _ = _webhook("charge.success", "ref-hook")

    resp = await client.post("/api/v1/payments/webhook", content=body, headers=stale_headers)

    assert resp.status_code == 401
    assert (await fetch.payment("ref-hook")).status == PaymentStatus.PENDING
    assert (await fetch.item(item.id)).quantity == 1


@pytest.mark.asyncio
async def test_webhook_storage_failure_is_not_acknowledged(client, make_item, make_payment, fetch, monkeypatch):
    item = await make_item(quantity=1)
    await make_payment(item, "ref-hook")
    body, headers = _webhook("charge.success", "ref-hook")

    async def locked_execute(self, command):
        raise OperationalError("UPDATE payments", {}, Exception("database is locked"))

    monkeypatch.setattr(SettlementService, "execute", locked_execute)
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as lenient:
        resp = await lenient.post("/api/v1/payments/webhook", content=body, headers=headers)

    # 5xx keeps the gateway retrying
    assert resp.status_code >= 500
    assert (await fetch.payment("ref-hook")).status == PaymentStatus.PENDING
    assert (await fetch.item(item.id)).quantity == 1

@pytest.mark.asyncio
async def test_webhook_settles_once(client, make_item, make_payment, fetch):
    item = await make_item(quantity=1)
    payment = await make_payment(item, "ref-hook")
    body, headers = _webhook("charge.success", "ref-hook")

    first = await client.post("/api/v1/payments/webhook", content=body, headers=headers)
    second = await client.post("/api/v1/payments/webhook", content=body, headers=headers)

    assert first.status_code == 200
    assert first.json()["data"]["status"] == "settled"
    assert second.status_code == 200
    assert second.json()["data"]["status"] == "noop"
    assert (await fetch.payment("ref-hook")).status == PaymentStatus.SUCCESS
    assert await fetch.order_for_payment(payment.id) is not None
    assert (await fetch.item(item.id)).quantity == 0


@pytest.mark.asyncio
async def test_webhook_unknown_reference_is_acknowledged(client):
    body, headers = _webhook("charge.success", "ref-nobody")
    resp = await client.post("/api/v1/payments/webhook", content=body, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "unknown_reference"


@pytest.mark.asyncio
async def test_webhook_ignores_other_events(client, make_item, make_payment, fetch):
    item = await make_item(quantity=1)
    await make_payment(item, "ref-hook")
    body, headers = _webhook("transfer.success", "ref-hook")

    resp = await client.post("/api/v1/payments/webhook", content=body, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "ignored"
    assert (await fetch.payment("ref-hook")).status == PaymentStatus.PENDING


@pytest.mark.asyncio
async def test_webhook_out_of_stock_is_acknowledged_for_refund(client, make_item, make_payment, fetch):
    item = await make_item(quantity=0, status=ItemStatus.SOLD)
    await make_payment(item, "ref-hook")
    body, headers = _webhook("charge.success", "ref-hook")

    resp = await client.post("/api/v1/payments/webhook", content=body, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "refund_required"
    stored = await fetch.payment("ref-hook")
    assert stored.status == PaymentStatus.FAILED
    assert stored.failure_reason == "out_of_stock"


# -- manual verification -----------------------------------------------------

@pytest.mark.asyncio
async def test_verify_settles_from_gateway(client, make_item, make_payment, fetch):
    item = await make_item(quantity=1)
    await make_payment(item, "ref-verify")

    resp = await client.get("/api/v1/payments/verify/ref-verify", headers=_auth(BUYER_ID))

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["applied"] is True
    assert data["payment"]["status"] == "success"
    assert data["order"]["status"] == "pending_delivery"
    assert (await fetch.item(item.id)).quantity == 0


@pytest.mark.asyncio
async def test_verify_pending_gateway_status_keeps_payment_pending(client, make_item, make_payment, gateway_stub, fetch):
    item = await make_item(quantity=1)
    await make_payment(item, "ref-verify")
    gateway_stub.verify_status = "ongoing"

    resp = await client.get("/api/v1/payments/verify/ref-verify", headers=_auth(BUYER_ID))

    assert resp.status_code == 200
    assert resp.json()["data"]["payment"]["status"] == "pending"
    assert resp.json()["data"]["order"] is None
    assert (await fetch.item(item.id)).quantity == 1


@pytest.mark.asyncio
async def test_verify_out_of_stock_reports_error(client, make_item, make_payment, fetch):
    item = await make_item(quantity=0, status=ItemStatus.SOLD)
    await make_payment(item, "ref-verify")

    resp = await client.get("/api/v1/payments/verify/ref-verify", headers=_auth(BUYER_ID))

    assert resp.status_code == 400
    assert resp.json()["code"] == BusinessCode.OUT_OF_STOCK
    assert (await fetch.payment("ref-verify")).status == PaymentStatus.FAILED


@pytest.mark.asyncio
async def test_verify_is_limited_to_participants(client, make_item, make_payment):
    item = await make_item(quantity=1)
    await make_payment(item, "ref-verify")

    resp = await client.get("/api/v1/payments/verify/ref-verify", headers=_auth(STRANGER_ID))
    assert resp.status_code == 403
    missing = await client.get("/api/v1/payments/verify/ref-none", headers=_auth(BUYER_ID))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_payment_history(client, make_item, make_payment):
    item = await make_item(quantity=3)
    payment = await make_payment(item, "ref-hist-1")
    await make_payment(item, "ref-hist-2")

    mine = await client.get("/api/v1/payments/my-payments?page=1&size=1", headers=_auth(BUYER_ID))
    assert mine.status_code == 200
    assert mine.json()["data"]["total"] == 2
    assert mine.json()["data"]["pages"] == 2
    assert len(mine.json()["data"]["items"]) == 1

    sales = await client.get("/api/v1/payments/seller/payments", headers=_auth(SELLER_ID))
    assert sales.json()["data"]["total"] == 2

    detail = await client.get(f"/api/v1/payments/{payment.id}", headers=_auth(SELLER_ID))
    assert detail.json()["data"]["reference"] == "ref-hist-1"
    hidden = await client.get(f"/api/v1/payments/{payment.id}", headers=_auth(STRANGER_ID))
    assert hidden.status_code == 403


# -- orders -------------------------------------------------------------------

async def _settle_via_webhook(client, make_item, make_payment, reference="ref-order"):
    item = await make_item(quantity=1)
    payment = await make_payment(item, reference)
    body, headers = _webhook("charge.success", reference)
    await client.post("/api/v1/payments/webhook", content=body, headers=headers)
    purchases = await client.get("/api/v1/orders/my-purchases", headers=_auth(BUYER_ID))
    order = next(o for o in purchases.json()["data"]["items"] if o["payment_id"] == payment.id)
    return item, order


@pytest.mark.asyncio
async def test_mark_delivered_then_conflict(client, make_item, make_payment):
    _, order = await _settle_via_webhook(client, make_item, make_payment)
    url = f"/api/v1/orders/{order['id']}/mark-delivered"

    seller = await client.put(url, headers=_auth(SELLER_ID))
    assert seller.status_code == 403

    ok = await client.put(url, headers=_auth(BUYER_ID))
    assert ok.status_code == 200
    assert ok.json()["data"]["status"] == "delivered"
    assert ok.json()["data"]["delivered_via"] == "buyer"
    assert ok.json()["data"]["delivered_at"].endswith("Z")

    again = await client.put(url, headers=_auth(BUYER_ID))
    assert again.status_code == 409
    assert again.json()["code"] == BusinessCode.INVALID_ORDER_STATE


@pytest.mark.asyncio
async def test_cancel_order_endpoint(client, make_item, make_payment, fetch):
    item, order = await _settle_via_webhook(client, make_item, make_payment)
    url = f"/api/v1/orders/{order['id']}/cancel"

    blank = await client.put(url, json={"reason": "  "}, headers=_auth(BUYER_ID))
    assert blank.status_code == 422
    stranger = await client.put(url, json={"reason": "mine now"}, headers=_auth(STRANGER_ID))
    assert stranger.status_code == 403

    ok = await client.put(url, json={"reason": "Item damaged"}, headers=_auth(SELLER_ID))
    assert ok.status_code == 200
    assert ok.json()["data"]["status"] == "cancelled"
    assert (await fetch.item(item.id)).quantity == 1


@pytest.mark.asyncio
async def test_order_views(client, make_item, make_payment):
    _, order = await _settle_via_webhook(client, make_item, make_payment)

    detail = await client.get(f"/api/v1/orders/{order['id']}", headers=_auth(SELLER_ID))
    assert detail.status_code == 200
    assert (await client.get(f"/api/v1/orders/{order['id']}", headers=_auth(STRANGER_ID))).status_code == 403
    assert (await client.get("/api/v1/orders/999", headers=_auth(BUYER_ID))).status_code == 404

    sales = await client.get("/api/v1/orders/my-sales", headers=_auth(SELLER_ID))
    assert sales.json()["data"]["total"] == 1

    stats = await client.get("/api/v1/orders/statistics", headers=_auth(SELLER_ID))
    assert stats.json()["data"] == {"total_purchases": 0, "total_sales": 1}
