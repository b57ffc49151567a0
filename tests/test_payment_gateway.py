"""Tests for the Paystack adapter, driven through httpx.MockTransport."""

import hashlib
import hmac
import json

import httpx
import pytest

from errors import AlreadyProcessed, Conflict, GatewayError, Unconfigured, ValidationError
from lifecycle import PaymentOutcome
from schemas import Order, OrderItem
from services.payment_gateway import PaystackGateway, verify_webhook_signature

from conftest import PAYSTACK_SECRET

CALLBACK_URL = "https://shop.example/payment/callback"


def _order(status="pending_payment", total=30.0, email=None):
    return Order(
        orderId="ORD-1700000000000-ABC123",
        items=[OrderItem(id="mtn-1gb", name="MTN 1GB", price=12.5, quantity=2)],
        total=total,
        phone="0241234567",
        email=email,
        status=status,
    )


class TestInitializeSession:
    @pytest.mark.asyncio
    async def test_builds_provider_session(self, gateway, paystack):
        session = await gateway.initialize_session(_order(), email="ama@example.com", callback_url=CALLBACK_URL)

        assert session.authorization_url == "https://checkout.paystack.com/ORD-1700000000000-ABC123"
        assert session.access_code == "ac_test"
        body = paystack.initialized[0]
        assert body["amount"] == 3000
        assert body["currency"] == "GHS"
        assert body["reference"] == "ORD-1700000000000-ABC123"
        assert body["callback_url"] == CALLBACK_URL
        assert body["email"] == "ama@example.com"
        assert body["metadata"] == {"orderId": "ORD-1700000000000-ABC123", "phone": "0241234567"}
        assert paystack.requests[0].headers["authorization"] == f"Bearer {PAYSTACK_SECRET}"

    @pytest.mark.asyncio
    async def test_email_fallbacks(self, gateway, paystack):
        await gateway.initialize_session(_order(email="kofi@example.com"), email=None, callback_url=CALLBACK_URL)
        await gateway.initialize_session(_order(), email=None, callback_url=CALLBACK_URL)

        assert paystack.initialized[0]["email"] == "kofi@example.com"
        assert paystack.initialized[1]["email"] == "customer-0241234567@idealdata.gh"

    @pytest.mark.asyncio
    async def test_amount_uses_minor_units(self, gateway, paystack):
        await gateway.initialize_session(_order(total=19.99), email=None, callback_url=CALLBACK_URL)
        assert paystack.initialized[0]["amount"] == 1999

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["pending", "paid", "completed", "failed"])
    async def test_refuses_processed_orders(self, gateway, paystack, status):
        with pytest.raises(AlreadyProcessed) as excinfo:
            await gateway.initialize_session(_order(status=status), email=None, callback_url=CALLBACK_URL)

        assert isinstance(excinfo.value, Conflict)
        assert paystack.requests == []

    @pytest.mark.asyncio
    async def test_unconfigured(self, paystack):
        gateway = PaystackGateway(None, transport=httpx.MockTransport(paystack))

        with pytest.raises(Unconfigured):
            await gateway.initialize_session(_order(), email=None, callback_url=CALLBACK_URL)

    @pytest.mark.asyncio
    async def test_unreachable_provider(self, gateway, paystack):
        paystack.unreachable = True

        with pytest.raises(GatewayError):
            await gateway.initialize_session(_order(), email=None, callback_url=CALLBACK_URL)

    @pytest.mark.asyncio
    async def test_provider_rejection(self):
        def handler(request):
            return httpx.Response(400, json={"status": False, "message": "Invalid email"})

        gateway = PaystackGateway(PAYSTACK_SECRET, transport=httpx.MockTransport(handler))

        with pytest.raises(ValidationError, match="Invalid email"):
            await gateway.initialize_session(_order(), email="x", callback_url=CALLBACK_URL)


class TestVerifyTransaction:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "provider_status, outcome",
        [
            ("success", PaymentOutcome.SETTLED),
            ("ongoing", PaymentOutcome.PROCESSING),
            ("abandoned", PaymentOutcome.FAILED),
        ],
    )
    async def test_maps_provider_status(self, gateway, paystack, provider_status, outcome):
        paystack.statuses["ORD-1"] = provider_status

        transaction = await gateway.verify_transaction("ORD-1")

        assert transaction.outcome is outcome
        assert transaction.reference == "ORD-1"
        assert transaction.provider_status == provider_status

    @pytest.mark.asyncio
    async def test_unreachable_provider_is_not_a_failed_payment(self, gateway, paystack):
        paystack.unreachable = True

        with pytest.raises(GatewayError):
            await gateway.verify_transaction("ORD-1")

    @pytest.mark.asyncio
    async def test_unknown_reference(self, gateway):
        with pytest.raises(GatewayError):
            await gateway.verify_transaction("ORD-unknown")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(503, text="maintenance"),
            httpx.Response(200, text="<html>not json</html>"),
            httpx.Response(200, json=["unexpected"]),
        ],
    )
    async def test_malformed_responses(self, response):
        gateway = PaystackGateway(PAYSTACK_SECRET, transport=httpx.MockTransport(lambda request: response))

        with pytest.raises(GatewayError):
            await gateway.verify_transaction("ORD-1")

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        with pytest.raises(Unconfigured):
            await PaystackGateway(None).verify_transaction("ORD-1")


class TestWebhookSignature:
    def _sign(self, body: bytes) -> str:
        return hmac.new(PAYSTACK_SECRET.encode(), body, hashlib.sha512).hexdigest()

    def test_valid_signature(self):
        body = b'{"event":"charge.success","data":{"reference":"ORD-1"}}'
        assert verify_webhook_signature(body, self._sign(body), PAYSTACK_SECRET)

    def test_reserialized_body_does_not_verify(self):
        body = b'{"event":"charge.success","data":{"reference":"ORD-1"}}'
        reserialized = json.dumps(json.loads(body)).encode()

        assert reserialized != body
        assert not verify_webhook_signature(reserialized, self._sign(body), PAYSTACK_SECRET)

    def test_wrong_secret(self):
        body = b"{}"
        assert not verify_webhook_signature(body, self._sign(body), "sk_other")

    @pytest.mark.parametrize("signature", [None, "", "deadbeef"])
    def test_missing_or_bad_header(self, signature):
        assert not verify_webhook_signature(b"{}", signature, PAYSTACK_SECRET)

    def test_missing_secret(self):
        body = b"{}"
        assert not verify_webhook_signature(body, self._sign(body), None)
