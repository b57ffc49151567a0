import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from errors import AlreadyProcessed, GatewayError, Unconfigured, ValidationError
from lifecycle import OrderStatus, PaymentOutcome, outcome_from_provider_status, to_minor_units
from schemas import Order

logger = logging.getLogger("datahub")

PAYMENT_CHANNELS = ["card", "mobile_money", "bank"]
SIGNATURE_HEADER = "x-paystack-signature"


@dataclass
class PaymentSession:
    authorization_url: str
    access_code: Optional[str] = None


@dataclass
class VerifiedTransaction:
    reference: str
    outcome: PaymentOutcome
    provider_status: str


def verify_webhook_signature(
    raw_body: bytes,
    signature_header: Optional[str],
    secret: Optional[str],
) -> bool:
    """HMAC-SHA512 over the unparsed request bytes, compared in constant time."""
    if not secret or not signature_header:
        return False
    expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()
    return hmac.compare_digest(expected, signature_header.strip().lower())


def fallback_email(order: Order) -> str:
    return f"customer-{order.phone}@idealdata.gh"


class PaystackGateway:
    def __init__(
        self,
        secret_key: Optional[str],
        *,
        base_url: str = "https://api.paystack.co",
        currency: str = "GHS",
        timeout: float = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.currency = currency
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.secret_key)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Authorization": f"Bearer {self.secret_key}"},
        )

    def _require_secret(self) -> None:
        if not self.secret_key:
            raise Unconfigured("Payment not configured. Set PAYSTACK_SECRET_KEY.")

    @staticmethod
    def _decode(response: httpx.Response) -> Dict[str, Any]:
        if response.status_code >= 500:
            raise GatewayError(f"Payment provider returned HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise GatewayError("Malformed response from payment provider") from exc
        if not isinstance(payload, dict):
            raise GatewayError("Malformed response from payment provider")
        return payload

    async def initialize_session(
        self,
        order: Order,
        *,
        email: Optional[str],
        callback_url: str,
    ) -> PaymentSession:
        if order.status != OrderStatus.PENDING_PAYMENT.value:
            raise AlreadyProcessed()
        self._require_secret()
        body = {
            "email": email or order.email or fallback_email(order),
            "amount": to_minor_units(order.total),
            "currency": self.currency,
            "reference": order.orderId,
            "callback_url": callback_url,
            "channels": PAYMENT_CHANNELS,
            "metadata": {"orderId": order.orderId, "phone": order.phone},
        }
        try:
            async with self._client() as client:
                response = await client.post("/transaction/initialize", json=body)
        except httpx.HTTPError as exc:
            logger.exception("Payment init error order=%s", order.orderId)
            raise GatewayError() from exc
        payload = self._decode(response)
        data = payload.get("data") or {}
        if not payload.get("status"):
            raise ValidationError(payload.get("message") or "Paystack error")
        if not isinstance(data, dict) or not data.get("authorization_url"):
            raise GatewayError("Malformed response from payment provider")
        return PaymentSession(
            authorization_url=data["authorization_url"],
            access_code=data.get("access_code"),
        )

    async def verify_transaction(self, reference: str) -> VerifiedTransaction:
        self._require_secret()
        try:
            async with self._client() as client:
                response = await client.get(f"/transaction/verify/{quote(reference, safe='')}")
        except httpx.HTTPError as exc:
            logger.exception("Verify error reference=%s", reference)
            raise GatewayError() from exc
        payload = self._decode(response)
        data = payload.get("data")
        if not isinstance(data, dict) or "status" not in data:
            raise GatewayError(payload.get("message") or "Transaction could not be verified")
        provider_status = str(data.get("status") or "")
        return VerifiedTransaction(
            reference=str(data.get("reference") or reference),
            outcome=outcome_from_provider_status(provider_status),
            provider_status=provider_status,
        )
