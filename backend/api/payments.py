import json
import logging
from typing import Optional
from urllib.parse import urlencode, urlsplit

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import RedirectResponse

from dependencies import Services, get_services
from errors import GatewayError, NotFound, Unconfigured, ValidationError
from lifecycle import PaymentChannel, PaymentOutcome
from schemas import PaymentInitializeRequest, PaymentInitializeResponse
from services.payment_gateway import SIGNATURE_HEADER, verify_webhook_signature

logger = logging.getLogger("datahub")

router = APIRouter(prefix="/api/payment", tags=["payments"])
provider_router = APIRouter(prefix="/payment", tags=["payments"])

ORDERS_PAGE = "/orders"
REDIRECT_LABELS = {
    PaymentOutcome.SETTLED: "success",
    PaymentOutcome.PROCESSING: "processing",
    PaymentOutcome.FAILED: "failed",
}


def _request_origin(request: Request, public_base_url: Optional[str]) -> str:
    for header in ("origin", "referer"):
        value = request.headers.get(header)
        if not value:
            continue
        parts = urlsplit(value)
        if parts.scheme and parts.netloc:
            return f"{parts.scheme}://{parts.netloc}"
    return (public_base_url or str(request.base_url)).rstrip("/")


def _orders_redirect(payment: str, order_id: Optional[str] = None) -> RedirectResponse:
    params = {"payment": payment}
    if order_id:
        params["order"] = order_id
    return RedirectResponse(
        f"{ORDERS_PAGE}?{urlencode(params)}",
        status_code=status.HTTP_302_FOUND,
    )


@router.post("/initialize", response_model=PaymentInitializeResponse)
async def initialize_payment(
    payload: PaymentInitializeRequest,
    request: Request,
    services: Services = Depends(get_services),
) -> PaymentInitializeResponse:
    if not payload.orderId or payload.amount is None or payload.amount <= 0:
        raise ValidationError("orderId and amount required")
    order = await services.orders.get_order(payload.orderId)
    callback_url = f"{_request_origin(request, services.public_base_url)}/payment/callback"
    session = await services.gateway.initialize_session(
        order,
        email=payload.email,
        callback_url=callback_url,
    )
    return PaymentInitializeResponse(
        authorization_url=session.authorization_url,
        access_code=session.access_code,
    )


@provider_router.post("/webhook")
async def payment_webhook(
    request: Request,
    services: Services = Depends(get_services),
) -> Response:
    # The provider retries anything but a 200, so every path below answers 200.
    if not services.webhook_secret:
        return Response(status_code=status.HTTP_200_OK)

    raw_body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)
    if not verify_webhook_signature(raw_body, signature, services.webhook_secret):
        logger.warning("Webhook signature mismatch; event ignored")
        return Response(status_code=status.HTTP_200_OK)

    try:
        event = json.loads(raw_body)
        if event.get("event") == "charge.success":
            reference = str(event["data"]["reference"])
            await services.orders.apply_payment_outcome(
                reference,
                PaymentOutcome.SETTLED,
                PaymentChannel.WEBHOOK,
                reference,
            )
        else:
            logger.debug("Webhook event %s ignored", event.get("event"))
    except NotFound:
        logger.warning("Webhook for unknown order")
    except Exception:
        logger.exception("Webhook error")
    return Response(status_code=status.HTTP_200_OK)


@provider_router.get("/callback")
async def payment_callback(
    reference: Optional[str] = None,
    services: Services = Depends(get_services),
) -> RedirectResponse:
    if not reference or not services.gateway.configured:
        return _orders_redirect("error")

    try:
        transaction = await services.gateway.verify_transaction(reference)
    except (GatewayError, Unconfigured) as exc:
        # Could not check: leave the order as it is for the webhook or a later retry.
        logger.warning("Verify error reference=%s: %s", reference, exc)
        return _orders_redirect("error")

    try:
        await services.orders.apply_payment_outcome(
            reference,
            transaction.outcome,
            PaymentChannel.CALLBACK,
            transaction.reference,
        )
    except NotFound:
        logger.warning("Callback for unknown order %s", reference)
    except Exception:
        logger.exception("Callback error reference=%s", reference)
        return _orders_redirect("error")

    return _orders_redirect(REDIRECT_LABELS[transaction.outcome], reference)
