from fastapi import APIRouter, Depends

from dependencies import Services, get_services
from errors import StorefrontError, Unconfigured, ValidationError
from schemas import ContactRequest, SuccessResponse

router = APIRouter(prefix="/api", tags=["contact"])


@router.post("/contact", response_model=SuccessResponse)
async def send_contact(
    payload: ContactRequest,
    services: Services = Depends(get_services),
) -> SuccessResponse:
    name = (payload.name or "").strip()
    email = (payload.email or "").strip()
    message = (payload.message or "").strip()
    if not name or not email or not message:
        raise ValidationError("Name, email and message are required")
    if not services.notifier.enabled:
        raise Unconfigured("Contact form is not configured. Please try again later.")
    sent = await services.notifier.send_contact_message(name, email, message)
    if not sent:
        raise StorefrontError("Could not send message. Please try again.")
    return SuccessResponse()
