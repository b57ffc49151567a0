from fastapi import status


class StorefrontError(Exception):
    """Base error for request failures that map onto an HTTP status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class InvalidPhone(ValidationError):
    default_message = "Valid Ghana phone number (0XXXXXXXXX) required"


class EmptyCart(ValidationError):
    default_message = "No valid bundles in cart"


class InvalidStatus(ValidationError):
    default_message = "Invalid status"


class Unauthorized(StorefrontError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class Forbidden(StorefrontError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not an admin"


class NotFound(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(StorefrontError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class AlreadyProcessed(Conflict):
    # The payment API has always answered 400 here.
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Order already processed"


class GatewayError(StorefrontError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Payment service error"


class Unconfigured(StorefrontError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service not configured"
