from .accounts import router as accounts_router
from .catalog import router as catalog_router
from .contact import router as contact_router
from .orders import router as orders_router
from .payments import provider_router as payment_provider_router
from .payments import router as payments_router

__all__ = [
    "accounts_router",
    "catalog_router",
    "contact_router",
    "orders_router",
    "payment_provider_router",
    "payments_router",
]
