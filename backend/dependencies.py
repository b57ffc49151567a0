import logging
from dataclasses import dataclass

from fastapi import Request

from config import Settings
from repositories.base import BundleRepository, OrderRepository, UserRepository
from services.accounts_service import AccountService
from services.catalog_service import CatalogService
from services.notifier import EmailNotifier, Notifier
from services.order_service import OrderService
from services.payment_gateway import PaystackGateway

logger = logging.getLogger("datahub")


@dataclass
class Services:
    orders: OrderService
    catalog: CatalogService
    accounts: AccountService
    gateway: PaystackGateway
    notifier: Notifier
    webhook_secret: str | None
    public_base_url: str | None = None


def _build_repositories(
    settings: Settings,
) -> tuple[OrderRepository, UserRepository, BundleRepository]:
    if settings.storage_backend == "memory":
        from repositories.memory import (
            InMemoryBundleRepository,
            InMemoryOrderRepository,
            InMemoryUserRepository,
        )

        if settings.bundles_seed_file:
            bundles = InMemoryBundleRepository.from_file(settings.bundles_seed_file)
        else:
            bundles = InMemoryBundleRepository()
        logger.warning("Using in-memory storage; orders are lost on restart.")
        return InMemoryOrderRepository(), InMemoryUserRepository(), bundles

    if settings.storage_backend != "supabase":
        raise ValueError(f"Unknown storage backend: {settings.storage_backend}")

    from repositories.bundles_repository import SupabaseBundleRepository
    from repositories.orders_repository import SupabaseOrderRepository
    from repositories.users_repository import SupabaseUserRepository
    from supabase_client import get_supabase

    client = get_supabase()
    return (
        SupabaseOrderRepository(client),
        SupabaseUserRepository(client),
        SupabaseBundleRepository(client),
    )


def build_notifier(settings: Settings) -> Notifier:
    if not settings.mail_enabled:
        logger.info("SMTP_USER/SMTP_PASSWORD not set; order mail disabled.")
        return Notifier()
    return EmailNotifier(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_user,
        password=settings.smtp_password,
        operator_address=settings.admin_email,
    )


def build_services(settings: Settings) -> Services:
    orders_repo, users_repo, bundles_repo = _build_repositories(settings)
    catalog = CatalogService(bundles_repo)
    notifier = build_notifier(settings)
    if not settings.paystack_secret_key:
        logger.warning("PAYSTACK_SECRET_KEY is not set; payments are disabled.")
    return Services(
        orders=OrderService(
            orders_repo,
            users_repo,
            catalog,
            notifier,
            currency=settings.currency,
        ),
        catalog=catalog,
        accounts=AccountService(users_repo, settings.admin_password_hash),
        gateway=PaystackGateway(
            settings.paystack_secret_key,
            base_url=settings.paystack_base_url,
            currency=settings.currency,
        ),
        notifier=notifier,
        webhook_secret=settings.paystack_secret_key,
        public_base_url=settings.public_base_url,
    )


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Services are not initialized; the startup hook has not run.")
    return services
