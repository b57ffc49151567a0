import json
import os

import httpx
import pytest
from cryptography.fernet import Fernet

os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("STORAGE_BACKEND", "memory")

from fastapi.testclient import TestClient  # noqa: E402

from dependencies import Services  # noqa: E402
from main import create_app  # noqa: E402
from repositories.memory import (  # noqa: E402
    InMemoryBundleRepository,
    InMemoryOrderRepository,
    InMemoryUserRepository,
)
from schemas import CartLine  # noqa: E402
from security import hash_password  # noqa: E402
from services.accounts_service import AccountService  # noqa: E402
from services.catalog_service import CatalogService  # noqa: E402
from services.notifier import Notifier  # noqa: E402
from services.order_service import OrderService  # noqa: E402
from services.payment_gateway import PaystackGateway  # noqa: E402

PAYSTACK_SECRET = "sk_test_storefront"
ADMIN_PASSWORD = "admin-pass-123"
PHONE = "0241234567"

BUNDLES = [
    {
        "id": "mtn-1gb",
        "name": "MTN 1GB",
        "carrier": "MTN",
        "data": "1GB",
        "validity": "30 Days",
        "price": 12.50,
    },
    {
        "id": "tel-500mb",
        "name": "Telecel 500MB",
        "carrier": "Telecel",
        "data": "500MB",
        "validity": "7 Days",
        "price": 5.00,
    },
    {
        "id": "at-2gb",
        "name": "AirtelTigo 2GB",
        "carrier": "AirtelTigo",
        "data": "2GB",
        "validity": "30 days",
        "price": 19.99,
    },
]


class RecordingNotifier(Notifier):
    enabled = True

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.created = []
        self.paid = []
        self.contacts = []

    def order_created(self, order) -> None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.created.append(order.orderId)

    def order_paid(self, order, reference) -> None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.paid.append((order.orderId, reference))

    async def send_contact_message(self, name, email, message) -> bool:
        self.contacts.append((name, email, message))
        return True


class FakePaystack:
    """Answers the two provider endpoints the gateway calls."""

    def __init__(self) -> None:
        self.statuses = {}
        self.initialized = []
        self.requests = []
        self.unreachable = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("provider unreachable", request=request)
        path = request.url.path
        if path == "/transaction/initialize":
            body = json.loads(request.content)
            self.initialized.append(body)
            return httpx.Response(
                200,
                json={
                    "status": True,
                    "message": "Authorization URL created",
                    "data": {
                        "authorization_url": f"https://checkout.paystack.com/{body['reference']}",
                        "access_code": "ac_test",
                        "reference": body["reference"],
                    },
                },
            )
        if path.startswith("/transaction/verify/"):
            reference = path.rsplit("/", 1)[1]
            status = self.statuses.get(reference)
            if status is None:
                return httpx.Response(
                    400, json={"status": False, "message": "Transaction reference not found"}
                )
            return httpx.Response(
                200,
                json={"status": True, "data": {"reference": reference, "status": status}},
            )
        return httpx.Response(404, json={"status": False, "message": "Not found"})


@pytest.fixture
def bundle_repo():
    return InMemoryBundleRepository(BUNDLES)


@pytest.fixture
def order_repo():
    return InMemoryOrderRepository()


@pytest.fixture
def user_repo():
    return InMemoryUserRepository()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def catalog(bundle_repo):
    return CatalogService(bundle_repo)


@pytest.fixture
def order_service(order_repo, user_repo, catalog, notifier):
    return OrderService(order_repo, user_repo, catalog, notifier)


@pytest.fixture
def make_order(order_service):
    async def _make(ids=("mtn-1gb", "tel-500mb"), phone=PHONE, identity=None, **contact):
        lines = [CartLine(id=bundle_id, quantity=1) for bundle_id in ids]
        return await order_service.create_order(lines, phone=phone, identity=identity, **contact)

    return _make


@pytest.fixture
def paystack():
    return FakePaystack()


@pytest.fixture
def gateway(paystack):
    return PaystackGateway(PAYSTACK_SECRET, transport=httpx.MockTransport(paystack))


@pytest.fixture
def services(order_service, catalog, user_repo, gateway, notifier):
    return Services(
        orders=order_service,
        catalog=catalog,
        accounts=AccountService(user_repo, hash_password(ADMIN_PASSWORD)),
        gateway=gateway,
        notifier=notifier,
        webhook_secret=PAYSTACK_SECRET,
    )


@pytest.fixture
def client(services):
    return TestClient(create_app(services))
