from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from pos_api.api.orders import get_order_service
from pos_api.api.orders_service import OrderService
from pos_api.core.permissions import get_current_principal
from pos_api.main import app
from pos_api.models.order import OrderCreate, OrderItem
from pos_api.models.user import Principal, UserRole
from pos_api.services.order_store import InMemoryOrderStore
from pos_api.services.realtime import RealtimeNotifier


class RecordingNotifier(RealtimeNotifier):
    def __init__(self):
        self.published = []

    async def publish(self, event, data, channel=None):
        self.published.append((event, data, channel))


class FailingNotifier(RealtimeNotifier):
    async def publish(self, event, data, channel=None):
        raise RuntimeError("socket layer down")


@pytest.fixture
def admin():
    return Principal(id="u-admin", role=UserRole.ADMIN)


@pytest.fixture
def cashier_b1():
    return Principal(id="u-cashier", role=UserRole.CASHIER, branch_id="B1")


@pytest.fixture
def waiter_b1():
    return Principal(id="u-waiter", role=UserRole.WAITER, branch_id="B1")


@pytest.fixture
def kitchen_b2():
    return Principal(id="u-kitchen", role=UserRole.KITCHEN, branch_id="B2")


@pytest.fixture
def store():
    return InMemoryOrderStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(store, notifier):
    return OrderService(store, notifier, max_number_retries=3, list_limit=500, strict_transitions=False)


def make_order_request(**overrides):
    data = {
        "items": [
            OrderItem(name="Burger", price=Decimal("10"), quantity=2),
            OrderItem(name="Fries", price=Decimal("5"), quantity=1),
        ]
    }
    data.update(overrides)
    return OrderCreate(**data)


class AuthAs:
    """Switches the principal the API sees for the next requests."""

    def __init__(self):
        self.principal = None

    def __call__(self, principal):
        self.principal = principal


@pytest.fixture
def auth_as(cashier_b1):
    holder = AuthAs()
    holder(cashier_b1)
    return holder


@pytest.fixture
def client(service, auth_as):
    app.dependency_overrides[get_order_service] = lambda: service
    app.dependency_overrides[get_current_principal] = lambda: auth_as.principal
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def order_request():
    return make_order_request


@pytest.fixture
def failing_notifier():
    return FailingNotifier()
