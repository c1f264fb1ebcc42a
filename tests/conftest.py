import os
import tempfile
import threading
from decimal import Decimal
from pathlib import Path

#srodowisko testowe ustawione zanim jakikolwiek modul storefront przeczyta settings
_DB_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["PAYMENT_GATEWAY"] = "fake"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["DISCOUNT_CODES"] = "SAVE10"
os.environ["NOTIFICATION_SERVICE_URL"] = ""
os.environ["ALERT_WEBHOOK_URL"] = ""
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from storefront.data.database import Base, SessionLocal, engine
import storefront.data.models  # noqa: F401
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.product import ProductModel
from storefront.data.models.user import UserModel
from storefront.services.fake_gateway import FakeGateway
from storefront.services.notification_service import NotificationService
from storefront.services.payment_gateway import reset_gateway, set_gateway

ADDRESS = {
    "name": "Jan Kowalski",
    "street": "Marszalkowska 1",
    "city": "Warszawa",
    "state": None,
    "zip": "00-001",
    "country": "PL",
}


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


class InMemoryLockService:
    """Zamiennik LockService (redis) o tej samej semantyce SET NX + release przez wlasciciela."""

    def __init__(self):
        self.locks: dict[int, str] = {}
        self._mutex = threading.Lock()

    def acquire_checkout_lock(self, user_id: int, token: str, ttl: int) -> bool:
        with self._mutex:
            if user_id in self.locks:
                return False
            self.locks[user_id] = token
            return True

    def release_checkout_lock(self, user_id: int, token: str) -> bool:
        with self._mutex:
            if self.locks.get(user_id) != token:
                return False
            del self.locks[user_id]
            return True


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def fake_gateway():
    gateway = FakeGateway()
    set_gateway(gateway)
    yield gateway
    reset_gateway()


@pytest.fixture
def lock_service():
    return InMemoryLockService()


@pytest.fixture
def alerts(monkeypatch):
    sent = []

    def _alert(kind, payment_reference, detail):
        sent.append({"kind": kind, "payment_reference": payment_reference, "detail": detail})

    monkeypatch.setattr(NotificationService, "alert_operators", staticmethod(_alert))
    return sent


@pytest.fixture
def confirmations(monkeypatch):
    sent = []

    def _confirm(order, recipient):
        sent.append({"order_id": order.id, "recipient": recipient})

    monkeypatch.setattr(NotificationService, "send_order_confirmation", staticmethod(_confirm))
    return sent


@pytest.fixture
def make_product(db):
    def _make(product_id="P1", price="10.00", quantity=5, name=None):
        product = ProductModel(
            id=product_id,
            name=name or product_id,
            price=Decimal(price),
            available_quantity=quantity,
        )
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def make_user(db):
    def _make(user_id=1, name="Jan", email="jan@example.com"):
        user = UserModel(id=user_id, name=name, email=email)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def fill_cart(db):
    def _fill(user_id, product_id, quantity):
        db.add(CartItemModel(user_id=user_id, product_id=product_id, quantity=quantity))
        db.commit()

    return _fill


@pytest.fixture
def stock_of():
    #swiezy odczyt z osobnej sesji, niezalezny od cache sesji testu
    def _stock(product_id: str) -> int:
        with SessionLocal() as session:
            return session.get(ProductModel, product_id).available_quantity

    return _stock


@pytest.fixture
def address():
    return dict(ADDRESS)
