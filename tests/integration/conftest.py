import pytest
from fastapi.testclient import TestClient

from storefront.main import app
from storefront.services.lock_service import get_lock_service
from storefront.services.payment_gateway import get_gateway


@pytest.fixture
def client(fake_gateway, lock_service):
    app.dependency_overrides[get_gateway] = lambda: fake_gateway
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def shopper(client, make_product):
    make_product("P1", "10.00", 5)
    make_product("P2", "30.00", 10)
    resp = client.post("/users/", json={"id": 1, "name": "Jan", "email": "jan@example.com"})
    assert resp.status_code == 201
    return 1
