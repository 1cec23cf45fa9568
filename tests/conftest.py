import pytest
from fastapi.testclient import TestClient

from database import Store, get_store
from main import app
from schemas import AccessCodeConfig, AdminConfig, Collection, Order, Product


def make_order(order_id, product_name="Coat", size="M", **kw):
    data = dict(
        id=order_id,
        date="2026-10-01",
        instagram_id="@insta",
        name="Kim",
        phone="010-1234-5678",
        address="Seoul",
        message="leave at door",
        product_name=product_name,
        size=size,
    )
    data.update(kw)
    return Order(**data)


@pytest.fixture
def admin_config():
    return AdminConfig(password="ADMIN", recovery_phrase="nuuanu")


@pytest.fixture
def collections():
    return [
        Collection(
            id="c1",
            name="25FW",
            access_codes=[AccessCodeConfig(code="VIP25", limit=3), AccessCodeConfig(code="FRIENDS", limit=1)],
            products=[
                Product(id="p1", name="Coat", price=10000, options=["S", "M", "L"]),
                Product(id="p2", name="Scarf", price=5000),
            ],
        ),
        Collection(
            id="c2",
            name="26SS",
            access_codes=[AccessCodeConfig(code="FRIENDS", limit=2), AccessCodeConfig(code="SUMMER", limit=5)],
        ),
    ]


@pytest.fixture
def store(admin_config, collections):
    s = Store()
    s.save_admin_config(admin_config)
    for col in collections:
        s.save_collection(col)
    return s


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def login(client, code):
    res = client.post("/auth/login", json={"code": code})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


@pytest.fixture
def admin_headers(client):
    return login(client, "admin")


@pytest.fixture
def vip_headers(client):
    return login(client, "vip25")
