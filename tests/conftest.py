import mongomock
import pytest
from fastapi.testclient import TestClient

import main
from database import create_document
from realtime import OrderRoomHub
from schemas import Product, StoreSettings

CUSTOMER = {"X-User-Id": "customer-1", "X-User-Role": "customer"}
OTHER_CUSTOMER = {"X-User-Id": "customer-2", "X-User-Role": "customer"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}

STORE_LAT = -23.5505
STORE_LNG = -46.6333


@pytest.fixture
def mongo():
    return mongomock.MongoClient().storefront


@pytest.fixture
def hub(monkeypatch):
    fresh = OrderRoomHub()
    monkeypatch.setattr(main, "order_hub", fresh)
    return fresh


@pytest.fixture
def client(mongo, hub):
    main.app.dependency_overrides[main.get_db] = lambda: mongo
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()


@pytest.fixture
def store(mongo):
    """Store in central Sao Paulo, 5.00/km, no fee floor, minimum order 20.00."""
    create_document(mongo, "settings", StoreSettings(
        minimum_order=20.00,
        store_lat=STORE_LAT,
        store_lng=STORE_LNG,
        delivery_fee_per_km=5.00,
        minimum_delivery_fee=None,
    ))
    return mongo["settings"].find_one({})


@pytest.fixture
def products(mongo):
    ids = {}
    for key, product in {
        "A": Product(name="Pizza A", price=10.00, category="Pizzas"),
        "B": Product(name="Soda B", price=5.00, category="Drinks"),
        "C": Product(name="Pizza C", price=12.00, category="Pizzas", is_available=False),
    }.items():
        ids[key] = create_document(mongo, "product", product)
    return ids


def delivery_address(lat=-23.5605, lng=-46.6433):
    return {
        "street": "Rua Augusta",
        "number": "100",
        "neighborhood": "Consolacao",
        "city": "Sao Paulo",
        "zipCode": "01305-000",
        "lat": lat,
        "lng": lng,
    }
