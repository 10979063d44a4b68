from conftest import ADMIN, CUSTOMER, OTHER_CUSTOMER, delivery_address


def test_root_and_health(client):
    assert client.get("/").status_code == 200
    assert client.get("/health").json()["backend"] == "ok"


def test_public_menu_hides_unavailable(client, products):
    names = [p["name"] for p in client.get("/api/products").json()["products"]]
    assert "Pizza C" not in names
    assert set(names) == {"Pizza A", "Soda B"}

    resp = client.get("/api/products", params={"includeUnavailable": "true"}, headers=ADMIN)
    assert "Pizza C" in [p["name"] for p in resp.json()["products"]]
    resp = client.get("/api/products", params={"includeUnavailable": "true"}, headers=CUSTOMER)
    assert "Pizza C" not in [p["name"] for p in resp.json()["products"]]


def test_product_crud(client):
    new = {"name": "Pizza Margherita", "price": 31.5, "category": "Pizzas", "imageUrl": "https://example.com/m.jpg"}
    assert client.post("/api/products", json=new, headers=CUSTOMER).status_code == 401

    resp = client.post("/api/products", json=new, headers=ADMIN)
    assert resp.status_code == 200
    product = resp.json()["product"]
    assert product["isAvailable"] is True
    assert product["imageUrl"] == "https://example.com/m.jpg"

    resp = client.put(f"/api/products/{product['id']}", json={"isAvailable": False}, headers=ADMIN)
    assert resp.json()["product"]["isAvailable"] is False
    assert resp.json()["product"]["price"] == 31.5

    assert client.get(f"/api/products/{product['id']}").json()["product"]["name"] == "Pizza Margherita"
    assert client.delete(f"/api/products/{product['id']}", headers=ADMIN).json() == {"deleted": True}
    assert client.get(f"/api/products/{product['id']}").status_code == 404


def test_product_validation(client):
    resp = client.post("/api/products", json={"name": "Free", "price": -1, "category": "x"}, headers=ADMIN)
    assert resp.status_code == 400
    resp = client.put("/api/products/64b7f0c2a1b2c3d4e5f60718", json={"price": 1}, headers=ADMIN)
    assert resp.status_code == 404
    resp = client.put("/api/products/not-an-id", json={"price": 1}, headers=ADMIN)
    assert resp.status_code == 404


def test_address_ownership(client):
    resp = client.post("/api/addresses", json=delivery_address(), headers=CUSTOMER)
    assert resp.status_code == 200
    address = resp.json()["address"]
    assert address["userId"] == "customer-1"
    assert address["lat"] == -23.5605

    assert client.get("/api/addresses", headers=OTHER_CUSTOMER).json()["addresses"] == []
    assert client.delete(f"/api/addresses/{address['id']}", headers=OTHER_CUSTOMER).status_code == 404
    assert len(client.get("/api/addresses", headers=CUSTOMER).json()["addresses"]) == 1

    assert client.delete(f"/api/addresses/{address['id']}", headers=CUSTOMER).status_code == 200
    assert client.get("/api/addresses", headers=CUSTOMER).json()["addresses"] == []


def test_address_without_coordinates_is_allowed(client):
    body = delivery_address(lat=None, lng=None)
    resp = client.post("/api/addresses", json=body, headers=CUSTOMER)
    assert resp.status_code == 200
    assert resp.json()["address"]["lat"] is None


def test_address_requires_fields(client):
    resp = client.post("/api/addresses", json={"street": "Rua Augusta"}, headers=CUSTOMER)
    assert resp.status_code == 400
    assert client.get("/api/addresses").status_code == 401
