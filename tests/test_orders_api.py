from datetime import datetime, timedelta, timezone

import pytest

import main
from database import parse_object_id
from conftest import ADMIN, CUSTOMER, OTHER_CUSTOMER, delivery_address


def checkout_body(products, **overrides):
    body = {
        "items": [
            {"productId": products["A"], "quantity": 2, "price": 0.5},
            {"productId": products["B"], "quantity": 1},
        ],
        "deliveryType": "PICKUP",
        "paymentMethod": "cash",
    }
    body.update(overrides)
    return body


def place_order(client, products, headers=CUSTOMER, **overrides):
    resp = client.post("/api/orders", json=checkout_body(products, **overrides), headers=headers)
    assert resp.status_code == 200, resp.json()
    return resp.json()["order"]


def test_pickup_order(client, store, products):
    order = place_order(client, products, deliveryAddress=delivery_address())
    assert order["status"] == "PENDING"
    assert order["subtotal"] == 25.00
    assert order["deliveryFee"] == 0
    assert order["total"] == 25.00
    assert order["deliveryType"] == "PICKUP"
    assert order["deliveryAddress"] is None
    assert order["userId"] == "customer-1"
    assert [i["productId"] for i in order["items"]] == [products["A"], products["B"]]
    assert order["items"][0]["price"] == 10.00


def test_delivery_order_charges_distance_fee(client, store, products):
    order = place_order(client, products, deliveryType="DELIVERY", deliveryAddress=delivery_address())
    assert order["deliveryFee"] == pytest.approx(7.54, abs=0.05)
    assert order["total"] == pytest.approx(25.00 + order["deliveryFee"])
    assert order["deliveryAddress"]["zipCode"] == "01305-000"


def test_delivery_with_saved_address(client, store, products, mongo):
    resp = client.post("/api/addresses", json=delivery_address(), headers=CUSTOMER)
    address_id = resp.json()["address"]["id"]
    order = place_order(client, products, deliveryType="DELIVERY", addressId=address_id)
    assert order["deliveryAddress"]["street"] == "Rua Augusta"

    # The order keeps its snapshot after the saved address is removed
    client.delete(f"/api/addresses/{address_id}", headers=CUSTOMER)
    fetched = client.get(f"/api/orders/{order['id']}", headers=CUSTOMER).json()["order"]
    assert fetched["deliveryAddress"]["street"] == "Rua Augusta"


def test_someone_elses_saved_address_is_rejected(client, store, products):
    resp = client.post("/api/addresses", json=delivery_address(), headers=OTHER_CUSTOMER)
    address_id = resp.json()["address"]["id"]
    resp = client.post(
        "/api/orders",
        json=checkout_body(products, deliveryType="DELIVERY", addressId=address_id),
        headers=CUSTOMER,
    )
    assert resp.status_code == 400


def test_unavailable_product_creates_no_order(client, store, products, mongo):
    body = checkout_body(products)
    body["items"].append({"productId": products["C"], "quantity": 1})
    resp = client.post("/api/orders", json=body, headers=CUSTOMER)
    assert resp.status_code == 400
    assert products["C"] in resp.json()["error"]
    assert mongo["order"].count_documents({}) == 0


def test_minimum_order_not_met(client, store, products, mongo):
    resp = client.post(
        "/api/orders",
        json=checkout_body(products, items=[{"productId": products["B"], "quantity": 1}]),
        headers=CUSTOMER,
    )
    assert resp.status_code == 400
    assert "20.00" in resp.json()["error"]
    assert mongo["order"].count_documents({}) == 0


def test_oversized_quantity_is_rejected(client, store, products, mongo):
    resp = client.post(
        "/api/orders",
        json=checkout_body(products, items=[{"productId": products["A"], "quantity": 10**30}]),
        headers=CUSTOMER,
    )
    assert resp.status_code == 400
    assert "error" in resp.json()
    assert mongo["order"].count_documents({}) == 0


@pytest.mark.parametrize("overrides", [
    {"items": []},
    {"paymentMethod": ""},
    {"paymentMethod": None},
    {"deliveryType": "DRONE"},
    {"deliveryType": None},
    {"deliveryType": "DELIVERY"},
    {"deliveryType": "DELIVERY", "deliveryAddress": delivery_address(lat=None, lng=None)},
])
def test_invalid_checkout(client, store, products, mongo, overrides):
    resp = client.post("/api/orders", json=checkout_body(products, **overrides), headers=CUSTOMER)
    assert resp.status_code == 400
    assert "error" in resp.json()
    assert mongo["order"].count_documents({}) == 0


def test_delivery_without_store_location(client, mongo, products):
    client.put("/api/settings", json={"storeLat": None, "storeLng": None}, headers=ADMIN)
    resp = client.post(
        "/api/orders",
        json=checkout_body(products, deliveryType="DELIVERY", deliveryAddress=delivery_address()),
        headers=CUSTOMER,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Store location not configured"
    assert mongo["order"].count_documents({}) == 0


def test_checkout_requires_customer(client, store, products):
    assert client.post("/api/orders", json=checkout_body(products)).status_code == 401
    assert client.post("/api/orders", json=checkout_body(products), headers=ADMIN).status_code == 401


def test_list_orders_scoped_to_caller(client, store, products, mongo):
    mine = place_order(client, products)
    theirs = place_order(client, products, headers=OTHER_CUSTOMER)

    resp = client.get("/api/orders", headers=CUSTOMER)
    assert [o["id"] for o in resp.json()["orders"]] == [mine["id"]]

    resp = client.get("/api/orders", headers=ADMIN)
    assert {o["id"] for o in resp.json()["orders"]} == {mine["id"], theirs["id"]}

    assert client.get("/api/orders").status_code == 401


def test_list_orders_newest_first(client, store, products, mongo):
    first = place_order(client, products)
    second = place_order(client, products)
    now = datetime.now(timezone.utc)
    mongo["order"].update_one({"_id": parse_object_id(first["id"])},
                              {"$set": {"created_at": now - timedelta(minutes=5)}})
    mongo["order"].update_one({"_id": parse_object_id(second["id"])}, {"$set": {"created_at": now}})
    ids = [o["id"] for o in client.get("/api/orders", headers=CUSTOMER).json()["orders"]]
    assert ids == [second["id"], first["id"]]


def test_get_order_access(client, store, products):
    order = place_order(client, products)
    assert client.get(f"/api/orders/{order['id']}", headers=CUSTOMER).status_code == 200
    assert client.get(f"/api/orders/{order['id']}", headers=ADMIN).status_code == 200
    assert client.get(f"/api/orders/{order['id']}", headers=OTHER_CUSTOMER).status_code == 401
    assert client.get("/api/orders/64b7f0c2a1b2c3d4e5f60718", headers=ADMIN).status_code == 404


def test_product_edit_does_not_rewrite_history(client, store, products):
    order = place_order(client, products)
    client.put(f"/api/products/{products['A']}", json={"price": 99.0}, headers=ADMIN)
    client.delete(f"/api/products/{products['B']}", headers=ADMIN)
    fetched = client.get(f"/api/orders/{order['id']}", headers=CUSTOMER).json()["order"]
    assert fetched["items"][0]["price"] == 10.00
    assert fetched["items"][1]["name"] == "Soda B"
    assert fetched["subtotal"] == 25.00


def test_status_update_flow(client, store, products):
    order = place_order(client, products)
    url = f"/api/orders/{order['id']}"

    resp = client.put(url, json={"status": "CONFIRMED"}, headers=ADMIN)
    assert resp.status_code == 200
    assert resp.json()["order"]["status"] == "CONFIRMED"

    # skip ahead
    assert client.put(url, json={"status": "READY"}, headers=ADMIN).status_code == 200
    # backwards
    resp = client.put(url, json={"status": "PREPARING"}, headers=ADMIN)
    assert resp.status_code == 409
    assert "error" in resp.json()

    assert client.put(url, json={"status": "DELIVERED"}, headers=ADMIN).status_code == 200
    for status in ("CANCELLED", "PENDING", "PREPARING"):
        assert client.put(url, json={"status": status}, headers=ADMIN).status_code == 409

    fetched = client.get(url, headers=ADMIN).json()["order"]
    assert fetched["status"] == "DELIVERED"


def test_cancelled_is_terminal(client, store, products):
    order = place_order(client, products)
    url = f"/api/orders/{order['id']}"
    assert client.put(url, json={"status": "CANCELLED"}, headers=ADMIN).status_code == 200
    assert client.put(url, json={"status": "CONFIRMED"}, headers=ADMIN).status_code == 409


def test_status_update_validation(client, store, products):
    order = place_order(client, products)
    url = f"/api/orders/{order['id']}"
    assert client.put(url, json={"status": "CONFIRMED"}, headers=CUSTOMER).status_code == 401
    assert client.put(url, json={"status": "CONFIRMED"}).status_code == 401
    assert client.put(url, json={}, headers=ADMIN).status_code == 400
    assert client.put(url, json={"status": "LOST"}, headers=ADMIN).status_code == 400
    assert client.put("/api/orders/64b7f0c2a1b2c3d4e5f60718", json={"status": "CONFIRMED"},
                      headers=ADMIN).status_code == 404


def test_permissive_transitions(client, store, products, monkeypatch):
    from dataclasses import replace
    monkeypatch.setattr(main, "settings", replace(main.settings, strict_status_transitions=False))
    order = place_order(client, products)
    url = f"/api/orders/{order['id']}"
    assert client.put(url, json={"status": "DELIVERED"}, headers=ADMIN).status_code == 200
    assert client.put(url, json={"status": "PREPARING"}, headers=ADMIN).status_code == 200
