"""
Product catalog: admin CRUD helpers, the starter menu, and checkout
re-pricing.

Checkout never trusts the client with prices. Every line is priced from the
product record as it is at order time, and the name/price are copied into the
order so later product edits or deletion leave history untouched.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from database import create_document, get_documents, parse_object_id, utcnow
from errors import NotFoundError, ProductUnavailableError, ValidationError
from geo import to_cents
from schemas import CheckoutItem, OrderItem, Product, ProductUpdate

logger = logging.getLogger(__name__)

COLLECTION = "product"

MAX_ITEM_QUANTITY = 999

STARTER_MENU = [
    Product(name="Pizza de Calabresa", description="Mussarela, calabresa, cebola e orégano",
            price=29.90, category="Pizzas Salgadas"),
    Product(name="Pizza de Mussarela", description="Mussarela de primeira qualidade, tomate e orégano",
            price=25.90, category="Pizzas Salgadas"),
    Product(name="Pizza de Frango com Catupiry", description="Frango desfiado, catupiry, milho e tomate",
            price=32.90, category="Pizzas Salgadas"),
    Product(name="Pizza Portuguesa", description="Mussarela, presunto, ovo, cebola, tomate e azeitona",
            price=34.90, category="Pizzas Salgadas"),
    Product(name="Pizza de Chocolate", description="Chocolate ao leite, granulado e morango",
            price=28.90, category="Pizzas Doces"),
    Product(name="Pizza de Romeu e Julieta", description="Queijo mussarela e goiabada",
            price=26.90, category="Pizzas Doces"),
    Product(name="Refrigerante Coca-Cola 2L", description="Refrigerante de cola 2 litros",
            price=8.90, category="Bebidas"),
    Product(name="Refrigerante Guaraná 2L", description="Refrigerante de guaraná 2 litros",
            price=7.90, category="Bebidas"),
]


def seed_menu(db) -> int:
    """Insert the starter menu into an empty catalog. Returns how many were added."""
    if db[COLLECTION].count_documents({}) > 0:
        return 0
    for product in STARTER_MENU:
        create_document(db, COLLECTION, product)
    logger.info("Seeded %d products", len(STARTER_MENU))
    return len(STARTER_MENU)


# Admin CRUD

def list_products(db, include_unavailable: bool = False) -> List[Dict[str, Any]]:
    query = {} if include_unavailable else {"is_available": True}
    return get_documents(db, COLLECTION, query, sort=[("category", 1), ("name", 1)])


def get_product(db, product_id: str) -> Dict[str, Any]:
    oid = parse_object_id(product_id)
    doc = db[COLLECTION].find_one({"_id": oid}) if oid else None
    if not doc:
        raise NotFoundError("Product not found")
    return doc


def add_product(db, product: Product) -> Dict[str, Any]:
    inserted_id = create_document(db, COLLECTION, product)
    return get_product(db, inserted_id)


def update_product(db, product_id: str, changes: ProductUpdate) -> Dict[str, Any]:
    doc = get_product(db, product_id)
    data = changes.model_dump(exclude_unset=True)
    for key in ("name", "category", "price"):
        if key in data and data[key] is None:
            raise ValidationError(f"{key} cannot be empty")
    data["updated_at"] = utcnow()
    db[COLLECTION].update_one({"_id": doc["_id"]}, {"$set": data})
    return get_product(db, product_id)


def delete_product(db, product_id: str) -> None:
    doc = get_product(db, product_id)
    db[COLLECTION].delete_one({"_id": doc["_id"]})
    logger.info("Deleted product %s", product_id)


# Checkout re-pricing

def _fetch_available(db, product_id: str) -> Dict[str, Any]:
    oid = parse_object_id(product_id)
    doc = db[COLLECTION].find_one({"_id": oid}) if oid else None
    if not doc:
        raise ProductUnavailableError(product_id)
    if not doc.get("is_available", False):
        raise ProductUnavailableError(product_id, doc.get("name"))
    return doc


def price_items(db, requested: Sequence[CheckoutItem]) -> Tuple[List[OrderItem], float]:
    """Price the cart from current product records.

    The whole batch fails on the first product that is missing or marked
    unavailable.

    Returns:
        The order lines in request order and their subtotal.
    """
    items: List[OrderItem] = []
    subtotal = 0.0
    for line in requested:
        if line.quantity < 1:
            raise ValidationError(f"Quantity for product {line.product_id} must be at least 1")
        if line.quantity > MAX_ITEM_QUANTITY:
            raise ValidationError(
                f"Quantity for product {line.product_id} must be at most {MAX_ITEM_QUANTITY}"
            )
        doc = _fetch_available(db, line.product_id)
        price = float(doc.get("price", 0))
        line_total = to_cents(price * line.quantity)
        subtotal += line_total
        items.append(OrderItem(
            product_id=str(doc["_id"]),
            name=doc.get("name"),
            price=price,
            quantity=line.quantity,
            line_total=line_total,
            customizations=line.customizations or None,
        ))
    return items, to_cents(subtotal)


def confirm_available(db, items: Sequence[OrderItem]) -> None:
    """Re-read every product in one query right before the order is written."""
    ids = {item.product_id for item in items}
    oids = [parse_object_id(pid) for pid in ids]
    found = {
        str(doc["_id"]): doc
        for doc in db[COLLECTION].find({"_id": {"$in": oids}})
    }
    for item in items:
        doc: Optional[Dict[str, Any]] = found.get(item.product_id)
        if doc is None or not doc.get("is_available", False):
            logger.warning("Product %s became unavailable during checkout", item.product_id)
            raise ProductUnavailableError(item.product_id, item.name)
