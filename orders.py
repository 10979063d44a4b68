"""
Order creation, reads and status changes.

Subtotal and delivery fee are always computed here from the catalog and the
store settings; nothing monetary is taken from the request. Orders are never
deleted, only moved through the status machine.
"""

import logging
import threading
from typing import Any, Dict, List, Optional

from auth import Caller
from catalog import confirm_available, price_items
from database import create_document, get_documents, parse_object_id, utcnow
from errors import (
    AuthorizationError,
    InvalidTransitionError,
    MinimumOrderNotMetError,
    NotFoundError,
    ValidationError,
)
from geo import quote_delivery, to_cents
from schemas import (
    CheckoutRequest,
    DeliveryAddress,
    DeliveryType,
    Order,
    OrderStatus,
    StoreSettings,
)
from status import INITIAL_STATUS, check_transition, parse_status

logger = logging.getLogger(__name__)

COLLECTION = "order"

# Serializes validate -> price -> insert within this process.
_checkout_lock = threading.Lock()


def _parse_delivery_type(value: Optional[str]) -> DeliveryType:
    if not value:
        raise ValidationError("Items, delivery type, and payment method are required")
    try:
        return DeliveryType(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Invalid delivery type {value!r}; expected DELIVERY or PICKUP")


def _saved_address(db, customer_id: str, address_id: str) -> DeliveryAddress:
    oid = parse_object_id(address_id)
    doc = db["address"].find_one({"_id": oid, "user_id": customer_id}) if oid else None
    if not doc:
        raise ValidationError("Saved address not found")
    return DeliveryAddress.model_validate(doc)


def _delivery_address(db, customer_id: str, request: CheckoutRequest) -> DeliveryAddress:
    if request.delivery_address is not None:
        address = request.delivery_address
    elif request.address_id:
        address = _saved_address(db, customer_id, request.address_id)
    else:
        raise ValidationError("Delivery address is required for delivery orders")
    if address.coordinate is None:
        raise ValidationError("Delivery address must include coordinates (lat, lng)")
    # Stored as a copy, never a reference to the saved address.
    return address.model_copy(deep=True)


def create_order(db, customer_id: str, request: CheckoutRequest, store: StoreSettings) -> Dict[str, Any]:
    """Validate, price and persist a new PENDING order.

    Either every item validates and the order is written, or nothing is
    written.

    Args:
        db: MongoDB database handle.
        customer_id: The ordering customer.
        request: The checkout body as sent by the client.
        store: Store settings loaded for this request.

    Returns:
        The stored order document.
    """
    if not request.items or not request.payment_method or not request.payment_method.strip():
        raise ValidationError("Items, delivery type, and payment method are required")
    delivery_type = _parse_delivery_type(request.delivery_type)

    address: Optional[DeliveryAddress] = None
    if delivery_type == DeliveryType.DELIVERY:
        address = _delivery_address(db, customer_id, request)

    with _checkout_lock:
        items, subtotal = price_items(db, request.items)
        if subtotal < store.minimum_order:
            raise MinimumOrderNotMetError(store.minimum_order, subtotal)

        delivery_fee = 0.0
        if delivery_type == DeliveryType.DELIVERY:
            delivery_fee = quote_delivery(store, address.coordinate).fee

        order = Order(
            user_id=customer_id,
            items=items,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            total=to_cents(subtotal + delivery_fee),
            delivery_type=delivery_type,
            delivery_address=address,
            payment_method=request.payment_method.strip(),
            status=INITIAL_STATUS,
        )
        confirm_available(db, items)
        order_id = create_document(db, COLLECTION, order)

    logger.info(
        "Order %s created for customer %s: %s, subtotal %.2f, delivery fee %.2f",
        order_id, customer_id, delivery_type.value, subtotal, delivery_fee,
    )
    return db[COLLECTION].find_one({"_id": parse_object_id(order_id)})


def list_orders(db, caller: Caller) -> List[Dict[str, Any]]:
    """Admins see every order, customers only their own; newest first."""
    query = {} if caller.is_admin else {"user_id": caller.id}
    return get_documents(db, COLLECTION, query, sort=[("created_at", -1)])


def _find_order(db, order_id: str) -> Dict[str, Any]:
    oid = parse_object_id(order_id)
    doc = db[COLLECTION].find_one({"_id": oid}) if oid else None
    if not doc:
        raise NotFoundError("Order not found")
    return doc


def get_order(db, order_id: str, caller: Caller) -> Dict[str, Any]:
    doc = _find_order(db, order_id)
    if not caller.is_admin and doc.get("user_id") != caller.id:
        raise AuthorizationError()
    return doc


def transition_order(db, order_id: str, new_status: Optional[str], strict: bool = True) -> Dict[str, Any]:
    """Move an order to ``new_status`` through the status machine.

    The write only succeeds if the order is still in the status that was
    checked, so two admins racing on one order cannot both win.
    """
    target = parse_status(new_status)
    doc = _find_order(db, order_id)
    current = OrderStatus(doc["status"])
    check_transition(current, target, strict=strict)

    result = db[COLLECTION].update_one(
        {"_id": doc["_id"], "status": current.value},
        {"$set": {"status": target.value, "updated_at": utcnow()}},
    )
    if result.matched_count == 0:
        raise InvalidTransitionError("Order status changed concurrently, reload and retry")

    logger.info("Order %s moved from %s to %s", order_id, current.value, target.value)
    return db[COLLECTION].find_one({"_id": doc["_id"]})
