"""
Database Schemas for the Storefront

Each Pydantic model represents a MongoDB collection (collection name is the
lowercase of the class name) unless noted as embedded or as a request body.

This app manages:
- Products (menu items with price and availability)
- Addresses (saved by customers, with optional coordinates)
- Settings (the store location and delivery pricing, a single record)
- Orders (priced items, delivery arrangement, status)

Field names are snake_case in MongoDB and camelCase on the wire.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    DELIVERING = "DELIVERING"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class DeliveryType(str, Enum):
    DELIVERY = "DELIVERY"
    PICKUP = "PICKUP"


class Coordinate(CamelModel):
    """Latitude/longitude pair in decimal degrees."""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    lat: float
    lng: float


class Product(CamelModel):
    """
    Menu products
    Collection name: "product"
    """
    name: str = Field(..., min_length=1, description="Product name")
    description: Optional[str] = Field(None, description="Short description")
    price: float = Field(..., ge=0, description="Unit price")
    category: str = Field(..., min_length=1, description="Category like Pizzas, Drinks")
    image_url: Optional[str] = Field(None, description="Image URL")
    is_available: bool = Field(True, description="Available to order")


class ProductUpdate(CamelModel):
    """Partial product update (admin)"""
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = Field(None, min_length=1)
    image_url: Optional[str] = None
    is_available: Optional[bool] = None


class AddressFields(CamelModel):
    model_config = ConfigDict(allow_inf_nan=False)

    street: Optional[str] = None
    number: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def coordinate(self) -> Optional[Coordinate]:
        if self.lat is None or self.lng is None:
            return None
        return Coordinate(lat=self.lat, lng=self.lng)


class DeliveryAddress(AddressFields):
    """
    Embedded address snapshot stored inside an order (not a collection)
    """


class AddressCreate(AddressFields):
    """Request body for saving an address; coordinates come from geocoding, if any"""
    street: str = Field(..., min_length=1)
    number: str = Field(..., min_length=1)
    neighborhood: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)


class Address(AddressCreate):
    """
    Customer saved addresses
    Collection name: "address"
    """
    user_id: str = Field(..., description="Owning customer")


class StoreSettings(CamelModel):
    """
    Store location and delivery pricing, a single record
    Collection name: "settings"
    """
    model_config = ConfigDict(allow_inf_nan=False)

    minimum_order: float = Field(20.00, ge=0, description="Minimum subtotal to checkout")
    store_address: Optional[str] = None
    store_lat: Optional[float] = None
    store_lng: Optional[float] = None
    delivery_fee_per_km: float = Field(5.00, ge=0, description="Delivery fee per kilometre")
    minimum_delivery_fee: Optional[float] = Field(None, ge=0, description="Delivery fee floor")
    whatsapp_number: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    working_hours: Optional[Dict[str, Any]] = None

    @property
    def store_location(self) -> Optional[Coordinate]:
        if self.store_lat is None or self.store_lng is None:
            return None
        return Coordinate(lat=self.store_lat, lng=self.store_lng)


class OrderItem(CamelModel):
    """
    Embedded order item representation (not a collection)
    """
    product_id: str = Field(..., description="Referenced product _id as string")
    name: str = Field(..., description="Product name at time of order")
    price: float = Field(..., ge=0, description="Unit price at time of order")
    quantity: int = Field(..., ge=1, description="Quantity ordered")
    line_total: float = Field(..., ge=0, description="Calculated line total")
    customizations: Optional[str] = Field(None, description="Free-text notes for the kitchen")


class Order(CamelModel):
    """
    Orders placed by customers
    Collection name: "order"
    """
    user_id: str = Field(..., description="Owning customer")
    items: List[OrderItem] = Field(..., description="Items included in the order")
    subtotal: float = Field(..., ge=0, description="Sum of line totals")
    delivery_fee: float = Field(0, ge=0, description="Zero for pickup orders")
    total: float = Field(..., ge=0, description="Subtotal plus delivery fee")
    delivery_type: DeliveryType
    delivery_address: Optional[DeliveryAddress] = None
    payment_method: str = Field(..., min_length=1, description="Free-form label, no gateway")
    status: OrderStatus = OrderStatus.PENDING


class OrderOut(Order):
    """Order as returned by the API"""
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "OrderOut":
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)


# Request bodies

class CheckoutItem(CamelModel):
    """A cart line as sent by the client. Prices are never read from the request."""
    product_id: str
    quantity: int
    customizations: Optional[str] = None


class CheckoutRequest(CamelModel):
    items: List[CheckoutItem] = Field(default_factory=list)
    delivery_type: Optional[str] = None
    delivery_address: Optional[DeliveryAddress] = None
    address_id: Optional[str] = Field(None, description="Saved address to snapshot instead of an inline one")
    payment_method: Optional[str] = None


class StatusUpdate(CamelModel):
    status: Optional[str] = None


class DeliveryQuoteRequest(CamelModel):
    delivery_address: Optional[DeliveryAddress] = None


class DeliveryQuote(CamelModel):
    delivery_fee: float
    distance: float
    calculation_method: str
    minimum_applied: bool
    delivery_address: DeliveryAddress


# API output

class ProductOut(Product):
    id: str

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "ProductOut":
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)


class AddressOut(Address):
    id: str

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "AddressOut":
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)
