import logging
import os

from fastapi import Depends, FastAPI, HTTPException, Query, Request, WebSocket
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import catalog
import database
import orders
from auth import Caller, get_caller, require_admin, require_caller, require_customer
from config import settings
from errors import StorefrontError
from geo import quote_delivery
from realtime import OrderRoomHub, serve_connection
from schemas import (
    AddressCreate,
    AddressOut,
    CheckoutRequest,
    DeliveryQuote,
    DeliveryQuoteRequest,
    OrderOut,
    Product,
    ProductOut,
    ProductUpdate,
    StatusUpdate,
    StoreSettings,
)
from store_settings import load_store_settings, update_store_settings

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Storefront Ordering API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

order_hub = OrderRoomHub()


# Helpers

def get_db():
    if database.db is None:
        raise HTTPException(status_code=500, detail="Database not available")
    return database.db


def get_order_hub() -> OrderRoomHub:
    return order_hub


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"error": "; ".join(problems) or "Invalid request"})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Seed the menu if the catalog is empty
@app.on_event("startup")
def seed_products():
    if database.db is None or not settings.seed_products:
        return
    try:
        catalog.seed_menu(database.db)
    except Exception:
        logger.exception("Could not seed products")


@app.get("/")
def read_root():
    return {"message": "Storefront ordering backend is running"}


@app.get("/health")
def health():
    response = {"backend": "ok", "database": "not configured"}
    if database.db is not None:
        try:
            database.db.command("ping")
            response["database"] = "ok"
        except Exception as e:
            logger.warning("Database ping failed: %s", e)
            response["database"] = "unreachable"
    return response


# Product endpoints

@app.get("/api/products")
def list_products(
    include_unavailable: bool = Query(False, alias="includeUnavailable"),
    caller=Depends(get_caller),
    db=Depends(get_db),
):
    show_all = include_unavailable and caller is not None and caller.is_admin
    docs = catalog.list_products(db, include_unavailable=show_all)
    return {"products": [ProductOut.from_doc(d) for d in docs]}


@app.get("/api/products/{product_id}")
def get_product(product_id: str, db=Depends(get_db)):
    return {"product": ProductOut.from_doc(catalog.get_product(db, product_id))}


@app.post("/api/products")
def add_product(product: Product, admin: Caller = Depends(require_admin), db=Depends(get_db)):
    return {"product": ProductOut.from_doc(catalog.add_product(db, product))}


@app.put("/api/products/{product_id}")
def update_product(
    product_id: str,
    changes: ProductUpdate,
    admin: Caller = Depends(require_admin),
    db=Depends(get_db),
):
    return {"product": ProductOut.from_doc(catalog.update_product(db, product_id, changes))}


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str, admin: Caller = Depends(require_admin), db=Depends(get_db)):
    catalog.delete_product(db, product_id)
    return {"deleted": True}


# Address endpoints

@app.get("/api/addresses")
def list_addresses(customer: Caller = Depends(require_customer), db=Depends(get_db)):
    docs = database.get_documents(db, "address", {"user_id": customer.id}, sort=[("created_at", -1)])
    return {"addresses": [AddressOut.from_doc(d) for d in docs]}


@app.post("/api/addresses")
def add_address(address: AddressCreate, customer: Caller = Depends(require_customer), db=Depends(get_db)):
    data = address.model_dump()
    data["user_id"] = customer.id
    inserted_id = database.create_document(db, "address", data)
    doc = db["address"].find_one({"_id": database.parse_object_id(inserted_id)})
    return {"address": AddressOut.from_doc(doc)}


@app.delete("/api/addresses/{address_id}")
def delete_address(address_id: str, customer: Caller = Depends(require_customer), db=Depends(get_db)):
    oid = database.parse_object_id(address_id)
    res = db["address"].delete_one({"_id": oid, "user_id": customer.id}) if oid else None
    if res is None or res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Address not found")
    return {"deleted": True, "addressId": address_id}


# Store settings endpoints

@app.get("/api/settings")
def get_settings(db=Depends(get_db)):
    return {"settings": load_store_settings(db)}


@app.put("/api/settings")
def put_settings(new_settings: StoreSettings, admin: Caller = Depends(require_admin), db=Depends(get_db)):
    return {"settings": update_store_settings(db, new_settings)}


# Delivery fee quote

@app.post("/api/delivery/calculate")
def calculate_delivery(payload: DeliveryQuoteRequest, db=Depends(get_db)):
    address = payload.delivery_address
    quote = quote_delivery(load_store_settings(db), address.coordinate if address else None)
    return DeliveryQuote(
        delivery_fee=quote.fee,
        distance=round(quote.distance_km, 2),
        calculation_method=quote.calculation_method,
        minimum_applied=quote.minimum_applied,
        delivery_address=address,
    )


# Orders endpoints

@app.post("/api/orders")
def create_order(payload: CheckoutRequest, customer: Caller = Depends(require_customer), db=Depends(get_db)):
    doc = orders.create_order(db, customer.id, payload, load_store_settings(db))
    return {"order": OrderOut.from_doc(doc)}


@app.get("/api/orders")
def list_orders(caller: Caller = Depends(require_caller), db=Depends(get_db)):
    return {"orders": [OrderOut.from_doc(d) for d in orders.list_orders(db, caller)]}


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, caller: Caller = Depends(require_caller), db=Depends(get_db)):
    return {"order": OrderOut.from_doc(orders.get_order(db, order_id, caller))}


@app.put("/api/orders/{order_id}")
async def update_order_status(
    order_id: str,
    payload: StatusUpdate,
    admin: Caller = Depends(require_admin),
    db=Depends(get_db),
    hub: OrderRoomHub = Depends(get_order_hub),
):
    doc = await run_in_threadpool(
        orders.transition_order, db, order_id, payload.status, settings.strict_status_transitions
    )
    order = OrderOut.from_doc(doc)
    # The status change is committed; a failed push must not undo or fail it.
    try:
        await hub.publish(order.id, order.status)
    except Exception:
        logger.exception("Failed to push status update for order %s", order.id)
    return {"order": order}


@app.websocket("/ws/orders")
async def order_updates(websocket: WebSocket):
    await serve_connection(order_hub, websocket)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
