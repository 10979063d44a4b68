"""
The store settings record: location, delivery pricing and contact details.

There is exactly one record. It is created with defaults the first time it is
read and afterwards changed only through ``update_store_settings``.
"""

import logging
from typing import Any, Dict

from config import settings as app_settings
from database import create_document, utcnow
from schemas import StoreSettings

logger = logging.getLogger(__name__)

COLLECTION = "settings"

DEFAULT_WORKING_HOURS = {
    day: {"open": "18:00", "close": "23:00"}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
}


def default_store_settings() -> StoreSettings:
    return StoreSettings(
        minimum_order=app_settings.default_minimum_order,
        store_lat=app_settings.default_store_lat,
        store_lng=app_settings.default_store_lng,
        delivery_fee_per_km=app_settings.default_delivery_fee_per_km,
        minimum_delivery_fee=app_settings.default_minimum_delivery_fee,
        working_hours=DEFAULT_WORKING_HOURS,
    )


def _find_or_create(db) -> Dict[str, Any]:
    doc = db[COLLECTION].find_one({})
    if doc is None:
        create_document(db, COLLECTION, default_store_settings())
        logger.info("Created default store settings")
        doc = db[COLLECTION].find_one({})
    return doc


def load_store_settings(db) -> StoreSettings:
    """Read the store settings, creating the default record on first use."""
    return StoreSettings.model_validate(_find_or_create(db))


def update_store_settings(db, changes: StoreSettings) -> StoreSettings:
    """Apply the fields present in ``changes``; fields left out keep their value.

    An explicit null clears a field, e.g. ``storeLat: null`` unsets the store
    location.
    """
    doc = _find_or_create(db)
    data = changes.model_dump(exclude_unset=True)
    data["updated_at"] = utcnow()
    db[COLLECTION].update_one({"_id": doc["_id"]}, {"$set": data})
    updated = StoreSettings.model_validate(db[COLLECTION].find_one({"_id": doc["_id"]}))
    logger.info(
        "Store settings updated (%s): location=%s rate=%.2f/km minimum fee=%s",
        ", ".join(sorted(data)), updated.store_location, updated.delivery_fee_per_km, updated.minimum_delivery_fee,
    )
    return updated
