"""
MongoDB access.

``db`` is None when DATABASE_URL / DATABASE_NAME are not configured; routes
obtain the handle through ``get_db`` so it can be swapped out.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import MongoClient

from config import settings

client: Optional[MongoClient] = None
db = None

if settings.database_url and settings.database_name:
    client = MongoClient(settings.database_url, tz_aware=True)
    db = client[settings.database_name]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_object_id(id_str: Optional[str]) -> Optional[ObjectId]:
    """Return the ObjectId for ``id_str`` or None if it is not a valid id."""
    if not id_str:
        return None
    try:
        return ObjectId(str(id_str))
    except (InvalidId, TypeError):
        return None


def create_document(database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document stamped with created_at/updated_at and return its id."""
    if database is None:
        raise RuntimeError("Database not available")
    if isinstance(data, BaseModel):
        doc = data.model_dump()
    else:
        doc = dict(data)
    now = utcnow()
    doc["created_at"] = now
    doc["updated_at"] = now
    result = database[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(
    database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[List[tuple]] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    if database is None:
        raise RuntimeError("Database not available")
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)

