"""
MongoDB access.

Each Pydantic model in schemas.py maps to a collection named after the
lowercased class name (user, product, cart, cart_item, order).

A single MongoClient is created lazily and shared as a connection pool;
request handlers receive the database through the get_db dependency and
pass it to the services they construct.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

import config
from logger import get_logger

_logger = get_logger(__name__)

_client: Optional[MongoClient] = None


def get_client() -> MongoClient:
    global _client
    if _client is None:
        _logger.info(f"Connecting to MongoDB database '{config.DATABASE_NAME}'")
        _client = MongoClient(config.DATABASE_URL)
    return _client


def get_db() -> Database:
    return get_client()[config.DATABASE_NAME]


def ensure_indexes(db: Database) -> None:
    """Create the uniqueness constraints the services rely on."""
    db["user"].create_index([("email", ASCENDING)], unique=True)
    db["cart"].create_index([("user_id", ASCENDING)], unique=True)
    db["cart_item"].create_index(
        [("cart_id", ASCENDING), ("product_id", ASCENDING)], unique=True
    )
    db["order"].create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    db["product"].create_index([("category", ASCENDING), ("is_active", ASCENDING)])


def now() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """ObjectId for value, or None when it isn't a valid id."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, list):
        return [_serialize_value(v) for v in value]
    return value


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    doc = dict(doc)
    if "_id" in doc:
        doc["id"] = doc.pop("_id")
    return {k: _serialize_value(v) for k, v in doc.items()}


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> ObjectId:
    """Insert data into a collection, stamping created_at/updated_at."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(mode="json")
    else:
        data_dict = dict(data)
    stamp = now()
    data_dict["created_at"] = stamp
    data_dict["updated_at"] = stamp
    result = db[collection_name].insert_one(data_dict)
    return result.inserted_id
