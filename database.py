"""
MongoDB access for the storefront.

Owns the client, the `get_db` dependency and the small set of write helpers
every module goes through. Each write publishes a change event for its
collection so live subscriptions (see live.py) can re-deliver snapshots.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient, ReturnDocument

import settings

logger = logging.getLogger(__name__)

client = MongoClient(settings.DATABASE_URL)
db = client[settings.DATABASE_NAME]


def get_db():
    return db


class ChangeFeed:
    """Thread-safe publish/subscribe of "collection changed" events."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: Dict[str, Dict[int, Callable[[str], None]]] = {}
        self._next_token = 0

    def listen(self, collection_name: str, callback: Callable[[str], None]) -> int:
        with self._lock:
            self._next_token += 1
            token = self._next_token
            self._listeners.setdefault(collection_name, {})[token] = callback
            return token

    def unlisten(self, collection_name: str, token: int) -> None:
        with self._lock:
            self._listeners.get(collection_name, {}).pop(token, None)

    def listener_count(self, collection_name: str) -> int:
        with self._lock:
            return len(self._listeners.get(collection_name, {}))

    def publish(self, collection_name: str) -> None:
        with self._lock:
            callbacks = list(self._listeners.get(collection_name, {}).values())
        for callback in callbacks:
            try:
                callback(collection_name)
            except Exception:
                logger.exception("Change listener on %s failed", collection_name)


changes = ChangeFeed()


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_local_datetime(value: Any) -> datetime:
    """Convert a stored timestamp to an aware datetime; missing values become now."""
    if value is None:
        return now_utc()
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return now_utc()
        return to_local_datetime(parsed)
    return now_utc()


def doc_key(doc_id: Any):
    """Documents created here use ObjectId keys; anything else is a caller-chosen string."""
    if isinstance(doc_id, ObjectId):
        return doc_id
    if isinstance(doc_id, str) and ObjectId.is_valid(doc_id):
        return ObjectId(doc_id)
    return doc_id


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    out = {}
    for k, v in doc.items():
        if k == "_id":
            out["id"] = str(v)
        elif isinstance(v, datetime):
            out[k] = to_local_datetime(v)
        else:
            out[k] = v
    out["created_at"] = to_local_datetime(doc.get("created_at"))
    return out


def _as_dict(data) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump()
    return dict(data)


def create_document(database, collection_name: str, data) -> str:
    doc = _as_dict(data)
    now = now_utc()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    result = database[collection_name].insert_one(doc)
    changes.publish(collection_name)
    return str(result.inserted_id)


def set_document(database, collection_name: str, doc_id: Any, data) -> None:
    """Create or overwrite the document stored under a caller-chosen id."""
    doc = _as_dict(data)
    database[collection_name].replace_one({"_id": doc_key(doc_id)}, doc, upsert=True)
    changes.publish(collection_name)


def update_document(database, collection_name: str, doc_id: Any, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    doc = database[collection_name].find_one_and_update(
        {"_id": doc_key(doc_id)},
        {"$set": {**fields, "updated_at": now_utc()}},
        return_document=ReturnDocument.AFTER,
    )
    if doc:
        changes.publish(collection_name)
    return doc


def delete_document(database, collection_name: str, doc_id: Any) -> bool:
    res = database[collection_name].delete_one({"_id": doc_key(doc_id)})
    if res.deleted_count:
        changes.publish(collection_name)
    return res.deleted_count > 0


def get_document(database, collection_name: str, doc_id: Any) -> Optional[Dict[str, Any]]:
    return database[collection_name].find_one({"_id": doc_key(doc_id)})


def document_exists(database, collection_name: str, doc_id: Any) -> bool:
    return database[collection_name].find_one({"_id": doc_key(doc_id)}, {"_id": 1}) is not None


def get_documents(database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {}).sort("created_at", -1)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def decrement_stock(database, product_id: Any, quantity: int) -> Optional[Dict[str, Any]]:
    """Atomically take `quantity` units; returns None when stock would go negative."""
    doc = database["products"].find_one_and_update(
        {"_id": doc_key(product_id), "stock": {"$gte": quantity}},
        {"$inc": {"stock": -quantity}, "$set": {"updated_at": now_utc()}},
        return_document=ReturnDocument.AFTER,
    )
    if doc:
        changes.publish("products")
    return doc


def restore_stock(database, product_id: Any, quantity: int) -> None:
    database["products"].update_one({"_id": doc_key(product_id)}, {"$inc": {"stock": quantity}})
    changes.publish("products")
    logger.warning("Restored %s units of stock to product %s", quantity, product_id)
