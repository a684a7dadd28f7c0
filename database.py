"""
Database helpers for the portfolio document store.

One MongoDB collection per schema in schemas.py. Documents are plain dicts;
`createdAt` / `updatedAt` are maintained here and `_id` is exposed as `id`.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient, ReturnDocument

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "portfolio")

# MongoClient connects lazily, importing this module never blocks
client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
db = client[DATABASE_NAME]

Sort = Sequence[Tuple[str, int]]


def now() -> datetime:
    """Naive UTC, which is what pymongo hands back on reads."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_public(doc):
    if not doc:
        return doc
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d


def parse_object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    if isinstance(data, BaseModel):
        data = data.model_dump()
    doc = dict(data)
    stamp = now()
    doc["createdAt"] = stamp
    doc["updatedAt"] = stamp
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None,
                  sort: Optional[Sort] = None, limit: Optional[int] = None) -> List[dict]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(list(sort))
    if limit:
        cursor = cursor.limit(limit)
    return [to_public(d) for d in cursor]


def get_document(collection_name: str, filter_dict: dict) -> Optional[dict]:
    return to_public(db[collection_name].find_one(filter_dict))


def get_document_by_id(collection_name: str, doc_id: str) -> Optional[dict]:
    oid = parse_object_id(doc_id)
    if oid is None:
        return None
    return get_document(collection_name, {"_id": oid})


def update_document(collection_name: str, doc_id: str, updates: Dict[str, Any]) -> Optional[dict]:
    """$set `updates` on one document; returns the new version or None when the id is unknown."""
    oid = parse_object_id(doc_id)
    if oid is None:
        return None
    changes = dict(updates)
    changes["updatedAt"] = now()
    res = db[collection_name].find_one_and_update(
        {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
    )
    return to_public(res)


def delete_document(collection_name: str, doc_id: str) -> bool:
    oid = parse_object_id(doc_id)
    if oid is None:
        return False
    res = db[collection_name].delete_one({"_id": oid})
    return res.deleted_count == 1


def ensure_indexes():
    db["blogpost"].create_index([("slug", ASCENDING)], unique=True)
    logger.info("Indexes ensured on database %s", db.name)
