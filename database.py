"""
Database access for the storefront API.

A ``Database`` owns a MongoClient and is connected/closed by the app
lifespan. Route handlers receive the pymongo database through the
``get_db`` dependency.
"""
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from bson import ObjectId
from fastapi import Request
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient

logger = logging.getLogger(__name__)

CATALOG_COLLECTIONS = ("book", "movie")


class Database:
    def __init__(self, url: Optional[str] = None, name: Optional[str] = None, client=None):
        self.url = url or os.getenv("DATABASE_URL", "mongodb://127.0.0.1:27017")
        self.name = name or os.getenv("DATABASE_NAME", "storefront")
        self._client = client
        self._db = None

    @property
    def db(self):
        if self._db is None:
            raise RuntimeError("Database is not connected")
        return self._db

    def connect(self):
        if self._db is not None:
            return self._db
        if self._client is None:
            self._client = MongoClient(self.url)
        self._db = self._client[self.name]
        self._ensure_indexes()
        logger.info("Connected to MongoDB database %s", self.name)
        return self._db

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._db = None

    def _ensure_indexes(self) -> None:
        db = self._db
        db["user"].create_index("email", unique=True)
        db["session"].create_index("token", unique=True)
        db["category"].create_index("slug", unique=True)
        for name in CATALOG_COLLECTIONS:
            db[name].create_index([("is_active", ASCENDING), ("created_at", DESCENDING)])


def get_db(request: Request):
    return request.app.state.database.db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def create_document(db, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a model or dict, stamping created_at/updated_at. Returns the new id."""
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    now = utcnow()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def _public_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return to_public(value)
    if isinstance(value, list):
        return [_public_value(v) for v in value]
    return value


def to_public(doc: Optional[Dict[str, Any]]):
    if not doc:
        return doc
    d = {}
    for k, v in doc.items():
        if k == "_id":
            d["id"] = str(v)
        elif k == "password_hash":
            continue
        else:
            d[k] = _public_value(v)
    return d
