"""
MongoDB access for the TradeLink API.

Collections are named after the lowercase document model (User -> "user").
References between documents are stored as id strings.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import get_settings

logger = logging.getLogger(__name__)

USER_SECRET_FIELDS = (
    "password_hash",
    "verification_token",
    "verification_expire",
    "reset_password_token",
    "reset_password_expire",
)

_client: Optional[MongoClient] = None


def get_client() -> MongoClient:
    """Return a process-wide client; pymongo pools connections internally."""
    global _client
    if _client is None:
        _client = MongoClient(get_settings().mongo_url, tz_aware=True)
    return _client


def get_db() -> Database:
    return get_client()[get_settings().mongo_db_name]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_obj_id(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail="Invalid id")


def is_valid_id(id_str: Any) -> bool:
    return isinstance(id_str, str) and ObjectId.is_valid(id_str)


def sanitize(doc: Optional[Dict]) -> Optional[Dict]:
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d


def public_user(doc: Optional[Dict]) -> Optional[Dict]:
    """Sanitize a user document and drop credentials and one-time tokens."""
    d = sanitize(doc)
    if d:
        for field in USER_SECRET_FIELDS:
            d.pop(field, None)
    return d


def ensure_indexes(db: Database) -> None:
    try:
        db["user"].create_index("email", unique=True)
        db["user"].create_index("verification_token", sparse=True)
        db["user"].create_index("reset_password_token", sparse=True)
        db["seller"].create_index("user_id")
        db["product"].create_index([("seller_id", ASCENDING), ("created_at", DESCENDING)])
        db["service"].create_index([("seller_id", ASCENDING), ("created_at", DESCENDING)])
        db["message"].create_index([("sender_id", ASCENDING), ("recipient_id", ASCENDING)])
        db["review"].create_index("seller_id")
        db["notification"].create_index([("seller_id", ASCENDING), ("created_at", DESCENDING)])
    except PyMongoError as exc:
        logger.warning("Unable to ensure indexes: %s", exc)
