"""
Helpers shared by the product and service listing routes.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from fastapi import HTTPException
from pymongo.database import Database

from database import sanitize, to_obj_id


def seller_for(db: Database, current_user: Dict) -> Dict:
    """The caller's seller profile; listings hang off it."""
    seller = db["seller"].find_one({"user_id": current_user["id"]})
    if not seller:
        raise HTTPException(status_code=404, detail="Seller profile not found")
    return seller


def owned_listing(db: Database, collection: str, listing_id: str, seller: Dict, label: str) -> Dict:
    doc = db[collection].find_one({"_id": to_obj_id(listing_id), "seller_id": str(seller["_id"])})
    if not doc:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return doc


def listing_filter(
    category: Optional[str] = None,
    search: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
) -> Dict[str, Any]:
    q: Dict[str, Any] = {}
    if category:
        q["category"] = category
    if search:
        q["name"] = {"$regex": re.escape(search), "$options": "i"}
    if min_price is not None or max_price is not None:
        q["price"] = {}
        if min_price is not None:
            q["price"]["$gte"] = min_price
        if max_price is not None:
            q["price"]["$lte"] = max_price
    return q


def find_listings(db: Database, collection: str, q: Dict[str, Any]):
    return [sanitize(d) for d in db[collection].find(q).sort([("created_at", -1), ("_id", -1)])]


def form_updates(**fields) -> Dict[str, Any]:
    """Drop form fields the client did not send; strip text values."""
    updates = {}
    for key, value in fields.items():
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        updates[key] = value
    return updates
