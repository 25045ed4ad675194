from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from pymongo.database import Database

from database import get_db, sanitize, to_obj_id, utcnow
from routers.notifications import notify_seller
from routers.sellers import rating_summary
from schemas import Review as ReviewSchema
from security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


class ReviewRequest(BaseModel):
    seller_id: str
    product_id: Optional[str] = None
    service_id: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


def _check_listing(db: Database, collection: str, listing_id: Optional[str], seller_id: str, label: str) -> None:
    if listing_id is None:
        return
    if not db[collection].find_one({"_id": to_obj_id(listing_id), "seller_id": seller_id}):
        raise HTTPException(status_code=404, detail=f"{label} not found")


@router.post("/", status_code=201)
def submit_review(
    payload: ReviewRequest,
    response: Response,
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Create a review, or replace the caller's earlier review of the same target."""
    seller = db["seller"].find_one({"_id": to_obj_id(payload.seller_id)})
    if not seller:
        raise HTTPException(status_code=404, detail="Seller not found")
    if seller["user_id"] == current_user["id"]:
        raise HTTPException(status_code=403, detail="You cannot review your own store")
    _check_listing(db, "product", payload.product_id, payload.seller_id, "Product")
    _check_listing(db, "service", payload.service_id, payload.seller_id, "Service")

    target = {
        "user_id": current_user["id"],
        "seller_id": payload.seller_id,
        "product_id": payload.product_id,
        "service_id": payload.service_id,
    }
    comment = payload.comment.strip() if payload.comment else None
    existing = db["review"].find_one(target)
    if existing:
        db["review"].update_one(
            {"_id": existing["_id"]},
            {"$set": {"rating": payload.rating, "comment": comment, "updated_at": utcnow()}},
        )
        response.status_code = 200
        return {
            "message": "Review updated successfully",
            "data": sanitize(db["review"].find_one({"_id": existing["_id"]})),
        }

    doc = ReviewSchema(**target, rating=payload.rating, comment=comment).model_dump()
    doc["_id"] = db["review"].insert_one(doc).inserted_id
    notify_seller(
        db,
        payload.seller_id,
        "review",
        f"{current_user['name']} left a {payload.rating}-star review",
    )
    logger.info("User %s reviewed seller %s", current_user["id"], payload.seller_id)
    return {"message": "Review submitted successfully", "data": sanitize(doc)}


@router.get("/seller/{seller_id}")
def get_seller_reviews(seller_id: str, db: Database = Depends(get_db)):
    to_obj_id(seller_id)
    reviews = [
        sanitize(r)
        for r in db["review"].find({"seller_id": seller_id}).sort([("created_at", -1), ("_id", -1)])
    ]
    summary = rating_summary(db, [seller_id]).get(seller_id, {"average_rating": None, "rating_count": 0})
    return {"message": "Reviews retrieved successfully", "data": {"reviews": reviews, **summary}}


@router.delete("/{review_id}")
def delete_review(
    review_id: str,
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    review = db["review"].find_one({"_id": to_obj_id(review_id)})
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    if review["user_id"] != current_user["id"]:
        raise HTTPException(status_code=403, detail="You are not authorized to perform this action")
    db["review"].delete_one({"_id": review["_id"]})
    return {"message": "Review deleted successfully"}
