from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from pydantic import BaseModel
from pymongo.database import Database

from database import get_db, sanitize, to_obj_id, utcnow
from media import LOGO_MAX_BYTES, STORE_LOGO_FOLDER, MediaStore, get_media_store, store_image
from routers.listings import seller_for
from schemas import Location, Seller as SellerSchema
from security import get_current_user, require_role

router = APIRouter()


class UpdateSellerRequest(BaseModel):
    store_name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[Location] = None
    phone: Optional[str] = None
    business_category: Optional[str] = None


def rating_summary(db: Database, seller_ids: List[str]) -> Dict[str, Dict[str, Any]]:
    """Average review rating and review count per seller id."""
    if not seller_ids:
        return {}
    pipe = [
        {"$match": {"seller_id": {"$in": seller_ids}}},
        {"$group": {"_id": "$seller_id", "avg": {"$avg": "$rating"}, "count": {"$sum": 1}}},
    ]
    return {
        row["_id"]: {"average_rating": round(row["avg"], 2), "rating_count": row["count"]}
        for row in db["review"].aggregate(pipe)
    }


def _validated_updates(seller: Dict, updates: Dict[str, Any]) -> Dict[str, Any]:
    """Check `updates` against the merged Seller document; return the normalized fields."""
    merged = SellerSchema(**{**sanitize(seller), **updates})
    return merged.model_dump(include=set(updates))


def _with_owner(db: Database, sellers: List[Dict], fields: tuple) -> List[Dict]:
    """Attach the owning user's public fields under `user`."""
    ids = [to_obj_id(s["user_id"]) for s in sellers]
    users = {
        str(u["_id"]): u
        for u in db["user"].find({"_id": {"$in": ids}})
    } if ids else {}
    result = []
    for s in sellers:
        d = sanitize(s)
        owner = users.get(s["user_id"])
        d["user"] = {"id": s["user_id"], **{f: owner.get(f) for f in fields}} if owner else None
        result.append(d)
    return result


@router.get("/get/profile/{seller_id}")
def get_seller_profile(seller_id: str, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    seller = db["seller"].find_one({"_id": to_obj_id(seller_id)})
    if not seller:
        raise HTTPException(status_code=404, detail="Seller not found")
    return {
        "message": "Seller profile retrieved successfully",
        "data": _with_owner(db, [seller], ("name", "email"))[0],
    }


@router.put("/edit/profile")
def update_seller_profile(
    payload: UpdateSellerRequest,
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    seller = seller_for(db, current_user)
    updates = _validated_updates(seller, payload.model_dump(exclude_none=True))
    updates["updated_at"] = utcnow()
    db["seller"].update_one({"_id": seller["_id"]}, {"$set": updates})
    seller = db["seller"].find_one({"_id": seller["_id"]})
    return {
        "message": "Seller profile updated successfully",
        "data": _with_owner(db, [seller], ("name", "email"))[0],
    }


@router.put("/profile")
def save_full_seller_profile(
    response: Response,
    store_name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    city: Optional[str] = Form(None),
    state: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    business_category: Optional[str] = Form(None),
    store_logo: Optional[UploadFile] = File(None),
    current_user=Depends(require_role("seller")),
    db: Database = Depends(get_db),
    media: MediaStore = Depends(get_media_store),
):
    """Create the caller's seller profile, or update it when one exists."""
    fields = {
        "store_name": store_name,
        "description": description,
        "phone": phone,
        "business_category": business_category,
    }
    if city or state:
        fields["location"] = Location(city=city, state=state).model_dump(exclude_none=True)
    logo_url = store_image(media, store_logo, STORE_LOGO_FOLDER, LOGO_MAX_BYTES)
    if logo_url:
        fields["store_logo"] = logo_url
    fields = {k: v for k, v in fields.items() if v is not None}

    seller = db["seller"].find_one({"user_id": current_user["id"]})
    if not seller:
        doc = SellerSchema(user_id=current_user["id"], email=current_user["email"], **fields).model_dump()
        doc["_id"] = db["seller"].insert_one(doc).inserted_id
        response.status_code = 201
        return {"message": "Seller profile created successfully", "data": sanitize(doc)}

    if fields:
        fields = _validated_updates(seller, fields)
        fields["updated_at"] = utcnow()
        db["seller"].update_one({"_id": seller["_id"]}, {"$set": fields})
    return {
        "message": "Seller profile updated successfully",
        "data": sanitize(db["seller"].find_one({"_id": seller["_id"]})),
    }


@router.delete("/delete/profile")
def delete_seller_profile(current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    seller = seller_for(db, current_user)
    db["seller"].delete_one({"_id": seller["_id"]})
    return {"message": "Seller profile deleted successfully"}


@router.get("/get/all/sellers")
def get_all_sellers(current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    sellers = list(db["seller"].find({}).sort([("created_at", -1), ("_id", -1)]))
    if not sellers:
        raise HTTPException(status_code=404, detail="No sellers found")
    return {
        "message": "Sellers retrieved successfully",
        "data": _with_owner(db, sellers, ("name", "email")),
    }


@router.get("/search")
def search_sellers(
    query: Optional[str] = None,
    location: Optional[str] = None,
    category: Optional[str] = None,
    top_rated: bool = False,
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    q: Dict[str, Any] = {}
    if query:
        q["store_name"] = {"$regex": re.escape(query), "$options": "i"}
    if location:
        pattern = {"$regex": re.escape(location), "$options": "i"}
        q["$or"] = [{"location.city": pattern}, {"location.state": pattern}]
    if category:
        q["business_category"] = {"$regex": re.escape(category), "$options": "i"}

    sellers = list(db["seller"].find(q))
    if not sellers:
        raise HTTPException(status_code=404, detail="No sellers found matching criteria")

    ratings = rating_summary(db, [str(s["_id"]) for s in sellers])
    result = _with_owner(db, sellers, ("name", "email"))
    for s in result:
        s.update(ratings.get(s["id"], {"average_rating": None, "rating_count": 0}))
    if top_rated:
        result.sort(key=lambda s: (s["average_rating"] or 0, s["rating_count"]), reverse=True)
    return {"message": "Sellers retrieved successfully", "data": result}


@router.get("/{seller_id}")
def get_combined_seller_profile(
    seller_id: str, current_user=Depends(get_current_user), db: Database = Depends(get_db)
):
    seller = db["seller"].find_one({"_id": to_obj_id(seller_id)})
    if not seller:
        raise HTTPException(status_code=404, detail="Seller not found")
    owner = db["user"].find_one({"_id": to_obj_id(seller["user_id"])}) or {}
    profile = {
        "id": str(seller["_id"]),
        "store_name": seller.get("store_name"),
        "description": seller.get("description"),
        "logo": seller.get("store_logo"),
        "business_category": seller.get("business_category"),
        "location": seller.get("location"),
        "phone": seller.get("phone"),
        "email": seller.get("email"),
        "user": {"id": seller["user_id"], "name": owner.get("name"), "address": owner.get("address")},
    }
    profile.update(rating_summary(db, [profile["id"]]).get(profile["id"], {"average_rating": None, "rating_count": 0}))
    return {"message": "Seller profile retrieved successfully", "data": profile}
