from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pymongo.database import Database

from database import get_db, sanitize, to_obj_id, utcnow
from media import LISTING_MAX_BYTES, SERVICE_FOLDER, MediaStore, get_media_store, store_image
from routers.listings import find_listings, form_updates, listing_filter, owned_listing, seller_for
from schemas import Service as ServiceSchema
from security import require_role

logger = logging.getLogger(__name__)

router = APIRouter()


# Seller routes

@router.post("/create", status_code=201)
def create_service(
    name: str = Form(...),
    price: float = Form(...),
    category: Optional[str] = Form(None),
    quantity: Optional[int] = Form(None),
    description: Optional[str] = Form(None),
    service_img: Optional[UploadFile] = File(None),
    current_user=Depends(require_role("seller")),
    db: Database = Depends(get_db),
    media: MediaStore = Depends(get_media_store),
):
    seller = seller_for(db, current_user)
    fields = form_updates(category=category, quantity=quantity, description=description)
    doc = ServiceSchema(seller_id=str(seller["_id"]), name=name.strip(), price=price, **fields).model_dump()
    doc["service_img"] = store_image(media, service_img, SERVICE_FOLDER, LISTING_MAX_BYTES)
    doc["_id"] = db["service"].insert_one(doc).inserted_id
    logger.info("Seller %s created service %s", seller["_id"], doc["_id"])
    return {"message": "Service created successfully", "data": sanitize(doc)}


@router.put("/edit/{service_id}")
def update_service(
    service_id: str,
    name: Optional[str] = Form(None),
    price: Optional[float] = Form(None),
    category: Optional[str] = Form(None),
    quantity: Optional[int] = Form(None),
    description: Optional[str] = Form(None),
    service_img: Optional[UploadFile] = File(None),
    current_user=Depends(require_role("seller")),
    db: Database = Depends(get_db),
    media: MediaStore = Depends(get_media_store),
):
    seller = seller_for(db, current_user)
    service = owned_listing(db, "service", service_id, seller, "Service")
    updates = form_updates(
        name=name, price=price, category=category, quantity=quantity, description=description
    )
    image_url = store_image(media, service_img, SERVICE_FOLDER, LISTING_MAX_BYTES)
    if image_url:
        updates["service_img"] = image_url
    if updates:
        ServiceSchema(**{**service, **updates})
        updates["updated_at"] = utcnow()
        db["service"].update_one({"_id": service["_id"]}, {"$set": updates})
    return {
        "message": "Service updated successfully",
        "data": sanitize(db["service"].find_one({"_id": service["_id"]})),
    }


@router.delete("/delete/{service_id}")
def delete_service(
    service_id: str,
    current_user=Depends(require_role("seller")),
    db: Database = Depends(get_db),
):
    seller = seller_for(db, current_user)
    service = owned_listing(db, "service", service_id, seller, "Service")
    db["service"].delete_one({"_id": service["_id"]})
    return {"message": "Service deleted successfully"}


@router.get("/seller/{seller_id}")
def get_seller_services(seller_id: str, db: Database = Depends(get_db)):
    to_obj_id(seller_id)
    return {
        "message": "Seller services retrieved successfully",
        "data": find_listings(db, "service", {"seller_id": seller_id}),
    }


# Public routes

@router.get("/all")
def get_all_services(
    category: Optional[str] = None,
    search: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    db: Database = Depends(get_db),
):
    q = listing_filter(category, search, min_price, max_price)
    return {"message": "Services retrieved successfully", "data": find_listings(db, "service", q)}


@router.get("/get/by/{service_id}")
def get_service(service_id: str, db: Database = Depends(get_db)):
    service = db["service"].find_one({"_id": to_obj_id(service_id)})
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")
    return {"message": "Service retrieved successfully", "data": sanitize(service)}
