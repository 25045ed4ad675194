from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pymongo.database import Database

from database import get_db, sanitize, to_obj_id, utcnow
from media import LISTING_MAX_BYTES, PRODUCT_FOLDER, MediaStore, get_media_store, store_image
from routers.listings import find_listings, form_updates, listing_filter, owned_listing, seller_for
from schemas import Product as ProductSchema
from security import require_role

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/create", status_code=201)
def create_product(
    name: str = Form(...),
    price: float = Form(...),
    category: Optional[str] = Form(None),
    quantity: Optional[int] = Form(None),
    description: Optional[str] = Form(None),
    product_img: Optional[UploadFile] = File(None),
    current_user=Depends(require_role("seller")),
    db: Database = Depends(get_db),
    media: MediaStore = Depends(get_media_store),
):
    seller = seller_for(db, current_user)
    fields = form_updates(category=category, quantity=quantity, description=description)
    doc = ProductSchema(seller_id=str(seller["_id"]), name=name.strip(), price=price, **fields).model_dump()
    doc["product_img"] = store_image(media, product_img, PRODUCT_FOLDER, LISTING_MAX_BYTES)
    doc["_id"] = db["product"].insert_one(doc).inserted_id
    logger.info("Seller %s created product %s", seller["_id"], doc["_id"])
    return {"message": "Product created successfully", "data": sanitize(doc)}


@router.get("/seller/{seller_id}")
def get_seller_products(seller_id: str, db: Database = Depends(get_db)):
    to_obj_id(seller_id)
    return {
        "message": "Seller products retrieved successfully",
        "data": find_listings(db, "product", {"seller_id": seller_id}),
    }


@router.put("/{product_id}")
def update_product(
    product_id: str,
    name: Optional[str] = Form(None),
    price: Optional[float] = Form(None),
    category: Optional[str] = Form(None),
    quantity: Optional[int] = Form(None),
    description: Optional[str] = Form(None),
    product_img: Optional[UploadFile] = File(None),
    current_user=Depends(require_role("seller")),
    db: Database = Depends(get_db),
    media: MediaStore = Depends(get_media_store),
):
    seller = seller_for(db, current_user)
    product = owned_listing(db, "product", product_id, seller, "Product")
    updates = form_updates(
        name=name, price=price, category=category, quantity=quantity, description=description
    )
    image_url = store_image(media, product_img, PRODUCT_FOLDER, LISTING_MAX_BYTES)
    if image_url:
        updates["product_img"] = image_url
    if updates:
        ProductSchema(**{**product, **updates})
        updates["updated_at"] = utcnow()
        db["product"].update_one({"_id": product["_id"]}, {"$set": updates})
    return {
        "message": "Product updated successfully",
        "data": sanitize(db["product"].find_one({"_id": product["_id"]})),
    }


@router.delete("/{product_id}")
def delete_product(
    product_id: str,
    current_user=Depends(require_role("seller")),
    db: Database = Depends(get_db),
):
    seller = seller_for(db, current_user)
    product = owned_listing(db, "product", product_id, seller, "Product")
    db["product"].delete_one({"_id": product["_id"]})
    return {"message": "Product deleted successfully"}


@router.get("/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    product = db["product"].find_one({"_id": to_obj_id(product_id)})
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"message": "Product retrieved successfully", "data": sanitize(product)}


@router.get("/")
def get_all_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    db: Database = Depends(get_db),
):
    q = listing_filter(category, search, min_price, max_price)
    return {"message": "Products retrieved successfully", "data": find_listings(db, "product", q)}
