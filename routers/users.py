from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field, TypeAdapter, EmailStr
from pymongo.database import Database

from database import get_db, public_user, to_obj_id, utcnow
from media import LOGO_MAX_BYTES, USER_LOGO_FOLDER, MediaStore, get_media_store, store_image
from security import get_current_user, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter()

_email_adapter = TypeAdapter(EmailStr)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


@router.get("/get/profile")
def get_profile(current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    user = db["user"].find_one({"_id": to_obj_id(current_user["id"])})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"message": "User profile retrieved successfully", "data": public_user(user)}


@router.put("/profile/update")
def update_profile(
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    logo: Optional[UploadFile] = File(None),
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
    media: MediaStore = Depends(get_media_store),
):
    user = db["user"].find_one({"_id": to_obj_id(current_user["id"])})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    updates = {}
    if email:
        email = _email_adapter.validate_python(email.strip()).lower()
        if email != user["email"]:
            existing = db["user"].find_one({"email": email})
            if existing and existing["_id"] != user["_id"]:
                raise HTTPException(status_code=400, detail="Email already in use")
            updates["email"] = email
    for field, value in (("name", name), ("phone", phone), ("address", address)):
        if value and value.strip():
            updates[field] = value.strip()

    logo_url = store_image(media, logo, USER_LOGO_FOLDER, LOGO_MAX_BYTES)
    if logo_url:
        updates["logo"] = logo_url

    if updates:
        updates["updated_at"] = utcnow()
        db["user"].update_one({"_id": user["_id"]}, {"$set": updates})
    user = db["user"].find_one({"_id": user["_id"]})
    return {"message": "User profile updated successfully", "data": public_user(user)}


@router.delete("/profile/delete")
def delete_profile(current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    res = db["user"].delete_one({"_id": to_obj_id(current_user["id"])})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("Deleted user %s", current_user["id"])
    return {"message": "User profile deleted successfully", "data": {"user_id": current_user["id"]}}


@router.put("/change-password")
def change_password(
    payload: ChangePasswordRequest,
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    user = db["user"].find_one({"_id": to_obj_id(current_user["id"])})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not verify_password(payload.current_password, user.get("password_hash", "")):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {"password_hash": hash_password(payload.new_password), "updated_at": utcnow()}},
    )
    return {"message": "Password changed successfully"}
