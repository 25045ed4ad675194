"""
Registration, email verification, login/logout and password reset.

Verification and reset links carry a random token; only its SHA-256 is stored,
together with an expiry.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, EmailStr, Field
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from config import get_settings
from database import get_db, utcnow
from mailer import Mailer, get_mailer
from schemas import Location, Seller as SellerSchema, User as UserSchema
from security import (
    AUTH_COOKIE,
    create_access_token,
    generate_token,
    get_current_user,
    hash_password,
    hash_token,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(..., min_length=1)
    phone: Optional[str] = None
    address: Optional[str] = None
    role: Optional[str] = None
    store_name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[Location] = None


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class EmailRequest(BaseModel):
    email: str = Field(..., min_length=1)


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


def _link(request: Request, path: str) -> str:
    settings = get_settings()
    base = settings.public_base_url or str(request.base_url)
    return f"{base.rstrip('/')}{settings.api_prefix}{path}"


def _send_verification(request: Request, mailer: Mailer, email: str, raw_token: str, intro: str) -> None:
    verify_url = _link(request, f"/auth/verify-email/{raw_token}")
    mailer.send(
        email,
        "TradeLink Email Verification",
        f"{intro} Please verify your email by clicking this link:\n\n{verify_url}\n\n"
        "If you did not request this, please ignore this email.",
    )


@router.post("/register", status_code=201)
def register(
    payload: RegisterRequest,
    request: Request,
    db: Database = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    is_seller = payload.role == "seller"
    store_name = (payload.store_name or "").strip()
    if is_seller and not store_name:
        raise HTTPException(status_code=400, detail="Store name is required for seller")

    email = payload.email.strip().lower()
    if db["user"].find_one({"email": email}):
        raise HTTPException(status_code=400, detail="User already exists")

    settings = get_settings()
    raw_token, hashed_token, expires = generate_token(
        timedelta(hours=settings.verification_token_expire_hours)
    )
    user_doc = UserSchema(
        name=payload.name,
        email=email,
        password_hash=hash_password(payload.password),
        phone=payload.phone,
        address=payload.address,
        role="seller" if is_seller else "user",
        is_verified=False,
        verification_token=hashed_token,
        verification_expire=expires,
    ).model_dump()
    user_doc["_id"] = ObjectId()
    user_id = str(user_doc["_id"])

    # Both documents are validated before anything is written
    seller_doc = None
    if is_seller:
        seller_doc = SellerSchema(
            user_id=user_id,
            store_name=store_name,
            description=payload.description or "No description provided",
            location=payload.location,
            phone=payload.phone or "",
            email=email,
        ).model_dump()

    try:
        db["user"].insert_one(user_doc)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="User already exists")

    data = {"user_id": user_id}
    if seller_doc is not None:
        try:
            data["seller_id"] = str(db["seller"].insert_one(seller_doc).inserted_id)
        except PyMongoError:
            db["user"].delete_one({"_id": user_doc["_id"]})
            logger.warning("Seller profile insert failed; removed user %s", user_id)
            raise

    _send_verification(
        request,
        mailer,
        email,
        raw_token,
        "You are receiving this email because you (or someone else) has registered on TradeLink.",
    )
    logger.info("Registered %s account %s", user_doc["role"], user_id)

    who = store_name if is_seller else user_doc["name"]
    return {
        "message": f"{who} registered successfully! Please check your email to verify your account.",
        "data": data,
    }


@router.get("/verify-email/{token}")
def verify_email(token: str, db: Database = Depends(get_db)):
    user = db["user"].find_one(
        {"verification_token": hash_token(token), "verification_expire": {"$gt": utcnow()}}
    )
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired verification token")
    db["user"].update_one(
        {"_id": user["_id"]},
        {
            "$set": {"is_verified": True, "updated_at": utcnow()},
            "$unset": {"verification_token": "", "verification_expire": ""},
        },
    )
    return {"message": "Email verified successfully, Welcome to TradeLink!"}


@router.post("/resend-verification")
def resend_verification(
    payload: EmailRequest,
    request: Request,
    db: Database = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    user = db["user"].find_one({"email": payload.email.strip().lower()})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.get("is_verified"):
        raise HTTPException(status_code=400, detail="Email already verified")

    raw_token, hashed_token, expires = generate_token(
        timedelta(hours=get_settings().verification_token_expire_hours)
    )
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {"verification_token": hashed_token, "verification_expire": expires, "updated_at": utcnow()}},
    )
    _send_verification(request, mailer, user["email"], raw_token, "Here is your new verification link.")
    return {"message": "Verification email resent successfully"}


@router.post("/login")
def login(payload: LoginRequest, response: Response, db: Database = Depends(get_db)):
    user = db["user"].find_one({"email": payload.email.strip().lower()})
    if not user:
        raise HTTPException(status_code=400, detail="Invalid email or password")
    if not user.get("is_verified"):
        raise HTTPException(status_code=403, detail="Please verify your email before logging in")
    if not verify_password(payload.password, user.get("password_hash", "")):
        logger.info("Failed login for user %s", user["_id"])
        raise HTTPException(status_code=400, detail="Invalid email or password")

    settings = get_settings()
    user_id = str(user["_id"])
    token = create_access_token({"sub": user_id, "role": user["role"]})
    response.set_cookie(
        AUTH_COOKIE,
        f"Bearer {token}",
        max_age=settings.access_token_expire_hours * 3600,
        httponly=settings.is_production,
        secure=settings.is_production,
    )

    data = {"token": token, "user_id": user_id, "role": user["role"], "name": user["name"]}
    seller = db["seller"].find_one({"user_id": user_id})
    if seller:
        data["seller_id"] = str(seller["_id"])
    return {"message": "Login successful", "data": data}


@router.post("/logout")
def logout(response: Response, current_user=Depends(get_current_user)):
    settings = get_settings()
    response.delete_cookie(AUTH_COOKIE, httponly=settings.is_production, secure=settings.is_production)
    return {"message": "Logout successful"}


@router.post("/forgot-password")
def forgot_password(
    payload: EmailRequest,
    request: Request,
    db: Database = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    user = db["user"].find_one({"email": payload.email.strip().lower()})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    raw_token, hashed_token, expires = generate_token(
        timedelta(minutes=get_settings().reset_token_expire_minutes)
    )
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {"reset_password_token": hashed_token, "reset_password_expire": expires}},
    )

    reset_url = _link(request, f"/auth/reset-password/{raw_token}")
    mailer.send(
        user["email"],
        "TradeLink Password Reset",
        "You are receiving this email because you (or someone else) has requested a password reset. "
        f"Please click the following link to reset your password:\n\n{reset_url}\n\n"
        "If you did not request this, please ignore this email.",
    )
    return {"message": "Email sent with password reset instructions"}


@router.post("/reset-password")
def reset_password(payload: ResetPasswordRequest, db: Database = Depends(get_db)):
    user = db["user"].find_one(
        {"reset_password_token": hash_token(payload.token), "reset_password_expire": {"$gt": utcnow()}}
    )
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    db["user"].update_one(
        {"_id": user["_id"]},
        {
            "$set": {"password_hash": hash_password(payload.new_password), "updated_at": utcnow()},
            "$unset": {"reset_password_token": "", "reset_password_expire": ""},
        },
    )
    return {"message": "Password reset successful"}
