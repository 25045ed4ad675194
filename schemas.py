"""
Database Schemas for the TradeLink marketplace

MongoDB collections are defined below using Pydantic models. Each class name is
converted to lowercase for the collection name (User -> "user").

We will use these collections:
- user: accounts (user, seller, admin) with verification/reset token hashes
- seller: store profiles linked to a user
- product: product listings linked to a seller
- service: service listings linked to a seller
- message: direct messages between two users
- review: ratings left by users on a seller or one of its listings
- notification: events surfaced to a seller
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

Role = Literal["user", "seller", "admin"]

ProductCategory = Literal[
    "Groceries & Essentials",
    "Fresh & Perishables",
    "Fashion & Clothing",
    "Home & Kitchen",
    "Building Materials & Hardware",
    "Electronics & Gadgets",
    "Automobile & Parts",
    "Health & Beauty",
    "Toys, Baby & Kids",
    "Sports & Fitness",
    "Books, Stationery & Office",
]

ServiceCategory = Literal[
    "Hair Stylist",
    "Fashion Designer",
    "Caterer",
    "Plumber",
    "Mechanic",
    "Photographer",
    "Electrician",
    "Makeup Artist",
    "Barber",
    "Cleaner",
    "Car Wash",
    "Other",
]

NotificationType = Literal["order", "message", "review", "system"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Timestamped(BaseModel):
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class User(Timestamped):
    name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    password_hash: str = Field(..., description="BCrypt hash of password")
    phone: Optional[str] = None
    address: Optional[str] = None
    logo: Optional[str] = None
    role: Role = Field("user")
    is_verified: bool = False
    verification_token: Optional[str] = Field(None, description="SHA-256 of the emailed token")
    verification_expire: Optional[datetime] = None
    reset_password_token: Optional[str] = Field(None, description="SHA-256 of the emailed token")
    reset_password_expire: Optional[datetime] = None

    @field_validator("name", "phone", "address", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return v.strip().lower()


class Location(BaseModel):
    city: Optional[str] = None
    state: Optional[str] = None
    coordinates: Optional[List[float]] = Field(None, min_length=2, max_length=2, description="[lng, lat]")


class Seller(Timestamped):
    user_id: str = Field(..., description="Reference to user _id")
    store_name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    location: Optional[Location] = None
    phone: Optional[str] = None
    email: EmailStr
    store_logo: Optional[str] = None
    business_category: Optional[str] = None

    @field_validator("store_name", "description", "phone", "business_category", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return v.strip().lower()


class Product(Timestamped):
    seller_id: str = Field(..., description="Reference to seller _id")
    name: str = Field(..., min_length=1, max_length=200)
    price: float = Field(..., ge=0)
    category: Optional[ProductCategory] = None
    quantity: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    product_img: Optional[str] = None


class Service(Timestamped):
    seller_id: str = Field(..., description="Reference to seller _id")
    name: str = Field(..., min_length=1, max_length=200)
    price: float = Field(..., ge=0)
    category: Optional[ServiceCategory] = None
    quantity: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    service_img: Optional[str] = None


class Message(BaseModel):
    sender_id: str
    recipient_id: str
    content: str = Field(..., min_length=1, max_length=5000)
    read: bool = False
    created_at: datetime = Field(default_factory=_now)


class Review(Timestamped):
    user_id: str
    seller_id: str
    product_id: Optional[str] = None
    service_id: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class Notification(Timestamped):
    seller_id: str
    type: NotificationType = "system"
    message: str
    read: bool = False
