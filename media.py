"""
Image uploads forwarded to Cloudinary, with an in-memory store for local runs and tests.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol
from uuid import uuid4

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from fastapi import HTTPException, UploadFile

from config import get_settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
LOGO_MAX_BYTES = 2 * 1024 * 1024
LISTING_MAX_BYTES = 5 * 1024 * 1024

USER_LOGO_FOLDER = "users/logos"
STORE_LOGO_FOLDER = "tradelink/logos"
PRODUCT_FOLDER = "tradelink/products"
SERVICE_FOLDER = "tradelink/services"


class MediaStore(Protocol):
    def upload_image(self, data: bytes, folder: str, filename: str) -> str:
        """Store the image and return its public URL."""
        ...


@dataclass
class InMemoryMediaStore:
    base_url: str = "https://media.example.com"
    stored: Dict[str, bytes] = field(default_factory=dict)

    def upload_image(self, data: bytes, folder: str, filename: str) -> str:
        key = f"{folder}/{uuid4().hex}-{filename}"
        self.stored[key] = data
        return f"{self.base_url}/{key}"

    def reset(self) -> None:
        self.stored.clear()


@dataclass
class CloudinaryMediaStore:
    cloud_name: str
    api_key: str
    api_secret: str

    def __post_init__(self):
        cloudinary.config(
            cloud_name=self.cloud_name,
            api_key=self.api_key,
            api_secret=self.api_secret,
            secure=True,
        )

    def upload_image(self, data: bytes, folder: str, filename: str) -> str:
        result = cloudinary.uploader.upload(
            io.BytesIO(data), folder=folder, resource_type="image"
        )
        return result["secure_url"]


def read_image(upload: UploadFile, max_bytes: int) -> bytes:
    """Validate an uploaded image and return its bytes; 400 on bad type or size."""
    if (upload.content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Only image files are allowed")
    data = upload.file.read(max_bytes + 1)
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File too large, limit is {max_bytes // (1024 * 1024)} MB",
        )
    return data


def store_image(
    media: MediaStore, upload: Optional[UploadFile], folder: str, max_bytes: int
) -> Optional[str]:
    """Upload an optional image field. Returns the URL, or None when no file was sent."""
    if upload is None or not upload.filename:
        return None
    data = read_image(upload, max_bytes)
    try:
        url = media.upload_image(data, folder, upload.filename)
    except CloudinaryError as exc:
        logger.error("Image upload to %s failed: %s", folder, exc)
        raise HTTPException(status_code=500, detail="Image upload failed")
    logger.info("Uploaded image %s to %s", upload.filename, folder)
    return url


_media_store: Optional[MediaStore] = None


def get_media_store() -> MediaStore:
    global _media_store
    if _media_store:
        return _media_store

    settings = get_settings()
    if settings.cloudinary_cloud_name and settings.cloudinary_api_key and settings.cloudinary_api_secret:
        _media_store = CloudinaryMediaStore(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
        )
    else:
        logger.warning("Cloudinary credentials not set; images are kept in memory")
        _media_store = InMemoryMediaStore()
    return _media_store
