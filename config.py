"""
Environment-backed settings for the TradeLink API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    app_name: str = Field(default="TradeLink Marketplace API")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    cors_origins: List[str] = Field(default=["*"])
    api_prefix: str = Field(default="/api/v1")
    # Used to build links in emails; falls back to the request base URL
    public_base_url: Optional[str] = Field(default=None)

    # MongoDB
    mongo_url: str = Field(default="mongodb://localhost:27017")
    mongo_db_name: str = Field(default="tradelink")

    # Auth
    secret_key: str = Field(default="supersecretkey")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_hours: int = Field(default=8)
    verification_token_expire_hours: int = Field(default=24)
    reset_token_expire_minutes: int = Field(default=15)

    # SMTP relay
    smtp_host: Optional[str] = Field(default=None)
    smtp_port: int = Field(default=587)
    smtp_username: Optional[str] = Field(default=None)
    smtp_password: Optional[str] = Field(default=None)
    smtp_use_ssl: bool = Field(default=False)
    email_from: str = Field(default="TradeLink <no-reply@tradelink.app>")

    # Cloudinary
    cloudinary_cloud_name: Optional[str] = Field(default=None)
    cloudinary_api_key: Optional[str] = Field(default=None)
    cloudinary_api_secret: Optional[str] = Field(default=None)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
